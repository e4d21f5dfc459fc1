"""
FastAPI Application Entry Point.

This is the main application file for the Parcel Tracking Back-Office.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from parceltrack.app.core.config import settings
from parceltrack.app.api.v1.router import router as api_v1_router
from parceltrack.app.api.v1.endpoints import tracking
from parceltrack.app.db.session import engine, Base
from parceltrack.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from parceltrack.app.core.observability import ObservabilityMiddleware, configure_logging
from parceltrack.app.core.redis_client import ping_redis

# Import models to ensure they are registered with Base
from parceltrack.app.models.user import User
from parceltrack.app.models.customer import Customer
from parceltrack.app.models.parcel import Parcel
from parceltrack.app.models.parcel_history import ParcelHistory
from parceltrack.app.models.audit_log import AuditLog

logger = logging.getLogger("parceltrack")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    1. Configures logging.
    2. Creates database tables on startup.
    3. Disposes the engine on shutdown.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s started (api %s)", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Back-office API for customers, parcels, couriers and public tracking",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": await ping_redis(),
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")

# Public tracking lives outside the versioned, authenticated API
app.include_router(tracking.router)


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Parcel Tracking Back-Office API",
        "docs": "/docs",
        "health": "/health",
    }
