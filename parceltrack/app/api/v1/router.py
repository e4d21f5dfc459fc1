"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from parceltrack.app.api.v1.endpoints import auth, users, customers, parcels

router = APIRouter()

router.include_router(auth.router)
router.include_router(users.router)
router.include_router(customers.router)
router.include_router(parcels.router)
