"""
Customer Management API Endpoints.

Deleting a customer keeps their parcels and clears the reference.
"""

from fastapi import APIRouter, Depends, Query, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.core.config import settings
from parceltrack.app.core.dependencies import get_current_user
from parceltrack.app.db.session import get_db
from parceltrack.app.models.customer import Customer
from parceltrack.app.schemas.customer import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerDetailResponse, CustomerListResponse
)
from parceltrack.app.services import entity_store

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List customers, newest first."""
    customers, total = await entity_store.list_customers(db, page, page_size)
    
    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(c) for c in customers],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a customer."""
    customer = Customer(**customer_data.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerDetailResponse)
async def get_customer(
    customer_id: int = Path(..., description="Customer ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a customer with their parcels, newest first."""
    customer = await entity_store.require_customer(db, customer_id, with_parcels=True)
    return CustomerDetailResponse.model_validate(customer)


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int = Path(..., description="Customer ID"),
    customer_data: CustomerUpdate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace a customer's name, address and phone number."""
    customer = await entity_store.require_customer(db, customer_id)
    
    for field, value in customer_data.model_dump().items():
        setattr(customer, field, value)
    
    await db.commit()
    await db.refresh(customer)
    
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: int = Path(..., description="Customer ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a customer. Their parcels are kept with the customer cleared."""
    customer = await entity_store.require_customer(db, customer_id)
    await entity_store.delete_customer(db, customer)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
