"""
Customer Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from parceltrack.app.schemas.parcel import ParcelResponse


class CustomerCreate(BaseModel):
    """Schema for creating a customer."""
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1)
    phone_number: Optional[str] = Field(None, max_length=20)
    
    class Config:
        str_strip_whitespace = True


class CustomerUpdate(CustomerCreate):
    """Schema for updating a customer (all fields replaced)."""


class CustomerResponse(BaseModel):
    """Schema for customer response."""
    id: int
    name: str
    address: str
    phone_number: Optional[str]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class CustomerDetailResponse(CustomerResponse):
    """Customer with their parcels, newest first."""
    parcels: List[ParcelResponse] = []


class CustomerListResponse(BaseModel):
    """Schema for paginated customer list."""
    customers: List[CustomerResponse]
    total: int
    page: int
    page_size: int
