"""
Parcel Pydantic schemas.

Defines request and response models for parcel management and the
public tracking lookup.
"""

from decimal import Decimal, ROUND_HALF_UP
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List
from parceltrack.app.models.parcel_enums import ParcelStatus


class ParcelFields(BaseModel):
    """Editable parcel fields shared by create and update."""
    sender_name: str = Field(..., min_length=1, max_length=255, description="Sender name")
    sender_address: str = Field(..., min_length=1, description="Sender address")
    recipient_name: str = Field(..., min_length=1, max_length=255, description="Recipient name")
    recipient_address: str = Field(..., min_length=1, description="Recipient address")
    recipient_phone: Optional[str] = Field(None, max_length=50, description="Recipient phone (free-form)")
    weight: Optional[Decimal] = Field(None, ge=0, le=Decimal("999999.99"), description="Weight in kilograms")
    dimensions: Optional[str] = Field(None, max_length=100, description="Dimensions, loosely LxWxH in cm")
    notes: Optional[str] = Field(None, description="Internal notes")
    courier_id: Optional[int] = Field(None, description="Assigned courier (user ID)")
    customer_id: Optional[int] = Field(None, description="Customer ID")
    
    class Config:
        str_strip_whitespace = True
    
    @field_validator("weight")
    @classmethod
    def round_weight(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        # Stored as NUMERIC(8,2)
        if value is None:
            return value
        return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class ParcelCreate(ParcelFields):
    """Schema for creating a new parcel. The tracking number is generated."""
    status: ParcelStatus = Field(default=ParcelStatus.PENDING, description="Initial status")


class ParcelUpdate(ParcelFields):
    """Schema for a full parcel update."""
    status: ParcelStatus = Field(..., description="Parcel status")
    history_note: Optional[str] = Field(None, max_length=255, description="Note recorded with a status change")


class ParcelStatusUpdate(BaseModel):
    """Schema for changing only the status."""
    status: ParcelStatus = Field(..., description="New status")
    history_note: Optional[str] = Field(None, max_length=255, description="Note recorded with the change")


class CourierAssignment(BaseModel):
    """Schema for assigning, changing or clearing the courier."""
    courier_id: Optional[int] = Field(..., description="Courier user ID, or null to unassign")


class UserBrief(BaseModel):
    """Minimal user representation embedded in parcel responses."""
    id: int
    name: str
    
    class Config:
        from_attributes = True


class CustomerBrief(BaseModel):
    """Minimal customer representation embedded in parcel responses."""
    id: int
    name: str
    address: str
    phone_number: Optional[str] = None
    
    class Config:
        from_attributes = True


class ParcelResponse(BaseModel):
    """Schema for parcel response."""
    id: int
    tracking_number: str
    sender_name: str
    sender_address: str
    recipient_name: str
    recipient_address: str
    recipient_phone: Optional[str]
    status: ParcelStatus
    weight: Optional[Decimal]
    dimensions: Optional[str]
    notes: Optional[str]
    courier_id: Optional[int]
    customer_id: Optional[int]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class ParcelListItem(ParcelResponse):
    """Parcel with its courier and customer."""
    courier: Optional[UserBrief] = None
    customer: Optional[CustomerBrief] = None


class ParcelHistoryResponse(BaseModel):
    """Schema for a parcel history entry."""
    id: int
    parcel_id: int
    old_status: Optional[ParcelStatus]
    new_status: ParcelStatus
    user_id: Optional[int]
    notes: Optional[str]
    created_at: datetime
    
    class Config:
        from_attributes = True


class ParcelHistoryEntry(ParcelHistoryResponse):
    """History entry with the acting user."""
    user: Optional[UserBrief] = None


class ParcelDetailResponse(ParcelListItem):
    """Parcel with courier, customer and the most recent history entries."""
    history: List[ParcelHistoryEntry] = []


class ParcelListResponse(BaseModel):
    """Schema for paginated parcel list."""
    parcels: List[ParcelListItem]
    total: int
    page: int
    page_size: int


class ParcelChangeResponse(BaseModel):
    """Result of a status change or courier assignment."""
    changed: bool
    message: str
    parcel: ParcelDetailResponse
    history_entry: Optional[ParcelHistoryResponse] = None


class PublicTrackingResponse(BaseModel):
    """Reduced, non-sensitive parcel view for unauthenticated callers."""
    tracking_number: str
    status: ParcelStatus
    weight: Optional[Decimal]
    dimensions: Optional[str]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


def parcel_detail(parcel, history) -> ParcelDetailResponse:
    """
    Build a detail response from a parcel loaded with courier and customer
    and a separately loaded slice of its history.
    """
    item = ParcelListItem.model_validate(parcel)
    return ParcelDetailResponse(
        **item.model_dump(),
        history=[ParcelHistoryEntry.model_validate(entry) for entry in history],
    )
