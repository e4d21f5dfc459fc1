"""
User management schema definitions.

Pydantic schemas for the admin-only user endpoints.
"""

from pydantic import BaseModel, EmailStr, Field, model_validator
from datetime import datetime
from typing import Optional, List
from parceltrack.app.models.enums import UserRole


class UserCreate(BaseModel):
    """Schema for creating a user (admin only)."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr = Field(..., description="Unique email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    password_confirmation: str = Field(..., description="Must match password")
    role: UserRole = Field(..., description="User role")
    
    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self


class UserUpdate(BaseModel):
    """Schema for updating a user's profile and role."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: UserRole


class UserRoleUpdate(BaseModel):
    """Schema for changing only the role."""
    role: UserRole


class UserListItem(BaseModel):
    """Schema for user in list response."""
    id: int
    name: str
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserListItem]
    total: int
    page: int
    page_size: int


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    user_id: int
    action: str
    audit_log_id: Optional[int] = None


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    target_user_id: Optional[int]
    target_email: Optional[str]
    meta_data: Optional[dict]
    timestamp: datetime
    
    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
