"""
User Management API Endpoints.

Admin-only user management with audit logging, plus the courier list used
for parcel assignment (any authenticated user).
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.core.config import settings
from parceltrack.app.core.dependencies import get_current_user
from parceltrack.app.core.exceptions import FieldValidationError
from parceltrack.app.core.guards import require_admin
from parceltrack.app.core.security import get_password_hash
from parceltrack.app.core.token_revocation import revoke_all_user_tokens
from parceltrack.app.db.session import get_db
from parceltrack.app.models.user import User
from parceltrack.app.schemas.parcel import UserBrief
from parceltrack.app.schemas.user import (
    UserCreate, UserUpdate, UserRoleUpdate, UserListItem, UserListResponse,
    AdminActionResponse, AuditLogResponse, AuditTrailResponse
)
from parceltrack.app.services import entity_store
from parceltrack.app.services.audit import log_admin_action, AuditAction, get_audit_trail

router = APIRouter(prefix="/users", tags=["Users"])

EMAIL_TAKEN = "The email has already been taken."


async def ensure_email_available(db: AsyncSession, email: str, ignore_user_id: Optional[int] = None) -> None:
    existing = await entity_store.get_user_by_email(db, email)
    if existing is not None and existing.id != ignore_user_id:
        raise FieldValidationError.single("email", EMAIL_TAKEN)


async def commit_user(db: AsyncSession, user: User) -> None:
    try:
        await db.commit()
    except IntegrityError:
        # Unique constraint on email lost a race with another request
        await db.rollback()
        raise FieldValidationError.single("email", EMAIL_TAKEN)
    await db.refresh(user)


@router.get("/couriers", response_model=List[UserBrief])
async def list_couriers(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List couriers available for parcel assignment.
    """
    couriers = await entity_store.list_couriers(db)
    return [UserBrief.model_validate(c) for c in couriers]


@router.get("/audit-log", response_model=AuditTrailResponse)
async def audit_log(
    action: Optional[str] = Query(None, description="Filter by action"),
    target_user_id: Optional[int] = Query(None, description="Filter by target user"),
    limit: int = Query(100, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Security audit trail (admin-only), most recent first.
    """
    logs = await get_audit_trail(db, target_user_id=target_user_id, action=action, limit=limit)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=settings.max_page_size, description="Items per page"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users in the system (admin-only).
    """
    users, total = await entity_store.list_users(db, page, page_size)
    
    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=UserListItem, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a user (admin-only). Email addresses are unique.
    """
    await ensure_email_available(db, user_data.email)
    
    new_user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role
    )
    db.add(new_user)
    await commit_user(db, new_user)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.USER_CREATED,
        target_user_id=new_user.id,
        target_email=new_user.email,
        metadata={"role": new_user.role.value}
    )
    
    return UserListItem.model_validate(new_user)


@router.get("/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get a specific user (admin-only).
    """
    user = await entity_store.require_user(db, user_id)
    return UserListItem.model_validate(user)


@router.put("/{user_id}", response_model=UserListItem)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a user's name, email and role (admin-only).
    """
    user = await entity_store.require_user(db, user_id)
    await ensure_email_available(db, user_data.email, ignore_user_id=user.id)
    
    previous_role = user.role
    user.name = user_data.name
    user.email = user_data.email
    user.role = user_data.role
    await commit_user(db, user)
    
    metadata = {"role": user.role.value}
    if previous_role != user.role:
        metadata["previous_role"] = previous_role.value
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.USER_UPDATED,
        target_user_id=user.id,
        target_email=user.email,
        metadata=metadata
    )
    
    return UserListItem.model_validate(user)


@router.put("/{user_id}/role", response_model=UserListItem)
async def update_user_role(
    user_id: int,
    role_data: UserRoleUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Change a user's role (admin-only).
    """
    user = await entity_store.require_user(db, user_id)
    
    previous_role = user.role
    user.role = role_data.role
    await commit_user(db, user)
    
    await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.ROLE_CHANGED,
        target_user_id=user.id,
        target_email=user.email,
        metadata={"previous_role": previous_role.value, "role": user.role.value}
    )
    
    return UserListItem.model_validate(user)


@router.delete("/{user_id}", response_model=AdminActionResponse)
async def delete_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a user and revoke their tokens (admin-only).
    
    Parcels assigned to the user are kept with the courier cleared.
    """
    user = await entity_store.require_user(db, user_id)
    
    # Prevent deleting self
    if user.id == admin["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )
    
    email = user.email
    await entity_store.delete_user(db, user)
    await revoke_all_user_tokens(user_id)
    
    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.USER_DELETED,
        target_user_id=user_id,
        target_email=email
    )
    
    return AdminActionResponse(
        success=True,
        message=f"User '{email}' has been deleted",
        user_id=user_id,
        action=AuditAction.USER_DELETED,
        audit_log_id=audit_log.id
    )
