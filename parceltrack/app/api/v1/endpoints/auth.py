"""
Authentication API endpoints.

Provides login, logout and current-user endpoints. Accounts are created
by administrators through the user management endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from parceltrack.app.db.session import get_db
from parceltrack.app.schemas.auth import UserLogin, TokenResponse, UserResponse, LogoutResponse
from parceltrack.app.core.security import verify_password
from parceltrack.app.core.jwt import create_access_token, token_payload_for
from parceltrack.app.core.dependencies import get_current_user
from parceltrack.app.core.exceptions import AuthenticationError
from parceltrack.app.core.token_revocation import revoke_token
from parceltrack.app.services import entity_store
from parceltrack.app.services.audit import log_auth_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.
    
    Logs successful and failed login attempts for security monitoring.
    """
    user = await entity_store.get_user_by_email(db, credentials.email)
    
    if not user:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=None,
            email=credentials.email,
            metadata={"reason": "User not found"}
        )
        raise AuthenticationError("Invalid credentials")
    
    if not verify_password(credentials.password, user.hashed_password):
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            email=user.email,
            metadata={"reason": "Invalid password"}
        )
        raise AuthenticationError("Invalid credentials")
    
    access_token = create_access_token(data=token_payload_for(user))
    
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        email=user.email
    )
    
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        name=user.name,
        email=user.email,
        role=user.role
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.
    
    Requires valid JWT token in Authorization header.
    """
    user = await entity_store.require_user(db, current_user["user_id"])
    return UserResponse.model_validate(user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the token used for this request.
    """
    revoked = await revoke_token(current_user["token"], current_user["user_id"])
    
    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        email=current_user.get("sub"),
        metadata={"revoked": revoked}
    )
    
    return LogoutResponse(message="Logged out successfully", revoked=revoked)
