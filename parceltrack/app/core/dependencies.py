"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from parceltrack.app.core.exceptions import AuthenticationError, TokenRevokedError
from parceltrack.app.core.jwt import decode_access_token
from parceltrack.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from parceltrack.app.db.session import get_db
from parceltrack.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.
    
    Security checks:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked (logout)
    3. Checks if all user tokens have been revoked (user deleted)
    4. Verifies the user still exists and refreshes the role from the database
    
    Returns:
        Token payload (sub, user_id, role) plus the raw token under "token"
        
    Raises:
        AuthenticationError / TokenRevokedError: 401 if authentication fails
    """
    token = credentials.credentials
    
    # 1. Decode and validate JWT
    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")
    
    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    
    # 2. Check if this specific token has been revoked
    if await is_token_revoked(token):
        raise TokenRevokedError()
    
    # 3. Check if all user tokens have been revoked
    if await are_user_tokens_revoked(user_id):
        raise TokenRevokedError()
    
    # 4. Real-time database check
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    if not user:
        raise AuthenticationError("User not found")
    
    # Role changes take effect without re-login
    payload["role"] = user.role.value
    payload["token"] = token
    
    return payload
