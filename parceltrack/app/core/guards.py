"""
Security guards for role-based access control.

Only user management is role-gated; every other authenticated endpoint is
open to all three roles.
"""

from fastapi import Depends
from parceltrack.app.models.enums import UserRole
from parceltrack.app.core.dependencies import get_current_user
from parceltrack.app.core.exceptions import InsufficientPermissionsError


def role_of(current_user: dict) -> UserRole:
    """
    Resolve the role claim of an authenticated user.
    
    Raises:
        InsufficientPermissionsError if the claim is missing or unknown
    """
    user_role_str = current_user.get("role")
    
    if not user_role_str:
        raise InsufficientPermissionsError("Role information missing from token")
    
    try:
        return UserRole(user_role_str)
    except ValueError:
        raise InsufficientPermissionsError("Invalid role in token")


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency for admin-only endpoints.
    
    Usage:
        @router.delete("/users/{user_id}")
        async def delete_user(user_id: int, admin: dict = Depends(require_admin)):
            ...
    """
    if role_of(current_user) is not UserRole.ADMIN:
        raise InsufficientPermissionsError(
            "Admin access required",
            details={"required_roles": [UserRole.ADMIN.value]}
        )
    
    return current_user
