"""
User roles enumeration.

Defines the role types for the parcel tracking back-office.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Manages users and has full access
        COURIER: Can be assigned parcels for delivery
        WAREHOUSE: Handles parcels at the depot
    """
    ADMIN = "admin"
    COURIER = "courier"
    WAREHOUSE = "warehouse"
