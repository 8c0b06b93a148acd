"""
User roles enumeration.

Defines the principal types for the freight system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages pricing, restricted goods and staff
        STAFF: Warehouse and operations staff moving shipments through the flow
        CUSTOMER: Shipper who owns shipments
    """
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    CUSTOMER = "CUSTOMER"
