"""
User roles enumeration.

Defines the role types for the financial console.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Operations administrator, one of the two approval authorities
        FINANCE: Finance department, the other approval authority
        EMPLOYEE: Staff member who submits requests (default role)
    """
    ADMIN = "ADMIN"
    FINANCE = "FINANCE"
    EMPLOYEE = "EMPLOYEE"
