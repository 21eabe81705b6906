"""
The authenticated person performing a transition.
"""

from dataclasses import dataclass
from typing import Optional

from fincore.app.models.enums import UserRole


@dataclass(frozen=True)
class Actor:
    id: int
    name: str
    role: UserRole
    department: Optional[str] = None

    @classmethod
    def from_token(cls, payload: dict) -> "Actor":
        """Build from a decoded JWT payload (see core.dependencies.get_current_user)."""
        return cls(
            id=payload["user_id"],
            name=payload.get("full_name") or payload.get("sub") or str(payload["user_id"]),
            role=UserRole(payload.get("role", UserRole.EMPLOYEE.value)),
            department=payload.get("department"),
        )
