"""
Two-party consensus.

A request is approved only when both the Admin and the Finance voter have
approved it, in either order; a single rejection from either voter is
final. The value type is pure and knows nothing about storage; the
orchestrator loads it from and writes it back to the request row.
"""

import enum
from dataclasses import dataclass, field, replace
from typing import Optional

from fincore.app.core.exceptions import InvalidTransitionError, SeparationOfDutiesError
from fincore.app.models.enums import UserRole
from fincore.app.models.finance_enums import ApprovalStage


class VoterRole(str, enum.Enum):
    ADMIN = "admin"
    FINANCE = "finance"

    @property
    def other(self) -> "VoterRole":
        return VoterRole.FINANCE if self is VoterRole.ADMIN else VoterRole.ADMIN

    @property
    def pending_stage(self) -> ApprovalStage:
        """Stage that names this voter as the one still to act."""
        if self is VoterRole.ADMIN:
            return ApprovalStage.PENDING_ADMIN
        return ApprovalStage.PENDING_FINANCE

    @property
    def department(self) -> str:
        return "Admin" if self is VoterRole.ADMIN else "Finance"

    @classmethod
    def from_role(cls, role) -> "VoterRole":
        """Map an account role (or a raw role string) to a voter role."""
        value = role.value if isinstance(role, enum.Enum) else str(role or "")
        mapping = {
            UserRole.ADMIN.value: cls.ADMIN,
            UserRole.FINANCE.value: cls.FINANCE,
        }
        voter = mapping.get(value.upper())
        if voter is None:
            raise InvalidTransitionError(
                f"Role '{value}' cannot vote on approval requests",
                details={"role": value}
            )
        return voter


@dataclass(frozen=True)
class Vote:
    approved: bool = False
    actor: Optional[str] = None
    actor_id: Optional[int] = None


@dataclass(frozen=True)
class DualApproval:
    """
    2-of-2 consensus between the ADMIN and FINANCE voters.

    approved  iff both voted approve
    rejected  iff either rejected
    """
    admin: Vote = field(default_factory=Vote)
    finance: Vote = field(default_factory=Vote)
    rejected: bool = False
    requester_id: Optional[int] = None

    def vote_of(self, role: VoterRole) -> Vote:
        return self.admin if role is VoterRole.ADMIN else self.finance

    @property
    def approved(self) -> bool:
        return not self.rejected and self.admin.approved and self.finance.approved

    @property
    def terminal(self) -> bool:
        return self.approved or self.rejected

    def stage(self, initial: ApprovalStage = ApprovalStage.PENDING_ADMIN) -> ApprovalStage:
        """Whose turn is next, or the terminal outcome."""
        if self.rejected:
            return ApprovalStage.REJECTED
        if self.approved:
            return ApprovalStage.APPROVED
        if self.admin.approved:
            return ApprovalStage.PENDING_FINANCE
        if self.finance.approved:
            return ApprovalStage.PENDING_ADMIN
        return initial

    def _ensure_open(self):
        if self.terminal:
            raise InvalidTransitionError(
                "Request has already been decided",
                details={"outcome": "approved" if self.approved else "rejected"}
            )

    def _ensure_separate(self, role: VoterRole, actor_id: Optional[int]):
        if actor_id is None:
            return
        if self.requester_id is not None and actor_id == self.requester_id:
            raise SeparationOfDutiesError("You cannot approve your own request")
        if self.vote_of(role.other).actor_id == actor_id:
            raise SeparationOfDutiesError(
                "The same person cannot provide both Admin and Finance approval"
            )

    def approve(self, role: VoterRole, actor: str, actor_id: Optional[int] = None) -> "DualApproval":
        """
        Record an approve vote.

        Raises:
            InvalidTransitionError: Request is terminal or the role already voted
            SeparationOfDutiesError: Requester or other voter is approving
        """
        self._ensure_open()
        if self.vote_of(role).approved:
            raise InvalidTransitionError(
                f"{role.department} has already approved this request",
                details={"role": role.value}
            )
        self._ensure_separate(role, actor_id)

        vote = Vote(approved=True, actor=actor, actor_id=actor_id)
        if role is VoterRole.ADMIN:
            return replace(self, admin=vote)
        return replace(self, finance=vote)

    def reject(self, role: VoterRole) -> "DualApproval":
        """Either voter may reject while the request is open."""
        self._ensure_open()
        return replace(self, rejected=True)

    def reset(self) -> "DualApproval":
        """Drop a single outstanding vote so both parties review modified content."""
        self._ensure_open()
        return replace(self, admin=Vote(), finance=Vote())
