"""
Generic Approval Request database model.

Procurement, cash requisitions and quality-linked payments that share the
two-party approval contract without touching the ledger.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, Enum, Numeric, JSON, ForeignKey
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import (
    ApprovalRequestStatus, ApprovalStage, ApprovalPriority, RejectionReason
)


class ApprovalRequest(Base):
    __tablename__ = "approval_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    type = Column(String(100), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    department = Column(String(100), nullable=False, index=True)
    priority = Column(Enum(ApprovalPriority), default=ApprovalPriority.MEDIUM, nullable=False)

    requestedby = Column(String(255), nullable=False)
    requested_by_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    daterequested = Column(Date, nullable=False)

    status = Column(Enum(ApprovalRequestStatus), default=ApprovalRequestStatus.PENDING, nullable=False, index=True)
    approval_stage = Column(Enum(ApprovalStage), default=ApprovalStage.PENDING_ADMIN, nullable=False)
    admin_approved = Column(Boolean, default=False, nullable=False)
    admin_approved_by = Column(String(255), nullable=True)
    admin_approver_id = Column(Integer, nullable=True)
    admin_approved_at = Column(DateTime(timezone=True), nullable=True)
    finance_approved = Column(Boolean, default=False, nullable=False)
    finance_approved_by = Column(String(255), nullable=True)
    finance_approver_id = Column(Integer, nullable=True)
    finance_approved_at = Column(DateTime(timezone=True), nullable=True)

    # Free-form payload; "paymentId" links the request to a payment record
    details = Column(JSON, nullable=True)

    rejection_reason = Column(Enum(RejectionReason), nullable=True)
    rejection_comments = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def audit_key(self) -> str:
        """Workflow steps are keyed by the linked payment when there is one."""
        if self.details and self.details.get("paymentId"):
            return str(self.details["paymentId"])
        return f"approval:{self.id}"

    def __repr__(self):
        return f"<ApprovalRequest(id={self.id}, type='{self.type}', status='{self.status.value}')>"
