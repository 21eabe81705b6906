"""
Money Request database model.

A request for a new disbursement against salary or allowance policy.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, Enum, Numeric
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import (
    MoneyRequestType, ApprovalStage, MoneyRequestStatus, PaymentChannel, RejectionReason
)


class MoneyRequest(Base):
    """
    Money Request model.

    Requires both Admin and Finance approval, in either order.
    approval_stage names whose turn is next; status is terminal once
    approved or rejected. Mutated only by the approval orchestrator.
    """
    __tablename__ = "money_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)

    amount = Column(Numeric(14, 2), nullable=False)
    reason = Column(Text, nullable=False)
    request_type = Column(Enum(MoneyRequestType, values_callable=lambda e: [m.value for m in e]), nullable=False, index=True)
    requested_by = Column(String(255), nullable=True)

    # Two-tier approval
    approval_stage = Column(Enum(ApprovalStage), nullable=False, index=True)
    admin_approved = Column(Boolean, default=False, nullable=False)
    admin_approved_by = Column(String(255), nullable=True)
    admin_approver_id = Column(Integer, nullable=True)
    admin_approved_at = Column(DateTime(timezone=True), nullable=True)
    finance_approved = Column(Boolean, default=False, nullable=False)
    finance_approved_by = Column(String(255), nullable=True)
    finance_approver_id = Column(Integer, nullable=True)
    finance_approved_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(Enum(MoneyRequestStatus), default=MoneyRequestStatus.PENDING, nullable=False, index=True)

    # Payout channel
    payment_channel = Column(Enum(PaymentChannel), default=PaymentChannel.CASH, nullable=False)
    phone_number = Column(String(20), nullable=True)

    # Rejection
    rejection_reason = Column(Enum(RejectionReason), nullable=True)
    rejection_comments = Column(Text, nullable=True)
    rejected_by = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<MoneyRequest(id={self.id}, type='{self.request_type.value}', stage='{self.approval_stage.value}')>"
