"""
Withdrawal Request database model.

Draws down already-earned wallet balance.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Numeric
from sqlalchemy.sql import func
from fincore.app.db.session import Base
from fincore.app.models.finance_enums import WithdrawalChannel, WithdrawalStatus, RejectionReason


class WithdrawalRequest(Base):
    """
    Withdrawal Request model.

    Single-tier approval: PENDING -> APPROVED -> PROCESSING -> COMPLETED | FAILED.
    While pending, approved or processing the amount is reserved against
    the account's available_to_request. The ledger debit is written only
    on COMPLETED.
    """
    __tablename__ = "withdrawal_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    request_ref = Column(String(40), unique=True, nullable=False)

    amount = Column(Numeric(14, 2), nullable=False)
    phone_number = Column(String(20), nullable=True)
    channel = Column(Enum(WithdrawalChannel), default=WithdrawalChannel.ZENGAPAY, nullable=False)

    status = Column(Enum(WithdrawalStatus), default=WithdrawalStatus.PENDING, nullable=False, index=True)

    # Approval Flow
    approved_by = Column(String(255), nullable=True)
    approver_id = Column(Integer, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Settlement Flow
    # Reference sent to the payout gateway; set before the transfer is attempted
    payout_reference = Column(String(40), unique=True, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    transaction_reference = Column(String(120), nullable=True)
    failure_reason = Column(Text, nullable=True)

    # Rejection
    rejection_reason = Column(Enum(RejectionReason), nullable=True)
    rejection_comments = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<WithdrawalRequest(id={self.id}, status='{self.status.value}', amount={self.amount})>"
