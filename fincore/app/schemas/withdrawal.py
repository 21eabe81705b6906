"""
Withdrawal Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from fincore.app.domain.money import MAX_AMOUNT
from fincore.app.models.finance_enums import WithdrawalChannel, WithdrawalStatus, RejectionReason


class WithdrawalCreate(BaseModel):
    """Schema for requesting a withdrawal of earned balance."""
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    channel: WithdrawalChannel = WithdrawalChannel.ZENGAPAY
    phone_number: Optional[str] = Field(None, max_length=20)


class WithdrawalComplete(BaseModel):
    transaction_reference: Optional[str] = Field(None, max_length=120)


class WithdrawalFail(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    # Required when the payout was sent but its outcome was never recorded
    gateway_confirmed: bool = False


class WithdrawalResponse(BaseModel):
    id: int
    user_id: int
    request_ref: str
    amount: Decimal
    channel: WithdrawalChannel
    phone_number: Optional[str]
    status: WithdrawalStatus
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    processed_at: Optional[datetime]
    payout_reference: Optional[str]
    transaction_reference: Optional[str]
    failure_reason: Optional[str]
    rejection_reason: Optional[RejectionReason]
    rejection_comments: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
