"""
Money Request Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from fincore.app.domain.money import MAX_AMOUNT
from fincore.app.models.finance_enums import (
    MoneyRequestType, ApprovalStage, MoneyRequestStatus, PaymentChannel, RejectionReason
)


class MoneyRequestCreate(BaseModel):
    """Schema for submitting a money request."""
    request_type: MoneyRequestType
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    reason: str = Field(..., min_length=1, max_length=2000)
    payment_channel: PaymentChannel = PaymentChannel.CASH
    phone_number: Optional[str] = Field(None, max_length=20)


class RejectionCreate(BaseModel):
    """Rejection payload shared by all request kinds."""
    reason: RejectionReason
    comments: Optional[str] = Field(None, max_length=2000)


class MoneyRequestResponse(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    reason: str
    request_type: MoneyRequestType
    requested_by: Optional[str]
    approval_stage: ApprovalStage
    status: MoneyRequestStatus
    admin_approved: bool
    admin_approved_by: Optional[str]
    admin_approved_at: Optional[datetime]
    finance_approved: bool
    finance_approved_by: Optional[str]
    finance_approved_at: Optional[datetime]
    payment_channel: PaymentChannel
    phone_number: Optional[str]
    rejection_reason: Optional[RejectionReason]
    rejection_comments: Optional[str]
    rejected_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
