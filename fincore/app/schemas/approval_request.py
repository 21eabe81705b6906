"""
Approval Request and Modification Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Any, Dict
from fincore.app.domain.money import MAX_AMOUNT
from fincore.app.models.finance_enums import (
    ApprovalRequestStatus, ApprovalStage, ApprovalPriority, RejectionReason, ModificationStatus
)


class ApprovalRequestCreate(BaseModel):
    """Schema for submitting a generic approval request."""
    type: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    department: str = Field(..., min_length=1, max_length=100)
    priority: ApprovalPriority = ApprovalPriority.MEDIUM
    details: Optional[Dict[str, Any]] = None
    daterequested: Optional[date] = None


class ApprovalRequestResponse(BaseModel):
    id: int
    type: str
    title: str
    description: Optional[str]
    amount: Decimal
    department: str
    priority: ApprovalPriority
    requestedby: str
    requested_by_id: int
    daterequested: date
    status: ApprovalRequestStatus
    approval_stage: ApprovalStage
    admin_approved: bool
    admin_approved_by: Optional[str]
    admin_approved_at: Optional[datetime]
    finance_approved: bool
    finance_approved_by: Optional[str]
    finance_approved_at: Optional[datetime]
    details: Optional[Dict[str, Any]]
    rejection_reason: Optional[RejectionReason]
    rejection_comments: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ModificationCreate(BaseModel):
    """Send an approval request back to a department."""
    target_department: str = Field(..., min_length=1, max_length=100)
    reason: str = Field(..., min_length=1, max_length=100)
    comments: Optional[str] = None


class ModificationChanges(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0, le=MAX_AMOUNT)
    priority: Optional[ApprovalPriority] = None
    details: Optional[Dict[str, Any]] = None


class ModificationComplete(BaseModel):
    changes: ModificationChanges = Field(default_factory=ModificationChanges)
    comments: Optional[str] = None


class ModificationResponse(BaseModel):
    id: int
    approval_request_id: int
    requested_by: str
    requested_by_department: str
    target_department: str
    reason: str
    comments: Optional[str]
    status: ModificationStatus
    created_at: datetime
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True
