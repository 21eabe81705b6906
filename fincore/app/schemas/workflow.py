"""
Workflow Audit Schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List
from fincore.app.models.finance_enums import WorkflowAction, RequestKind


class WorkflowStepResponse(BaseModel):
    id: int
    payment_id: str
    request_kind: RequestKind
    action: WorkflowAction
    from_department: str
    to_department: str
    processed_by: str
    reason: Optional[str]
    comments: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class WorkflowHistoryResponse(BaseModel):
    payment_id: str
    steps: List[WorkflowStepResponse]
