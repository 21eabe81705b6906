"""
Workflow Audit API Endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from fincore.app.db.session import get_db
from fincore.app.core.guards import require_role, APPROVER_ROLES
from fincore.app.models.finance_enums import WorkflowAction
from fincore.app.schemas.workflow import WorkflowHistoryResponse, WorkflowStepResponse
from fincore.app.services import audit

router = APIRouter(prefix="/workflow", tags=["Workflow Audit"])


@router.get("/departments/{department}", response_model=List[WorkflowStepResponse])
async def get_department_activity(
    department: str,
    action: Optional[WorkflowAction] = None,
    limit: int = 50,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await audit.get_department_activity(db, department, action, min(limit, 200))


@router.get("/{payment_id}", response_model=WorkflowHistoryResponse)
async def get_workflow_history(
    payment_id: str,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Ordered history of one request, oldest step first."""
    steps = await audit.get_history(db, payment_id)
    return {"payment_id": payment_id, "steps": steps}
