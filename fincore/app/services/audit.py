"""
Workflow audit trail service.

Appends one immutable step per request transition and reads the ordered
history back for display and compliance printing.
"""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, or_

from fincore.app.core.clock import utcnow
from fincore.app.core.reliability import storage_guard
from fincore.app.models.workflow_step import WorkflowStep
from fincore.app.models.finance_enums import WorkflowAction, RequestKind

logger = logging.getLogger(__name__)


class Department:
    """Standardized department names used on workflow steps."""
    ADMIN = "Admin"
    FINANCE = "Finance"
    EMPLOYEE = "Employee"
    OPERATIONS = "Operations"
    PAYROLL = "Payroll"


def money_request_key(request_id: int) -> str:
    return f"money:{request_id}"


def withdrawal_key(request_id: int) -> str:
    return f"withdrawal:{request_id}"


async def append_step(
    db: AsyncSession,
    payment_id: str,
    request_kind: RequestKind,
    action: WorkflowAction,
    from_department: str,
    to_department: str,
    processed_by: str,
    processed_by_id: Optional[int] = None,
    reason: Optional[str] = None,
    comments: Optional[str] = None,
    timestamp: Optional[datetime] = None
) -> WorkflowStep:
    """
    Append a workflow step.

    The step joins the caller's transaction: it is flushed here and
    committed together with the transition it records.

    Args:
        db: Database session
        payment_id: Request key (see money_request_key / withdrawal_key) or linked payment id
        request_kind: Table the key points into
        action: Transition performed
        from_department: Department that acted
        to_department: Department the request moves to
        processed_by: Display name of the actor
        processed_by_id: Account ID of the actor
        reason: Rejection or modification reason code
        comments: Free text
        timestamp: Server time of the transition (defaults to now)

    Returns:
        Created WorkflowStep instance

    Raises:
        StorageUnavailableError: If the store cannot be reached
    """
    step = WorkflowStep(
        payment_id=payment_id,
        request_kind=request_kind,
        action=action,
        from_department=from_department,
        to_department=to_department,
        processed_by=processed_by,
        processed_by_id=processed_by_id,
        reason=reason,
        comments=comments,
        timestamp=timestamp or utcnow()
    )

    async with storage_guard("append_workflow_step"):
        db.add(step)
        await db.flush()

    logger.info(
        "Workflow step %s on %s by %s (%s -> %s)",
        action.value, payment_id, processed_by, from_department, to_department
    )
    return step


async def get_history(
    db: AsyncSession,
    payment_id: str
) -> list[WorkflowStep]:
    """
    Retrieve the full history of one request, oldest first.

    Args:
        db: Database session
        payment_id: Request key or linked payment id

    Returns:
        List of WorkflowStep instances ordered by timestamp ascending
    """
    query = select(WorkflowStep).where(
        WorkflowStep.payment_id == payment_id
    ).order_by(WorkflowStep.timestamp, WorkflowStep.id)

    async with storage_guard("get_workflow_history"):
        result = await db.execute(query)
        return list(result.scalars().all())


async def get_department_activity(
    db: AsyncSession,
    department: str,
    action: Optional[WorkflowAction] = None,
    limit: int = 50
) -> list[WorkflowStep]:
    """
    Get recent steps a department took part in, most recent first.

    Args:
        db: Database session
        department: Department name (either side of the step)
        action: Filter by action type
        limit: Maximum number of records

    Returns:
        List of workflow steps
    """
    query = select(WorkflowStep).where(
        or_(WorkflowStep.from_department == department, WorkflowStep.to_department == department)
    )

    if action:
        query = query.where(WorkflowStep.action == action)

    query = query.order_by(desc(WorkflowStep.timestamp), desc(WorkflowStep.id)).limit(limit)

    async with storage_guard("get_department_activity"):
        result = await db.execute(query)
        return list(result.scalars().all())
