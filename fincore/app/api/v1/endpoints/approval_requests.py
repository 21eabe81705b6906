"""
Approval Request API Endpoints.

Generic requests (procurement, requisitions, linked payments) that need
both Admin and Finance approval, plus modification round-trips.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from fincore.app.db.session import get_db
from fincore.app.core.redis_client import get_redis
from fincore.app.core.dependencies import get_current_user
from fincore.app.core.guards import require_role, APPROVER_ROLES
from fincore.app.domain.actor import Actor
from fincore.app.domain.approvals import orchestrator
from fincore.app.domain.requests import queries
from fincore.app.domain.requests.lifecycle import submit_approval_request
from fincore.app.models.finance_enums import ApprovalStage
from fincore.app.schemas.money_request import RejectionCreate
from fincore.app.schemas.approval_request import (
    ApprovalRequestCreate, ApprovalRequestResponse,
    ModificationCreate, ModificationComplete, ModificationResponse
)

router = APIRouter(prefix="/approval-requests", tags=["Approval Requests"])
modifications_router = APIRouter(prefix="/modifications", tags=["Modification Requests"])


@router.post("", response_model=ApprovalRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_approval_request(
    payload: ApprovalRequestCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await submit_approval_request(
        db, redis,
        account_id=current_user["user_id"],
        type=payload.type,
        title=payload.title,
        amount=payload.amount,
        department=payload.department,
        description=payload.description,
        priority=payload.priority,
        details=payload.details,
        daterequested=payload.daterequested
    )


@router.get("/pending", response_model=List[ApprovalRequestResponse])
async def list_pending_approval_requests(
    stage: Optional[ApprovalStage] = None,
    department: Optional[str] = None,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await queries.list_pending_approval_requests(db, stage, department)


@router.post("/{request_id}/approve", response_model=ApprovalRequestResponse)
async def approve_approval_request(
    request_id: int,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await orchestrator.approve_approval_request(db, redis, request_id, Actor.from_token(current_user))


@router.post("/{request_id}/reject", response_model=ApprovalRequestResponse)
async def reject_approval_request(
    request_id: int,
    payload: RejectionCreate,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await orchestrator.reject_approval_request(
        db, redis, request_id, Actor.from_token(current_user), payload.reason, payload.comments
    )


@router.post(
    "/{request_id}/modification",
    response_model=ModificationResponse,
    status_code=status.HTTP_201_CREATED
)
async def request_modification(
    request_id: int,
    payload: ModificationCreate,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Send the request back to a department for changes."""
    return await orchestrator.request_modification(
        db, redis, request_id, Actor.from_token(current_user),
        target_department=payload.target_department,
        reason=payload.reason,
        comments=payload.comments
    )


@modifications_router.get("/pending", response_model=List[ModificationResponse])
async def list_pending_modifications(
    department: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await orchestrator.get_pending_modifications(db, department)


@modifications_router.post("/{modification_id}/complete", response_model=ModificationResponse)
async def complete_modification(
    modification_id: int,
    payload: ModificationComplete,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Apply the requested changes; both approvers must review again."""
    return await orchestrator.complete_modification(
        db, redis, modification_id, Actor.from_token(current_user),
        changes=payload.changes.model_dump(exclude_none=True),
        comments=payload.comments
    )
