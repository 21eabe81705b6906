"""
Money Request API Endpoints.

Submission by employees; two-tier approval by Admin and Finance.
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
from fincore.app.domain.requests.lifecycle import submit_money_request
from fincore.app.models.finance_enums import ApprovalStage
from fincore.app.schemas.money_request import MoneyRequestCreate, MoneyRequestResponse, RejectionCreate

router = APIRouter(prefix="/money-requests", tags=["Money Requests"])


@router.post("", response_model=MoneyRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_money_request(
    payload: MoneyRequestCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Submit a money request.

    The amount is checked against the category floor/step and the
    eligibility window before the request is stored.
    """
    actor = Actor.from_token(current_user)
    return await submit_money_request(
        db, redis,
        account_id=actor.id,
        request_type=payload.request_type,
        amount=payload.amount,
        reason=payload.reason,
        payment_channel=payload.payment_channel,
        phone_number=payload.phone_number,
        requested_by=actor.name
    )


@router.get("/mine", response_model=List[MoneyRequestResponse])
async def list_my_money_requests(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await queries.list_money_requests_for(db, current_user["user_id"])


@router.get("/pending", response_model=List[MoneyRequestResponse])
async def list_pending_money_requests(
    stage: Optional[ApprovalStage] = None,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Approval queue, optionally narrowed to one approver's turn."""
    return await queries.list_pending_money_requests(db, stage)


@router.post("/{request_id}/approve", response_model=MoneyRequestResponse)
async def approve_money_request(
    request_id: int,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await orchestrator.approve_money_request(db, redis, request_id, Actor.from_token(current_user))


@router.post("/{request_id}/reject", response_model=MoneyRequestResponse)
async def reject_money_request(
    request_id: int,
    payload: RejectionCreate,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await orchestrator.reject_money_request(
        db, redis, request_id, Actor.from_token(current_user), payload.reason, payload.comments
    )
