"""
Withdrawal API Endpoints.

Employees draw down earned balance; Admin or Finance approve, and the
payout gateway (or a cashier) settles.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from fincore.app.db.session import get_db
from fincore.app.core.redis_client import get_redis
from fincore.app.core.dependencies import get_current_user
from fincore.app.core.guards import require_role, APPROVER_ROLES
from fincore.app.domain.actor import Actor
from fincore.app.domain.approvals import orchestrator
from fincore.app.domain.approvals.payout_gateway import ZengaPayClient, get_payout_gateway
from fincore.app.domain.requests import queries
from fincore.app.domain.requests.lifecycle import submit_withdrawal_request
from fincore.app.models.finance_enums import WithdrawalStatus
from fincore.app.schemas.money_request import RejectionCreate
from fincore.app.schemas.withdrawal import (
    WithdrawalCreate, WithdrawalResponse, WithdrawalComplete, WithdrawalFail
)

router = APIRouter(prefix="/withdrawals", tags=["Withdrawals"])


@router.post("", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
async def create_withdrawal(
    payload: WithdrawalCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await submit_withdrawal_request(
        db, redis,
        account_id=current_user["user_id"],
        amount=payload.amount,
        channel=payload.channel,
        phone_number=payload.phone_number
    )


@router.get("/mine", response_model=List[WithdrawalResponse])
async def list_my_withdrawals(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await queries.list_withdrawals_for(db, current_user["user_id"])


@router.get("/pending", response_model=List[WithdrawalResponse])
async def list_pending_withdrawals(
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await queries.list_withdrawals_by_status(db, WithdrawalStatus.PENDING)


@router.post("/{withdrawal_id}/approve", response_model=WithdrawalResponse)
async def approve_withdrawal(
    withdrawal_id: int,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
    gateway: ZengaPayClient = Depends(get_payout_gateway)
):
    """Approve; cash settles now, mobile money is handed to the gateway."""
    return await orchestrator.approve_withdrawal(
        db, redis, withdrawal_id, Actor.from_token(current_user), gateway=gateway
    )


@router.post("/{withdrawal_id}/reject", response_model=WithdrawalResponse)
async def reject_withdrawal(
    withdrawal_id: int,
    payload: RejectionCreate,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    return await orchestrator.reject_withdrawal(
        db, redis, withdrawal_id, Actor.from_token(current_user), payload.reason, payload.comments
    )


@router.post("/{withdrawal_id}/complete", response_model=WithdrawalResponse)
async def complete_withdrawal(
    withdrawal_id: int,
    payload: WithdrawalComplete,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Gateway confirmed the transfer; post the ledger debit."""
    return await orchestrator.complete_withdrawal(
        db, redis, withdrawal_id, Actor.from_token(current_user),
        transaction_reference=payload.transaction_reference
    )


@router.post("/{withdrawal_id}/fail", response_model=WithdrawalResponse)
async def fail_withdrawal(
    withdrawal_id: int,
    payload: WithdrawalFail,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Release the reservation; an unconfirmed payout needs gateway_confirmed."""
    return await orchestrator.fail_withdrawal(
        db, redis, withdrawal_id, Actor.from_token(current_user), payload.reason,
        gateway_confirmed=payload.gateway_confirmed
    )
