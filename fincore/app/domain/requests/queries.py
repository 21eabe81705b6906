"""
Read-side queries for request queues and histories.
"""

from typing import Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.core.reliability import storage_guard
from fincore.app.models.approval_request import ApprovalRequest
from fincore.app.models.money_request import MoneyRequest
from fincore.app.models.withdrawal_request import WithdrawalRequest
from fincore.app.models.finance_enums import (
    ApprovalStage, MoneyRequestStatus, ApprovalRequestStatus, WithdrawalStatus
)


async def list_money_requests_for(db: AsyncSession, account_id: int, limit: int = 100) -> list[MoneyRequest]:
    query = select(MoneyRequest).where(
        MoneyRequest.user_id == account_id
    ).order_by(desc(MoneyRequest.created_at), desc(MoneyRequest.id)).limit(limit)

    async with storage_guard("list_money_requests"):
        result = await db.execute(query)
        return list(result.scalars().all())


async def list_pending_money_requests(
    db: AsyncSession,
    stage: Optional[ApprovalStage] = None
) -> list[MoneyRequest]:
    """Approval queue, oldest first. `stage` narrows to one approver's turn."""
    query = select(MoneyRequest).where(MoneyRequest.status == MoneyRequestStatus.PENDING)
    if stage:
        query = query.where(MoneyRequest.approval_stage == stage)
    query = query.order_by(MoneyRequest.created_at, MoneyRequest.id)

    async with storage_guard("list_pending_money_requests"):
        result = await db.execute(query)
        return list(result.scalars().all())


async def list_withdrawals_for(db: AsyncSession, account_id: int, limit: int = 100) -> list[WithdrawalRequest]:
    query = select(WithdrawalRequest).where(
        WithdrawalRequest.user_id == account_id
    ).order_by(desc(WithdrawalRequest.created_at), desc(WithdrawalRequest.id)).limit(limit)

    async with storage_guard("list_withdrawals"):
        result = await db.execute(query)
        return list(result.scalars().all())


async def list_withdrawals_by_status(
    db: AsyncSession,
    status: WithdrawalStatus = WithdrawalStatus.PENDING
) -> list[WithdrawalRequest]:
    query = select(WithdrawalRequest).where(
        WithdrawalRequest.status == status
    ).order_by(WithdrawalRequest.created_at, WithdrawalRequest.id)

    async with storage_guard("list_withdrawals_by_status"):
        result = await db.execute(query)
        return list(result.scalars().all())


async def list_pending_approval_requests(
    db: AsyncSession,
    stage: Optional[ApprovalStage] = None,
    department: Optional[str] = None
) -> list[ApprovalRequest]:
    query = select(ApprovalRequest).where(ApprovalRequest.status == ApprovalRequestStatus.PENDING)
    if stage:
        query = query.where(ApprovalRequest.approval_stage == stage)
    if department:
        query = query.where(ApprovalRequest.department == department)
    query = query.order_by(ApprovalRequest.created_at, ApprovalRequest.id)

    async with storage_guard("list_pending_approval_requests"):
        result = await db.execute(query)
        return list(result.scalars().all())
