"""
Wallet API Endpoints.

Derived balances: wallet, reserved withdrawals, available to request.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.db.session import get_db
from fincore.app.core.dependencies import get_current_user
from fincore.app.core.guards import ensure_self_or_approver
from fincore.app.domain.ledger.balance_calculator import BalanceCalculator
from fincore.app.schemas.wallet import AccountSnapshotResponse

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("/me", response_model=AccountSnapshotResponse)
async def get_my_wallet(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Balances of the authenticated account."""
    snapshot = await BalanceCalculator.get_account_snapshot(db, current_user["user_id"])
    return snapshot.to_dict()


@router.get("/{account_id}", response_model=AccountSnapshotResponse)
async def get_account_wallet(
    account_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Balances of any account (Admin/Finance) or your own."""
    ensure_self_or_approver(account_id, current_user)
    snapshot = await BalanceCalculator.get_account_snapshot(db, account_id)
    return snapshot.to_dict()
