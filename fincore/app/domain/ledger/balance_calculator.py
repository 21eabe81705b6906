"""
Balance Calculator (Domain Logic).

Derives wallet balance, reserved withdrawals and the available-to-request
ceiling from the ledger on every read. No balance is ever cached.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.core.config import settings
from fincore.app.core.exceptions import ResourceNotFoundError
from fincore.app.core.reliability import storage_guard
from fincore.app.domain.money import ZERO, CENT, to_money
from fincore.app.models.account import Account
from fincore.app.models.ledger_entry import LedgerEntry
from fincore.app.models.withdrawal_request import WithdrawalRequest
from fincore.app.models.finance_enums import RESERVING_WITHDRAWAL_STATUSES


@dataclass(frozen=True)
class AccountSnapshot:
    """
    Point-in-time balances for one account.

    `available_to_request` is floored at zero for display. Authorization
    compares against `authorization_ceiling`, which may be negative and
    then blocks every new request.
    """
    account_id: int
    wallet_balance: Decimal
    pending_withdrawals: Decimal

    @property
    def authorization_ceiling(self) -> Decimal:
        return self.wallet_balance - self.pending_withdrawals

    @property
    def available_to_request(self) -> Decimal:
        return max(ZERO, self.authorization_ceiling).quantize(CENT)

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "wallet_balance": self.wallet_balance,
            "pending_withdrawals": self.pending_withdrawals,
            "available_to_request": self.available_to_request,
        }


def daily_salary_credit(base_salary) -> Decimal:
    """Daily credit for a monthly salary: salary / working days, rounded to cents."""
    if not base_salary:
        return ZERO.quantize(CENT)
    per_day = Decimal(str(base_salary)) / Decimal(settings.salary_working_days_per_month)
    return per_day.quantize(CENT, rounding=ROUND_HALF_UP)


class BalanceCalculator:

    @staticmethod
    async def wallet_balance(db: AsyncSession, account_id: int) -> Decimal:
        """Sum of every ledger entry on the account (credits positive, debits negative)."""
        result = await db.execute(
            select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
                LedgerEntry.account_id == account_id
            )
        )
        return to_money(result.scalar_one())

    @staticmethod
    async def pending_withdrawals(db: AsyncSession, account_id: int) -> Decimal:
        """Amounts reserved by withdrawals that are neither settled nor failed."""
        result = await db.execute(
            select(func.coalesce(func.sum(WithdrawalRequest.amount), 0)).where(
                WithdrawalRequest.user_id == account_id,
                WithdrawalRequest.status.in_(RESERVING_WITHDRAWAL_STATUSES)
            )
        )
        return to_money(result.scalar_one())

    @staticmethod
    async def available_to_request(db: AsyncSession, account_id: int) -> Decimal:
        snapshot = await BalanceCalculator.get_account_snapshot(db, account_id)
        return snapshot.available_to_request

    @staticmethod
    async def get_account_snapshot(db: AsyncSession, account_id: int) -> AccountSnapshot:
        """
        Derive the balances of one account.

        Pure read. An account without ledger history yields a zero snapshot.

        Args:
            db: Database session
            account_id: Account to derive

        Returns:
            AccountSnapshot

        Raises:
            ResourceNotFoundError: If the account does not exist
        """
        async with storage_guard("get_account_snapshot"):
            exists = await db.execute(select(Account.id).where(Account.id == account_id))
            if exists.scalar_one_or_none() is None:
                raise ResourceNotFoundError("Account", account_id)

            wallet = await BalanceCalculator.wallet_balance(db, account_id)
            reserved = await BalanceCalculator.pending_withdrawals(db, account_id)

        return AccountSnapshot(
            account_id=account_id,
            wallet_balance=wallet,
            pending_withdrawals=reserved,
        )
