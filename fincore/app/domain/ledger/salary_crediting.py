"""
Daily Salary Crediting (Domain Logic).

Producer of salary ledger entries. Each working day (Monday to Saturday)
every salaried account is credited monthly_salary / 26, stamped at the
configured credit hour. Missed working days of the current month are
backfilled on the next run. Must be idempotent per account per day.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.core.clock import (
    utcnow, local_day, local_moment, local_start_of_day, local_end_of_day, ensure_aware
)
from fincore.app.core.config import settings
from fincore.app.core.reliability import storage_guard
from fincore.app.domain.ledger.balance_calculator import daily_salary_credit
from fincore.app.models.account import Account
from fincore.app.models.ledger_entry import LedgerEntry
from fincore.app.models.finance_enums import LedgerEntryType

logger = logging.getLogger(__name__)

SALARY_SOURCE = "DAILY_SALARY"
SUNDAY = 6


@dataclass
class CreditRunSummary:
    processed_count: int = 0
    accounts: list[int] = field(default_factory=list)
    working_days: list[date] = field(default_factory=list)
    skipped_reason: Optional[str] = None


def is_working_day(day: date) -> bool:
    return day.weekday() != SUNDAY


def working_days_to_date(today: date) -> list[date]:
    """Working days from the 1st of the month up to and including `today`."""
    days = []
    cursor = today.replace(day=1)
    while cursor <= today:
        if is_working_day(cursor):
            days.append(cursor)
        cursor += timedelta(days=1)
    return days


def credit_reference(day: date, account_id: int, today: date) -> str:
    prefix = "DAILY" if day == today else "BACKFILL"
    return f"{prefix}-{day.isoformat()}-{account_id}"


class SalaryCreditJob:

    @staticmethod
    async def credited_days(db: AsyncSession, account_id: int, first: date, last: date) -> set[date]:
        """Local days in [first, last] that already carry a salary credit."""
        result = await db.execute(
            select(LedgerEntry.created_at).where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.source == SALARY_SOURCE,
                LedgerEntry.created_at >= local_start_of_day(first),
                LedgerEntry.created_at <= local_end_of_day(last)
            )
        )
        return {local_day(ensure_aware(created_at)) for created_at in result.scalars().all()}

    @staticmethod
    async def run(db: AsyncSession, as_of: Optional[datetime] = None) -> CreditRunSummary:
        """
        Credit daily salary to every active, salaried account.

        Flow:
        1. Skip Sundays entirely
        2. Collect working days of the month up to today
        3. For each account, insert the credits not yet posted
        4. Commit per account

        Args:
            db: Database session
            as_of: Server time of the run (defaults to now)

        Returns:
            CreditRunSummary with the number of entries created
        """
        moment = as_of or utcnow()
        today = local_day(moment)
        summary = CreditRunSummary()

        if not is_working_day(today):
            summary.skipped_reason = "Sunday is not a working day"
            logger.info("Salary credit run skipped on %s: %s", today, summary.skipped_reason)
            return summary

        summary.working_days = working_days_to_date(today)

        async with storage_guard("load_salaried_accounts"):
            result = await db.execute(
                select(Account).where(
                    Account.is_active.is_(True),
                    Account.monthly_salary > 0
                ).order_by(Account.id)
            )
            accounts = list(result.scalars().all())

        for account in accounts:
            per_day = daily_salary_credit(account.monthly_salary)
            if per_day <= 0:
                continue

            async with storage_guard("credit_daily_salary"):
                already = await SalaryCreditJob.credited_days(
                    db, account.id, summary.working_days[0], today
                )
                created = 0
                for day in summary.working_days:
                    if day in already:
                        continue
                    db.add(LedgerEntry(
                        account_id=account.id,
                        entry_type=LedgerEntryType.CREDIT,
                        source=SALARY_SOURCE,
                        reference=credit_reference(day, account.id, today),
                        amount=per_day,
                        meta_data={
                            "credit_date": day.isoformat(),
                            "monthly_salary": str(account.monthly_salary),
                            "backfill": day != today,
                        },
                        created_at=local_moment(day, settings.salary_credit_hour)
                    ))
                    created += 1

                if created:
                    await db.commit()

            if created:
                summary.processed_count += created
                summary.accounts.append(account.id)
                logger.info(
                    "Credited %s salary entries of %s to account %s",
                    created, per_day, account.id
                )

        logger.info(
            "Salary credit run for %s finished: %s entries across %s accounts",
            today, summary.processed_count, len(summary.accounts)
        )
        return summary
