"""
Daily Salary Crediting Tests.

October 2026: the 1st is a Thursday, the 4th a Sunday.
A monthly salary of 260,000 credits exactly 10,000 per working day.
"""

import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from fincore.app.core.clock import local_moment
from fincore.app.domain.ledger.balance_calculator import BalanceCalculator
from fincore.app.domain.ledger.salary_crediting import (
    SalaryCreditJob, SALARY_SOURCE, working_days_to_date, credit_reference
)
from fincore.app.models.enums import UserRole
from fincore.app.models.ledger_entry import LedgerEntry


def at(day: date, hour: int = 10):
    return local_moment(day, hour)


async def salary_entries(db_session, account_id):
    result = await db_session.execute(
        select(LedgerEntry).where(
            LedgerEntry.account_id == account_id,
            LedgerEntry.source == SALARY_SOURCE
        ).order_by(LedgerEntry.created_at)
    )
    return list(result.scalars().all())


def test_working_days_skip_sundays():
    days = working_days_to_date(date(2026, 10, 6))
    assert days == [
        date(2026, 10, 1), date(2026, 10, 2), date(2026, 10, 3),
        date(2026, 10, 5), date(2026, 10, 6),
    ]


def test_credit_reference_marks_backfill():
    today = date(2026, 10, 6)
    assert credit_reference(today, 7, today) == "DAILY-2026-10-06-7"
    assert credit_reference(date(2026, 10, 2), 7, today) == "BACKFILL-2026-10-02-7"


@pytest.mark.asyncio
async def test_first_run_backfills_month_to_date(db_session, account_factory):
    account = await account_factory(UserRole.EMPLOYEE, Decimal("260000"))

    summary = await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 6)))

    assert summary.processed_count == 5
    assert summary.accounts == [account.id]

    entries = await salary_entries(db_session, account.id)
    assert [e.reference for e in entries] == [
        f"BACKFILL-2026-10-01-{account.id}",
        f"BACKFILL-2026-10-02-{account.id}",
        f"BACKFILL-2026-10-03-{account.id}",
        f"BACKFILL-2026-10-05-{account.id}",
        f"DAILY-2026-10-06-{account.id}",
    ]
    assert entries[-1].meta_data["backfill"] is False
    assert entries[0].meta_data["credit_date"] == "2026-10-01"

    wallet = await BalanceCalculator.wallet_balance(db_session, account.id)
    assert wallet == Decimal("50000.00")


@pytest.mark.asyncio
async def test_rerun_same_day_is_idempotent(db_session, account_factory):
    account = await account_factory(UserRole.EMPLOYEE, Decimal("260000"))
    await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 6), 9))

    summary = await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 6), 18))

    assert summary.processed_count == 0
    assert len(await salary_entries(db_session, account.id)) == 5


@pytest.mark.asyncio
async def test_next_day_credits_only_the_new_day(db_session, account_factory):
    account = await account_factory(UserRole.EMPLOYEE, Decimal("260000"))
    await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 6)))

    summary = await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 7)))

    assert summary.processed_count == 1
    entries = await salary_entries(db_session, account.id)
    assert entries[-1].reference == f"DAILY-2026-10-07-{account.id}"


@pytest.mark.asyncio
async def test_sunday_run_is_skipped(db_session, account_factory):
    account = await account_factory(UserRole.EMPLOYEE, Decimal("260000"))

    summary = await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 4)))

    assert summary.processed_count == 0
    assert summary.skipped_reason is not None
    assert await salary_entries(db_session, account.id) == []


@pytest.mark.asyncio
async def test_unsalaried_and_inactive_accounts_are_ignored(db_session, account_factory):
    unsalaried = await account_factory(UserRole.ADMIN)
    inactive = await account_factory(UserRole.EMPLOYEE, Decimal("260000"), is_active=False)

    summary = await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 2)))

    assert summary.processed_count == 0
    assert await salary_entries(db_session, unsalaried.id) == []
    assert await salary_entries(db_session, inactive.id) == []


@pytest.mark.asyncio
async def test_credit_stamped_at_configured_hour(db_session, account_factory):
    account = await account_factory(UserRole.EMPLOYEE, Decimal("1000000"))

    await SalaryCreditJob.run(db_session, as_of=at(date(2026, 10, 1), 23))

    entries = await salary_entries(db_session, account.id)
    assert len(entries) == 1
    assert entries[0].amount == Decimal("38461.54")
