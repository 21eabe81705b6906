"""
Eligibility Window Evaluator (Domain Logic).

Computes how much an account may currently request under the weekly
lunch allowance or the monthly salary policy. Every figure is recomputed
from attendance, requests and salary inputs on each call.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.core.clock import utcnow, local_day, local_start_of_day, local_end_of_day
from fincore.app.core.config import settings
from fincore.app.core.exceptions import (
    ResourceNotFoundError, InvalidWindowError, InsufficientAllowanceError
)
from fincore.app.core.reliability import storage_guard
from fincore.app.domain.eligibility import windows
from fincore.app.domain.money import ZERO, to_money, format_ugx
from fincore.app.domain.requests.kinds import EligibilityPolicy, rule_for
from fincore.app.models.account import Account
from fincore.app.models.attendance import AttendanceRecord
from fincore.app.models.money_request import MoneyRequest
from fincore.app.models.salary_inputs import SalaryAdvance, OvertimeAward
from fincore.app.models.finance_enums import (
    MoneyRequestType, MoneyRequestStatus, AttendanceStatus,
    SalaryAdvanceStatus, OvertimeStatus
)

logger = logging.getLogger(__name__)

OPEN_REQUEST_STATUSES = (MoneyRequestStatus.PENDING, MoneyRequestStatus.APPROVED)
RECOVERED_REQUEST_TYPES = (MoneyRequestType.ADVANCE, MoneyRequestType.EMERGENCY)
EARNING_OVERTIME_STATUSES = (OvertimeStatus.PENDING, OvertimeStatus.CLAIMED)


@dataclass
class EligibilityResult:
    request_type: MoneyRequestType
    limit: Optional[Decimal]
    already_used: Decimal
    available: Optional[Decimal]
    window_open: bool
    message: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    @property
    def can_request(self) -> bool:
        if not self.window_open:
            return False
        return self.available is None or self.available > 0


@dataclass
class WeeklyAllowance:
    week_start: date
    week_end: date
    days_attended: int
    total_eligible_amount: Decimal
    amount_requested: Decimal
    balance_available: Decimal


@dataclass
class MonthlySalaryPeriod:
    salary: Decimal
    paid_last_month: Decimal
    advances_owed: Decimal
    overtime_earned: Decimal
    base_available: Decimal
    already_requested: Decimal
    available_amount: Decimal
    window_open: bool
    message: str
    period_start: date
    period_end: date


async def _sum_requests(
    db: AsyncSession,
    account_id: int,
    request_types,
    statuses,
    start: date,
    end: date
) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(MoneyRequest.amount), 0)).where(
            MoneyRequest.user_id == account_id,
            MoneyRequest.request_type.in_(request_types),
            MoneyRequest.status.in_(statuses),
            MoneyRequest.created_at >= local_start_of_day(start),
            MoneyRequest.created_at <= local_end_of_day(end)
        )
    )
    return to_money(result.scalar_one())


class WeeklyAllowancePolicy:
    """Lunch allowance: 2,500 per day attended, capped at 15,000 per week."""

    @staticmethod
    async def compute(db: AsyncSession, account_id: int, as_of: datetime) -> WeeklyAllowance:
        week = windows.week_window(local_day(as_of))

        attended = await db.execute(
            select(func.count(AttendanceRecord.id)).where(
                AttendanceRecord.account_id == account_id,
                AttendanceRecord.status == AttendanceStatus.PRESENT,
                AttendanceRecord.date >= week.start,
                AttendanceRecord.date <= week.end
            )
        )
        days_attended = int(attended.scalar_one() or 0)

        eligible = min(
            Decimal(settings.lunch_weekly_cap),
            Decimal(days_attended) * Decimal(settings.lunch_daily_rate)
        )
        requested = await _sum_requests(
            db, account_id, [MoneyRequestType.LUNCH_REFRESHMENT], OPEN_REQUEST_STATUSES,
            week.start, week.end
        )

        return WeeklyAllowance(
            week_start=week.start,
            week_end=week.end,
            days_attended=days_attended,
            total_eligible_amount=to_money(eligible),
            amount_requested=requested,
            balance_available=max(ZERO, to_money(eligible) - requested),
        )

    @staticmethod
    async def evaluate(
        db: AsyncSession,
        account: Account,
        request_type: MoneyRequestType,
        as_of: datetime
    ) -> EligibilityResult:
        allowance = await WeeklyAllowancePolicy.compute(db, account.id, as_of)

        if allowance.balance_available > 0:
            message = f"{format_ugx(allowance.balance_available)} of this week's lunch allowance is available"
        elif allowance.days_attended == 0:
            message = "No attendance recorded this week, lunch allowance is 0"
        else:
            message = "This week's lunch allowance has been fully requested"

        return EligibilityResult(
            request_type=request_type,
            limit=allowance.total_eligible_amount,
            already_used=allowance.amount_requested,
            available=allowance.balance_available,
            window_open=True,
            message=message,
            window_start=local_start_of_day(allowance.week_start),
            window_end=local_end_of_day(allowance.week_end),
        )


class MonthlySalaryPolicy:
    """
    Salary-based requests.

    limit = salary - paid_last_month - advances_owed + overtime_earned
    Mid-month and end-month requests are additionally gated by calendar
    windows; advance and emergency requests are always open.
    """

    @staticmethod
    def salary_period(request_type: MoneyRequestType, today: date) -> tuple[date, windows.DayRange]:
        """Salary month (first day) and the day range its requests are counted in."""
        if request_type == MoneyRequestType.END_MONTH:
            salary_month = windows.end_month_salary_month(today)
            return salary_month, windows.end_month_period(salary_month)
        salary_month = windows.first_of_month(today)
        return salary_month, windows.calendar_month(salary_month)

    @staticmethod
    def window_status(request_type: MoneyRequestType, today: date, salary_month: date) -> tuple[bool, str]:
        if request_type == MoneyRequestType.MID_MONTH:
            window = windows.mid_month_window(today)
            if not window.contains(today):
                return False, (
                    f"Mid-month requests are only accepted between day {settings.mid_month_start_day} "
                    f"and day {settings.mid_month_end_day} of the month"
                )
        elif request_type == MoneyRequestType.END_MONTH:
            if not windows.end_month_window(salary_month).contains(today):
                return False, (
                    "End-month requests are only accepted from the last day of the month "
                    f"to day {settings.end_month_closing_day} of the next month"
                )
        return True, ""

    @staticmethod
    async def advances_owed(db: AsyncSession, account_id: int) -> Decimal:
        result = await db.execute(
            select(SalaryAdvance).where(
                SalaryAdvance.account_id == account_id,
                SalaryAdvance.status == SalaryAdvanceStatus.ACTIVE
            )
        )
        owed = ZERO
        for advance in result.scalars().all():
            owed += min(to_money(advance.minimum_payment), to_money(advance.remaining_balance))
        return to_money(owed)

    @staticmethod
    async def overtime_earned(db: AsyncSession, account_id: int, month: windows.DayRange) -> Decimal:
        result = await db.execute(
            select(func.coalesce(func.sum(OvertimeAward.amount), 0)).where(
                OvertimeAward.account_id == account_id,
                OvertimeAward.status.in_(EARNING_OVERTIME_STATUSES),
                OvertimeAward.created_at >= local_start_of_day(month.start),
                OvertimeAward.created_at <= local_end_of_day(month.end)
            )
        )
        return to_money(result.scalar_one())

    @staticmethod
    async def compute(
        db: AsyncSession,
        account: Account,
        request_type: MoneyRequestType,
        as_of: datetime
    ) -> MonthlySalaryPeriod:
        today = local_day(as_of)
        salary_month, period = MonthlySalaryPolicy.salary_period(request_type, today)
        month = windows.calendar_month(salary_month)
        last_month = windows.calendar_month(windows.previous_month(salary_month))

        salary = to_money(account.monthly_salary)
        paid_last_month = await _sum_requests(
            db, account.id, RECOVERED_REQUEST_TYPES, [MoneyRequestStatus.APPROVED],
            last_month.start, last_month.end
        )
        advances_owed = await MonthlySalaryPolicy.advances_owed(db, account.id)
        overtime_earned = await MonthlySalaryPolicy.overtime_earned(db, account.id, month)
        already_requested = await _sum_requests(
            db, account.id, [request_type], OPEN_REQUEST_STATUSES, period.start, period.end
        )

        base_available = salary - paid_last_month - advances_owed + overtime_earned
        available = max(ZERO, base_available - already_requested)

        window_open, message = MonthlySalaryPolicy.window_status(request_type, today, salary_month)
        if window_open:
            if available > 0:
                message = f"You can request up to {format_ugx(available)}"
            else:
                message = "Your salary allowance for this month has been fully requested"

        return MonthlySalaryPeriod(
            salary=salary,
            paid_last_month=paid_last_month,
            advances_owed=advances_owed,
            overtime_earned=overtime_earned,
            base_available=to_money(base_available),
            already_requested=already_requested,
            available_amount=to_money(available),
            window_open=window_open,
            message=message,
            period_start=period.start,
            period_end=period.end,
        )

    @staticmethod
    async def evaluate(
        db: AsyncSession,
        account: Account,
        request_type: MoneyRequestType,
        as_of: datetime
    ) -> EligibilityResult:
        period = await MonthlySalaryPolicy.compute(db, account, request_type, as_of)
        return EligibilityResult(
            request_type=request_type,
            limit=period.base_available,
            already_used=period.already_requested,
            available=period.available_amount,
            window_open=period.window_open,
            message=period.message,
            window_start=local_start_of_day(period.period_start),
            window_end=local_end_of_day(period.period_end),
        )


class OpenPolicy:
    """Categories limited only by their amount floor and step."""

    @staticmethod
    async def evaluate(
        db: AsyncSession,
        account: Account,
        request_type: MoneyRequestType,
        as_of: datetime
    ) -> EligibilityResult:
        return EligibilityResult(
            request_type=request_type,
            limit=None,
            already_used=ZERO,
            available=None,
            window_open=True,
            message=f"{request_type.value} requests must be {rule_for(request_type).amount.describe()}",
        )


POLICIES = {
    EligibilityPolicy.WEEKLY: WeeklyAllowancePolicy,
    EligibilityPolicy.MONTHLY: MonthlySalaryPolicy,
    EligibilityPolicy.NONE: OpenPolicy,
}


class EligibilityEvaluator:

    @staticmethod
    async def _load_account(db: AsyncSession, account_id: int) -> Account:
        account = await db.get(Account, account_id)
        if not account:
            raise ResourceNotFoundError("Account", account_id)
        return account

    @staticmethod
    async def evaluate(
        db: AsyncSession,
        account_id: int,
        request_type: MoneyRequestType,
        as_of: Optional[datetime] = None
    ) -> EligibilityResult:
        """
        Evaluate what `account_id` may request right now.

        Outside a calendar-gated window the result carries window_open=False
        and the policy message; nothing is raised.

        Args:
            db: Database session
            account_id: Requesting account
            request_type: Money request category
            as_of: Server time (defaults to now)

        Returns:
            EligibilityResult
        """
        request_type = MoneyRequestType(request_type)
        moment = as_of or utcnow()
        policy = POLICIES[rule_for(request_type).policy]

        async with storage_guard("evaluate_eligibility"):
            account = await EligibilityEvaluator._load_account(db, account_id)
            return await policy.evaluate(db, account, request_type, moment)

    @staticmethod
    async def ensure_submittable(
        db: AsyncSession,
        account_id: int,
        request_type: MoneyRequestType,
        amount: Decimal,
        as_of: Optional[datetime] = None
    ) -> EligibilityResult:
        """
        Raise unless `amount` may be submitted now.

        Raises:
            InvalidWindowError: Outside a calendar-gated window
            InsufficientAllowanceError: Amount exceeds what is still available
        """
        result = await EligibilityEvaluator.evaluate(db, account_id, request_type, as_of)

        if not result.window_open:
            logger.warning(
                "Rejected %s request for account %s: window closed",
                result.request_type.value, account_id
            )
            raise InvalidWindowError(result.message, details={"request_type": result.request_type.value})

        if result.available is not None and amount > result.available:
            logger.warning(
                "Rejected %s request for account %s: %s exceeds %s",
                result.request_type.value, account_id, amount, result.available
            )
            message = result.message if result.available <= 0 else None
            raise InsufficientAllowanceError(amount, result.available, message=message)

        return result

    @staticmethod
    async def weekly_allowance(
        db: AsyncSession,
        account_id: int,
        as_of: Optional[datetime] = None
    ) -> WeeklyAllowance:
        async with storage_guard("weekly_allowance"):
            await EligibilityEvaluator._load_account(db, account_id)
            return await WeeklyAllowancePolicy.compute(db, account_id, as_of or utcnow())

    @staticmethod
    async def monthly_period(
        db: AsyncSession,
        account_id: int,
        request_type: MoneyRequestType,
        as_of: Optional[datetime] = None
    ) -> MonthlySalaryPeriod:
        request_type = MoneyRequestType(request_type)
        if rule_for(request_type).policy != EligibilityPolicy.MONTHLY:
            raise InvalidWindowError(
                f"{request_type.value} requests are not governed by the monthly salary policy",
                details={"request_type": request_type.value}
            )
        async with storage_guard("monthly_period"):
            account = await EligibilityEvaluator._load_account(db, account_id)
            return await MonthlySalaryPolicy.compute(db, account, request_type, as_of or utcnow())
