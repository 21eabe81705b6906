"""
Request-kind policy table.

Every money request category is dispatched through this table: its amount
floor and step, the approval stage it starts in, and which eligibility
policy limits it.
"""

import enum
from dataclasses import dataclass
from decimal import Decimal

from fincore.app.core.config import settings
from fincore.app.models.finance_enums import MoneyRequestType, ApprovalStage


class EligibilityPolicy(str, enum.Enum):
    WEEKLY = "weekly"  # Attendance-based lunch allowance
    MONTHLY = "monthly"  # Salary-based, optionally calendar-gated
    NONE = "none"  # Floor and step only


@dataclass(frozen=True)
class AmountRule:
    minimum: Decimal
    step: Decimal

    def describe(self) -> str:
        return f"at least {self.minimum:,.0f} in multiples of {self.step:,.0f}"


@dataclass(frozen=True)
class RequestKindRule:
    amount: AmountRule
    initial_stage: ApprovalStage
    policy: EligibilityPolicy
    calendar_gated: bool = False


def _rule(minimum: int, step: int) -> AmountRule:
    return AmountRule(Decimal(minimum), Decimal(step))


def build_rules() -> dict[MoneyRequestType, RequestKindRule]:
    """Build the table from current settings."""
    salary = _rule(settings.salary_min_amount, settings.default_amount_step)
    default = _rule(settings.default_min_amount, settings.default_amount_step)
    lunch = _rule(settings.lunch_min_amount, settings.lunch_amount_step)

    return {
        # Payroll-originated: Finance reviews first
        MoneyRequestType.MID_MONTH: RequestKindRule(
            salary, ApprovalStage.PENDING_FINANCE, EligibilityPolicy.MONTHLY, calendar_gated=True
        ),
        MoneyRequestType.END_MONTH: RequestKindRule(
            salary, ApprovalStage.PENDING_FINANCE, EligibilityPolicy.MONTHLY, calendar_gated=True
        ),
        MoneyRequestType.ADVANCE: RequestKindRule(
            salary, ApprovalStage.PENDING_FINANCE, EligibilityPolicy.MONTHLY
        ),
        MoneyRequestType.EMERGENCY: RequestKindRule(
            salary, ApprovalStage.PENDING_FINANCE, EligibilityPolicy.MONTHLY
        ),
        # Admin-initiated: Admin reviews first
        MoneyRequestType.LUNCH_REFRESHMENT: RequestKindRule(
            lunch, ApprovalStage.PENDING_ADMIN, EligibilityPolicy.WEEKLY
        ),
        MoneyRequestType.BONUS: RequestKindRule(
            default, ApprovalStage.PENDING_ADMIN, EligibilityPolicy.NONE
        ),
        MoneyRequestType.EXPENSE: RequestKindRule(
            default, ApprovalStage.PENDING_ADMIN, EligibilityPolicy.NONE
        ),
    }


REQUEST_KIND_RULES = build_rules()

WITHDRAWAL_AMOUNT_RULE = _rule(settings.withdrawal_min_amount, settings.withdrawal_amount_step)
APPROVAL_REQUEST_INITIAL_STAGE = ApprovalStage.PENDING_ADMIN


def rule_for(request_type: MoneyRequestType) -> RequestKindRule:
    return REQUEST_KIND_RULES[MoneyRequestType(request_type)]
