"""
Eligibility Schemas.
"""

from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from fincore.app.models.finance_enums import MoneyRequestType


class EligibilityResponse(BaseModel):
    """What the caller may request now under one category's policy."""
    request_type: MoneyRequestType
    limit: Optional[Decimal]
    already_used: Decimal
    available: Optional[Decimal]
    window_open: bool
    can_request: bool
    message: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None

    class Config:
        from_attributes = True


class WeeklyAllowanceResponse(BaseModel):
    week_start: date
    week_end: date
    days_attended: int
    total_eligible_amount: Decimal
    amount_requested: Decimal
    balance_available: Decimal

    class Config:
        from_attributes = True


class MonthlySalaryPeriodResponse(BaseModel):
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

    class Config:
        from_attributes = True
