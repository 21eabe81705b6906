"""
Eligibility API Endpoints.

Tells the caller how much they may request right now, and why.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fincore.app.db.session import get_db
from fincore.app.core.dependencies import get_current_user
from fincore.app.domain.eligibility.evaluator import EligibilityEvaluator
from fincore.app.models.finance_enums import MoneyRequestType
from fincore.app.schemas.eligibility import (
    EligibilityResponse, WeeklyAllowanceResponse, MonthlySalaryPeriodResponse
)

router = APIRouter(prefix="/eligibility", tags=["Eligibility"])


@router.get("/weekly-allowance", response_model=WeeklyAllowanceResponse)
async def get_weekly_allowance(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """This week's lunch allowance (Monday to Saturday)."""
    return await EligibilityEvaluator.weekly_allowance(db, current_user["user_id"])


@router.get("/{request_type}/period", response_model=MonthlySalaryPeriodResponse)
async def get_salary_period(
    request_type: MoneyRequestType,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Breakdown of the monthly salary policy for a salary request type."""
    return await EligibilityEvaluator.monthly_period(db, current_user["user_id"], request_type)


@router.get("/{request_type}", response_model=EligibilityResponse)
async def get_eligibility(
    request_type: MoneyRequestType,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await EligibilityEvaluator.evaluate(db, current_user["user_id"], request_type)
    return EligibilityResponse(
        request_type=result.request_type,
        limit=result.limit,
        already_used=result.already_used,
        available=result.available,
        window_open=result.window_open,
        can_request=result.can_request,
        message=result.message,
        window_start=result.window_start,
        window_end=result.window_end,
    )
