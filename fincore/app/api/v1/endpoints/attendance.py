"""
Attendance and Payroll API Endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from fincore.app.db.session import get_db
from fincore.app.core.guards import require_role, require_admin, APPROVER_ROLES
from fincore.app.domain.ledger.salary_crediting import SalaryCreditJob
from fincore.app.schemas.attendance import AttendanceMark, AttendanceResponse, CreditRunResponse
from fincore.app.services.attendance import bulk_mark_attendance

router = APIRouter(prefix="/attendance", tags=["Attendance"])
payroll_router = APIRouter(prefix="/payroll", tags=["Payroll"])


@router.post("", response_model=List[AttendanceResponse])
async def mark_attendance(
    payload: AttendanceMark,
    current_user: dict = Depends(require_role(APPROVER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Mark attendance for one or more accounts on one day."""
    marked_by = current_user.get("full_name") or current_user.get("sub")
    return await bulk_mark_attendance(db, payload.account_ids, payload.date, payload.status, marked_by)


@payroll_router.post("/daily-credits/run", response_model=CreditRunResponse)
async def run_daily_salary_credits(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Credit today's salary (and backfill missed working days) to every salaried account."""
    return await SalaryCreditJob.run(db)
