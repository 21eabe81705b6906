"""
Attendance and Payroll Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List
from fincore.app.models.finance_enums import AttendanceStatus


class AttendanceMark(BaseModel):
    """Mark one or more accounts for one day."""
    account_ids: List[int] = Field(..., min_length=1)
    date: date
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: Optional[str] = None


class AttendanceResponse(BaseModel):
    id: int
    account_id: int
    date: date
    status: AttendanceStatus
    marked_by: str
    notes: Optional[str]
    marked_at: datetime

    class Config:
        from_attributes = True


class CreditRunResponse(BaseModel):
    processed_count: int
    accounts: List[int]
    working_days: List[date]
    skipped_reason: Optional[str] = None

    class Config:
        from_attributes = True
