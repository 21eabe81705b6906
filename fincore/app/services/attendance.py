"""
Attendance service.

Marks daily attendance, the input of the weekly lunch allowance.
"""

import logging
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from fincore.app.core.clock import utcnow
from fincore.app.core.exceptions import ResourceNotFoundError
from fincore.app.core.reliability import storage_guard
from fincore.app.models.account import Account
from fincore.app.models.attendance import AttendanceRecord
from fincore.app.models.finance_enums import AttendanceStatus

logger = logging.getLogger(__name__)


async def mark_attendance(
    db: AsyncSession,
    account_id: int,
    day: date,
    status: AttendanceStatus,
    marked_by: str,
    notes: Optional[str] = None
) -> AttendanceRecord:
    """
    Record attendance for one account on one day.

    Re-marking the same day overwrites the earlier status.

    Args:
        db: Database session
        account_id: Account being marked
        day: Calendar day (business timezone)
        status: present, absent or leave
        marked_by: Name of the supervisor marking attendance
        notes: Optional remark

    Returns:
        The stored attendance record
    """
    async with storage_guard("mark_attendance"):
        account = await db.get(Account, account_id)
        if not account:
            raise ResourceNotFoundError("Account", account_id)

        result = await db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.account_id == account_id,
                AttendanceRecord.date == day
            )
        )
        record = result.scalar_one_or_none()

        if record:
            record.status = status
            record.marked_by = marked_by
            record.notes = notes
            record.marked_at = utcnow()
        else:
            record = AttendanceRecord(
                account_id=account_id,
                date=day,
                status=status,
                marked_by=marked_by,
                notes=notes,
                marked_at=utcnow()
            )
            db.add(record)

        await db.commit()

    logger.info("Attendance %s for account %s on %s", status.value, account_id, day)
    return record


async def bulk_mark_attendance(
    db: AsyncSession,
    account_ids: list[int],
    day: date,
    status: AttendanceStatus,
    marked_by: str
) -> list[AttendanceRecord]:
    """Mark the same status for several accounts on one day."""
    records = []
    for account_id in account_ids:
        records.append(await mark_attendance(db, account_id, day, status, marked_by))
    return records
