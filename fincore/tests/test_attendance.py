"""
Attendance Tests.

Attendance is the input of the weekly lunch allowance.
"""

import pytest
from datetime import date

from sqlalchemy import select, func

from fincore.app.core.exceptions import ResourceNotFoundError
from fincore.app.models.attendance import AttendanceRecord
from fincore.app.models.finance_enums import AttendanceStatus
from fincore.app.services.attendance import mark_attendance, bulk_mark_attendance

DAY = date(2026, 10, 19)


@pytest.mark.asyncio
async def test_remarking_a_day_overwrites(db_session, employee):
    await mark_attendance(db_session, employee.id, DAY, AttendanceStatus.ABSENT, "Supervisor")
    record = await mark_attendance(
        db_session, employee.id, DAY, AttendanceStatus.PRESENT, "Supervisor", notes="Arrived late"
    )

    assert record.status == AttendanceStatus.PRESENT
    assert record.notes == "Arrived late"

    result = await db_session.execute(select(func.count(AttendanceRecord.id)))
    assert result.scalar_one() == 1


@pytest.mark.asyncio
async def test_unknown_account_cannot_be_marked(db_session):
    with pytest.raises(ResourceNotFoundError):
        await mark_attendance(db_session, 4242, DAY, AttendanceStatus.PRESENT, "Supervisor")


@pytest.mark.asyncio
async def test_bulk_marking(db_session, employee, account_factory):
    other = await account_factory()

    records = await bulk_mark_attendance(
        db_session, [employee.id, other.id], DAY, AttendanceStatus.LEAVE, "Supervisor"
    )

    assert {r.account_id for r in records} == {employee.id, other.id}
    assert all(r.status == AttendanceStatus.LEAVE for r in records)


@pytest.mark.asyncio
async def test_attendance_endpoint_for_approvers(client, admin, employee, auth_headers):
    response = await client.post(
        "/v1/attendance",
        json={"account_ids": [employee.id], "date": "2026-10-19", "status": "present"},
        headers=auth_headers(admin)
    )

    assert response.status_code == 200
    data = response.json()
    assert data[0]["account_id"] == employee.id
    assert data[0]["marked_by"] == "Brian Admin"


@pytest.mark.asyncio
async def test_employees_cannot_mark_attendance(client, employee, auth_headers):
    response = await client.post(
        "/v1/attendance",
        json={"account_ids": [employee.id], "date": "2026-10-19"},
        headers=auth_headers(employee)
    )
    assert response.status_code == 403
