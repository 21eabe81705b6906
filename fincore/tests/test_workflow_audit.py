"""
Workflow Audit Trail Tests.
"""

import pytest
from datetime import date, timedelta

from fincore.app.core.clock import local_moment
from fincore.app.models.finance_enums import WorkflowAction, RequestKind
from fincore.app.services import audit

START = local_moment(date(2026, 10, 19), 9)


@pytest.fixture
def step(db_session):
    async def _step(payment_id, action, from_department, to_department, minutes=0, **kwargs):
        created = await audit.append_step(
            db_session,
            payment_id=payment_id,
            request_kind=RequestKind.APPROVAL,
            action=action,
            from_department=from_department,
            to_department=to_department,
            processed_by=kwargs.pop("processed_by", "Brian Admin"),
            timestamp=START + timedelta(minutes=minutes),
            **kwargs
        )
        await db_session.commit()
        return created
    return _step


@pytest.mark.asyncio
async def test_history_is_ordered_oldest_first(db_session, step):
    # Inserted out of order on purpose
    await step("PAY-1", WorkflowAction.APPROVED, "Admin", "Finance", minutes=30)
    await step("PAY-1", WorkflowAction.SUBMITTED, "Operations", "Admin", minutes=0)
    await step("PAY-2", WorkflowAction.SUBMITTED, "Operations", "Admin", minutes=5)

    history = await audit.get_history(db_session, "PAY-1")

    assert [s.action for s in history] == [WorkflowAction.SUBMITTED, WorkflowAction.APPROVED]


@pytest.mark.asyncio
async def test_unknown_payment_has_empty_history(db_session):
    assert await audit.get_history(db_session, "PAY-404") == []


@pytest.mark.asyncio
async def test_step_keeps_reason_and_comments(db_session, step):
    await step(
        "PAY-3", WorkflowAction.REJECTED, "Finance", "Operations",
        processed_by="Carol Finance", reason="price_too_high", comments="Quote is 20% above market"
    )

    [rejected] = await audit.get_history(db_session, "PAY-3")
    assert rejected.reason == "price_too_high"
    assert rejected.comments == "Quote is 20% above market"
    assert rejected.processed_by == "Carol Finance"


@pytest.mark.asyncio
async def test_department_activity_matches_either_side(db_session, step):
    await step("PAY-4", WorkflowAction.SUBMITTED, "Operations", "Admin", minutes=0)
    await step("PAY-4", WorkflowAction.APPROVED, "Admin", "Finance", minutes=10)
    await step("PAY-5", WorkflowAction.SUBMITTED, "Operations", "Finance", minutes=20)

    finance = await audit.get_department_activity(db_session, "Finance")
    assert [(s.payment_id, s.action) for s in finance] == [
        ("PAY-5", WorkflowAction.SUBMITTED),
        ("PAY-4", WorkflowAction.APPROVED),
    ]

    approvals = await audit.get_department_activity(db_session, "Admin", action=WorkflowAction.APPROVED)
    assert len(approvals) == 1


def test_request_keys():
    assert audit.money_request_key(7) == "money:7"
    assert audit.withdrawal_key(7) == "withdrawal:7"


@pytest.mark.asyncio
async def test_history_endpoint_for_approvers(client, step, finance, auth_headers):
    await step("PAY-6", WorkflowAction.SUBMITTED, "Operations", "Admin")

    response = await client.get("/v1/workflow/PAY-6", headers=auth_headers(finance))

    assert response.status_code == 200
    body = response.json()
    assert body["payment_id"] == "PAY-6"
    assert body["steps"][0]["action"] == "submitted"
    assert body["steps"][0]["to_department"] == "Admin"


@pytest.mark.asyncio
async def test_history_endpoint_forbidden_for_employees(client, employee, auth_headers):
    response = await client.get("/v1/workflow/PAY-6", headers=auth_headers(employee))
    assert response.status_code == 403
