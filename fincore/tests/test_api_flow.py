"""
End-to-end API Tests.

Exercises the HTTP surface with real tokens: balances, withdrawals,
two-tier approval, audit history and role guards.
"""

import pytest
from decimal import Decimal

from fincore.app.services.account_lock import account_lock_key


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "up"
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client):
    response = await client.get("/v1/wallet/me")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client):
    response = await client.get("/v1/wallet/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"


@pytest.mark.asyncio
async def test_inactive_account_is_forbidden(client, account_factory, auth_headers):
    account = await account_factory(is_active=False)
    response = await client.get("/v1/wallet/me", headers=auth_headers(account))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cash_withdrawal_flow(client, employee, finance, auth_headers, post_entry):
    await post_entry(employee.id, 50000)

    response = await client.get("/v1/wallet/me", headers=auth_headers(employee))
    assert response.status_code == 200
    assert Decimal(response.json()["available_to_request"]) == Decimal("50000")

    response = await client.post(
        "/v1/withdrawals",
        json={"amount": "20000", "channel": "CASH"},
        headers=auth_headers(employee)
    )
    assert response.status_code == 201
    withdrawal = response.json()
    assert withdrawal["status"] == "pending"

    response = await client.get("/v1/wallet/me", headers=auth_headers(employee))
    assert Decimal(response.json()["wallet_balance"]) == Decimal("50000")
    assert Decimal(response.json()["available_to_request"]) == Decimal("30000")

    # A second withdrawal beyond what remains is refused
    response = await client.post(
        "/v1/withdrawals",
        json={"amount": "35000", "channel": "CASH"},
        headers=auth_headers(employee)
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_FUNDS_001"

    # Employees cannot approve
    response = await client.post(f"/v1/withdrawals/{withdrawal['id']}/approve", headers=auth_headers(employee))
    assert response.status_code == 403

    response = await client.post(f"/v1/withdrawals/{withdrawal['id']}/approve", headers=auth_headers(finance))
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = await client.get("/v1/wallet/me", headers=auth_headers(employee))
    assert Decimal(response.json()["wallet_balance"]) == Decimal("30000")
    assert Decimal(response.json()["pending_withdrawals"]) == Decimal("0")


@pytest.mark.asyncio
async def test_mobile_money_withdrawal_flow(client, employee, admin, auth_headers, post_entry, payout_gateway):
    await post_entry(employee.id, 50000)

    response = await client.post(
        "/v1/withdrawals",
        json={"amount": "10000", "channel": "ZENGAPAY", "phone_number": "256772123456"},
        headers=auth_headers(employee)
    )
    withdrawal_id = response.json()["id"]

    response = await client.post(f"/v1/withdrawals/{withdrawal_id}/approve", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["status"] == "processing"
    assert payout_gateway.calls[0][1] == "256772123456"

    response = await client.post(
        f"/v1/withdrawals/{withdrawal_id}/complete",
        json={"transaction_reference": "ZP-CONFIRMED-1"},
        headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["transaction_reference"] == "ZP-CONFIRMED-1"


@pytest.mark.asyncio
async def test_money_request_two_tier_flow(client, employee, admin, finance, auth_headers):
    response = await client.post(
        "/v1/money-requests",
        json={"request_type": "bonus", "amount": "5000", "reason": "Quarter target met"},
        headers=auth_headers(employee)
    )
    assert response.status_code == 201
    request = response.json()
    assert request["approval_stage"] == "pending_admin"
    assert request["requested_by"] == "Amina Employee"

    response = await client.get("/v1/money-requests/pending?stage=pending_admin", headers=auth_headers(admin))
    assert [r["id"] for r in response.json()] == [request["id"]]

    response = await client.post(f"/v1/money-requests/{request['id']}/approve", headers=auth_headers(admin))
    assert response.json()["approval_stage"] == "pending_finance"

    # Admin cannot cast the Finance vote as well
    response = await client.post(f"/v1/money-requests/{request['id']}/approve", headers=auth_headers(admin))
    assert response.status_code == 409

    response = await client.post(f"/v1/money-requests/{request['id']}/approve", headers=auth_headers(finance))
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    response = await client.get(f"/v1/workflow/money:{request['id']}", headers=auth_headers(finance))
    steps = response.json()["steps"]
    assert [s["action"] for s in steps] == ["submitted", "approved", "approved"]
    assert steps[-1]["to_department"] == "Payroll"

    response = await client.get("/v1/money-requests/mine", headers=auth_headers(employee))
    assert response.json()[0]["status"] == "approved"


@pytest.mark.asyncio
async def test_money_request_rejection(client, employee, finance, auth_headers):
    response = await client.post(
        "/v1/money-requests",
        json={"request_type": "expense", "amount": "12000", "reason": "Client dinner"},
        headers=auth_headers(employee)
    )
    request_id = response.json()["id"]

    response = await client.post(
        f"/v1/money-requests/{request_id}/reject",
        json={"reason": "no_demand", "comments": "Not a client meeting"},
        headers=auth_headers(finance)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "no_demand"


@pytest.mark.asyncio
async def test_invalid_payloads_are_422(client, employee, auth_headers):
    headers = auth_headers(employee)

    response = await client.post(
        "/v1/money-requests",
        json={"request_type": "bonus", "amount": "0", "reason": "x"},
        headers=headers
    )
    assert response.status_code == 422

    response = await client.post(
        "/v1/money-requests",
        json={"request_type": "bonus", "amount": "1500", "reason": "Off the step grid"},
        headers=headers
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_002"

    response = await client.post(
        "/v1/money-requests",
        json={"request_type": "holiday", "amount": "5000", "reason": "Unknown type"},
        headers=headers
    )
    assert response.status_code == 422

    response = await client.post(
        "/v1/withdrawals",
        json={"amount": "1e30", "channel": "CASH"},
        headers=headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_locked_account_returns_retryable_conflict(client, redis, employee, auth_headers):
    redis.store[account_lock_key(employee.id)] = "another-worker"

    response = await client.post(
        "/v1/money-requests",
        json={"request_type": "bonus", "amount": "5000", "reason": "Target met"},
        headers=auth_headers(employee)
    )

    assert response.status_code == 409
    assert response.json()["details"]["retryable"] is True


@pytest.mark.asyncio
async def test_wallet_of_another_account(client, employee, admin, account_factory, auth_headers):
    colleague = await account_factory()

    response = await client.get(f"/v1/wallet/{colleague.id}", headers=auth_headers(employee))
    assert response.status_code == 403

    response = await client.get(f"/v1/wallet/{colleague.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["account_id"] == colleague.id

    response = await client.get("/v1/wallet/4242", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_eligibility_endpoints(client, employee, auth_headers):
    headers = auth_headers(employee)

    response = await client.get("/v1/eligibility/bonus", headers=headers)
    assert response.status_code == 200
    assert response.json()["can_request"] is True
    assert response.json()["available"] is None

    response = await client.get("/v1/eligibility/weekly-allowance", headers=headers)
    assert response.status_code == 200
    assert response.json()["days_attended"] == 0

    response = await client.get("/v1/eligibility/advance/period", headers=headers)
    assert response.status_code == 200
    assert Decimal(response.json()["salary"]) == Decimal("1000000")

    response = await client.get("/v1/eligibility/lunch_refreshment/period", headers=headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_approval_request_modification_flow(client, employee, admin, finance, auth_headers):
    response = await client.post(
        "/v1/approval-requests",
        json={
            "type": "procurement", "title": "Pallet jacks", "amount": "2400000",
            "department": "Operations", "priority": "High"
        },
        headers=auth_headers(employee)
    )
    assert response.status_code == 201
    request_id = response.json()["id"]

    await client.post(f"/v1/approval-requests/{request_id}/approve", headers=auth_headers(admin))

    response = await client.post(
        f"/v1/approval-requests/{request_id}/modification",
        json={"target_department": "Operations", "reason": "quote_required"},
        headers=auth_headers(finance)
    )
    assert response.status_code == 201
    modification_id = response.json()["id"]

    response = await client.get("/v1/modifications/pending?department=Operations", headers=auth_headers(employee))
    assert [m["id"] for m in response.json()] == [modification_id]

    response = await client.post(
        f"/v1/modifications/{modification_id}/complete",
        json={"changes": {"amount": "2100000"}, "comments": "Second quote attached"},
        headers=auth_headers(employee)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = await client.get("/v1/approval-requests/pending", headers=auth_headers(admin))
    [pending] = response.json()
    assert Decimal(pending["amount"]) == Decimal("2100000")
    assert pending["approval_stage"] == "pending_admin"
    assert pending["admin_approved"] is False


@pytest.mark.asyncio
async def test_payroll_run_is_admin_only(client, admin, finance, auth_headers):
    response = await client.post("/v1/payroll/daily-credits/run", headers=auth_headers(finance))
    assert response.status_code == 403

    response = await client.post("/v1/payroll/daily-credits/run", headers=auth_headers(admin))
    assert response.status_code == 200
    assert "processed_count" in response.json()


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "trace-42"})
    assert response.headers["X-Correlation-ID"] == "trace-42"
    assert float(response.headers["X-Process-Time"]) >= 0


def test_log_records_carry_correlation_id():
    import logging
    from fincore.app.core.observability import CorrelationIdFilter, correlation_id_var

    record = logging.LogRecord("fincore", logging.INFO, __file__, 1, "msg", None, None)
    token = correlation_id_var.set("trace-7")
    try:
        CorrelationIdFilter().filter(record)
    finally:
        correlation_id_var.reset(token)

    assert record.correlation_id == "trace-7"


@pytest.mark.asyncio
async def test_token_without_role_is_rejected(client, employee):
    from jose import jwt
    from fincore.app.core.config import settings

    token = jwt.encode({"sub": employee.username, "user_id": employee.id}, settings.secret_key, algorithm=settings.algorithm)

    response = await client.get("/v1/wallet/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_minting_requires_identity_claims():
    from fincore.app.core.jwt import create_access_token

    with pytest.raises(ValueError, match="role"):
        create_access_token(data={"sub": "jnakato", "user_id": 3})
