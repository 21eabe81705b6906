"""
Failure Injection Tests.

Validates that operations fail closed when the store or the lock service
is unreachable, and that the payout circuit breaker short-circuits.
"""

import pytest
from datetime import date

from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from fincore.app.main import app
from fincore.app.core.clock import local_moment
from fincore.app.core.exceptions import StorageUnavailableError, InsufficientBalanceError
from fincore.app.core.redis_client import get_redis
from fincore.app.core.reliability import CircuitBreaker, CircuitOpenError
from fincore.app.domain.ledger.balance_calculator import BalanceCalculator
from fincore.app.domain.requests import lifecycle
from fincore.app.models.money_request import MoneyRequest
from fincore.app.models.finance_enums import MoneyRequestType, WithdrawalChannel, WithdrawalStatus

NOW = local_moment(date(2026, 10, 19), 10)


class UnreachableRedis:
    async def set(self, *args, **kwargs):
        raise RedisConnectionError("Connection refused")

    async def get(self, key):
        raise RedisConnectionError("Connection refused")

    async def delete(self, key):
        raise RedisConnectionError("Connection refused")

    async def ping(self):
        raise RedisConnectionError("Connection refused")



class ReleaseFailsRedis:
    """Grants the lock, then drops the connection before it is released."""

    async def set(self, key, value, ex=None, nx=False):
        return True

    async def get(self, key):
        raise RedisConnectionError("Connection reset by peer")

    async def delete(self, key):
        raise RedisConnectionError("Connection reset by peer")

@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=1)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout(mocker):
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=30)

    async def failing_func():
        raise ValueError("Boom")

    async def ok_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    # Past the reset timeout the breaker lets one trial call through
    mocker.patch("fincore.app.core.reliability.time.time", return_value=cb.last_failure_time + 31)
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"


@pytest.mark.asyncio
async def test_database_outage_fails_closed(db_session, employee, mocker):
    account_id = employee.id
    mocker.patch.object(
        db_session, "execute",
        side_effect=OperationalError("SELECT", {}, Exception("server closed the connection"))
    )

    with pytest.raises(StorageUnavailableError) as exc:
        await BalanceCalculator.get_account_snapshot(db_session, account_id)

    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_lock_service_outage_rejects_submission(db_session, employee):
    account_id = employee.id

    with pytest.raises(StorageUnavailableError):
        await lifecycle.submit_money_request(
            db_session, UnreachableRedis(), account_id, MoneyRequestType.BONUS, "5000", "Target met", now=NOW
        )

    result = await db_session.execute(select(func.count(MoneyRequest.id)))
    assert result.scalar_one() == 0


@pytest.mark.asyncio
async def test_lock_service_outage_returns_503(client, employee, auth_headers):
    app.dependency_overrides[get_redis] = lambda: UnreachableRedis()

    response = await client.post(
        "/v1/money-requests",
        json={"request_type": "bonus", "amount": "5000", "reason": "Target met"},
        headers=auth_headers(employee)
    )

    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_STORAGE_001"


@pytest.mark.asyncio
async def test_health_reports_lock_service_down(client, mocker):
    mocker.patch("fincore.app.main.ping_redis", return_value=False)

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["redis"] == "down"



@pytest.mark.asyncio
async def test_lock_release_failure_keeps_domain_error(db_session, employee):
    account_id = employee.id

    with pytest.raises(InsufficientBalanceError):
        await lifecycle.submit_withdrawal_request(
            db_session, ReleaseFailsRedis(), account_id, "20000", WithdrawalChannel.CASH, None, now=NOW
        )


@pytest.mark.asyncio
async def test_lock_release_failure_keeps_committed_result(db_session, employee, post_entry):
    await post_entry(employee.id, 50000)

    withdrawal = await lifecycle.submit_withdrawal_request(
        db_session, ReleaseFailsRedis(), employee.id, "20000", WithdrawalChannel.CASH, None, now=NOW
    )

    assert withdrawal.status == WithdrawalStatus.PENDING
