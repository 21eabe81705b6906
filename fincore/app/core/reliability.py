"""
Reliability Utilities.

Includes the Circuit Breaker used in front of the payout gateway and the
translation of driver-level storage failures into StorageUnavailableError.
"""

import time
import logging
from contextlib import asynccontextmanager
from typing import Callable, Any

from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from fincore.app.core.config import settings
from fincore.app.core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    RedisConnectionError,
    RedisTimeoutError,
)


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.
    If 'failure_threshold' failures occur within 'reset_timeout',
    the circuit opens and rejects calls for 'reset_timeout' seconds.
    """
    def __init__(self, failure_threshold: int = 5, reset_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failures = 0
        self.last_failure_time = 0
        self.state = "CLOSED" # CLOSED, OPEN, HALF_OPEN

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.time() - self.last_failure_time > self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError("Circuit is OPEN")

        try:
            result = await func(*args, **kwargs)
            if self.state == "HALF_OPEN":
                self.reset_state()
            return result
        except Exception:
            self.record_failure()
            raise

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = time.time()
        if self.failures >= self.failure_threshold:
            if self.state != "OPEN":
                logger.warning("Circuit opened after %s failures", self.failures)
            self.state = "OPEN"

    def reset_state(self):
        self.failures = 0
        self.state = "CLOSED"


# Global instance for mobile money transfers
payout_circuit_breaker = CircuitBreaker(
    failure_threshold=settings.payout_failure_threshold,
    reset_timeout=settings.payout_reset_timeout,
)


@asynccontextmanager
async def storage_guard(operation: str):
    """
    Fail closed when the store is unreachable.

    Usage:
        async with storage_guard("submit_money_request"):
            ...
    """
    try:
        yield
    except STORAGE_ERRORS as exc:
        logger.error("Storage unavailable during %s: %s", operation, exc)
        raise StorageUnavailableError(f"Storage unavailable during {operation}") from exc
