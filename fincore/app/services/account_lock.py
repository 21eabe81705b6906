"""
Account locking service.

Serializes every read-validate-write sequence on one account:
1. Redis mutex per account (fail fast for the losing writer)
2. SELECT ... FOR UPDATE on the account row (PostgreSQL row lock)
3. Optimistic `revision` check on commit (stale writers are rolled back)
"""

import uuid
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from fincore.app.core.clock import utcnow
from fincore.app.core.config import settings
from fincore.app.core.exceptions import (
    ConcurrencyConflictError, InsufficientPermissionsError, ResourceNotFoundError,
    StorageUnavailableError
)
from fincore.app.core.reliability import storage_guard
from fincore.app.models.account import Account

logger = logging.getLogger(__name__)

LOCK_PREFIX = "lock:"


def account_lock_key(account_id: int) -> str:
    return f"{LOCK_PREFIX}account:{account_id}"


@asynccontextmanager
async def redis_mutex(redis, key: str, owner: Optional[int] = None) -> AsyncIterator[str]:
    """
    Hold a short-lived Redis mutex.

    Raises:
        ConcurrencyConflictError: If another writer holds the key
    """
    token = uuid.uuid4().hex

    async with storage_guard("acquire_lock"):
        acquired = await redis.set(key, token, nx=True, ex=settings.account_lock_ttl_seconds)

    if not acquired:
        logger.warning("Lock contention on %s", key)
        raise ConcurrencyConflictError(owner)

    try:
        yield token
    finally:
        # Only release a lock we still own (it may have expired and been re-taken).
        # An unreachable store lets the TTL expire it; the caller keeps its own outcome.
        try:
            async with storage_guard("release_lock"):
                if await redis.get(key) == token:
                    await redis.delete(key)
        except StorageUnavailableError:
            logger.error("Could not release %s, leaving it to expire", key)


async def lock_account_row(db: AsyncSession, account_id: int) -> Account:
    """
    Load the account with a row lock and fresh attributes.

    Raises:
        ResourceNotFoundError: If the account does not exist
        InsufficientPermissionsError: If the account is deactivated
    """
    query = (
        select(Account)
        .where(Account.id == account_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    async with storage_guard("lock_account_row"):
        result = await db.execute(query)
        account = result.scalar_one_or_none()

    if not account:
        raise ResourceNotFoundError("Account", account_id)

    if not account.is_active:
        raise InsufficientPermissionsError("Account is inactive", details={"account_id": account_id})

    return account


@asynccontextmanager
async def account_guard(db: AsyncSession, redis, account_id: int) -> AsyncIterator[Account]:
    """
    Serialize a check-then-act sequence on one account.

    Usage:
        async with account_guard(db, redis, account_id) as account:
            ... read balances, validate, add rows ...
            await commit_guarded(db, account, now)

    Anything raised inside the block rolls the session back.
    """
    async with redis_mutex(redis, account_lock_key(account_id), owner=account_id):
        try:
            account = await lock_account_row(db, account_id)
            yield account
        except Exception:
            await db.rollback()
            raise


async def commit_guarded(db: AsyncSession, account: Account, now: Optional[datetime] = None) -> None:
    """
    Touch the account row and commit.

    The touch bumps `revision`; if another transaction committed against
    the same revision first, the UPDATE matches no row and this writer is
    rolled back with ConcurrencyConflictError.
    """
    moment = now or utcnow()
    account_id = account.id
    account.last_activity_at = moment
    account.updated_at = moment

    try:
        async with storage_guard("commit_account_transition"):
            await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning("Stale revision on account %s, rolled back", account_id)
        raise ConcurrencyConflictError(account_id) from exc
