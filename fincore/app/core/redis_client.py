"""
Redis client initialization and connection management.

Redis backs the per-account mutex that serializes check-then-act sequences.
Nothing else is stored there, so losing it only costs availability.
"""

import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from fincore.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency; tests override it with an in-memory fake."""
    return redis_client


async def ping_redis() -> bool:
    """Report whether the lock store answers."""
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as e:
        logger.warning("Lock store unreachable: %s", e)
        return False


async def close_redis() -> None:
    await redis_client.aclose()
