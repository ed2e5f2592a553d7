"""Shared async Redis client.

Redis only holds claim-code attempt counters. Balances, listings and offers
live in PostgreSQL; losing Redis resets the counters and nothing else.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Lazily create the process-wide client (FastAPI dependency)."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = aioredis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
        )
    return _client


async def redis_ok() -> bool:
    try:
        return bool(await (await get_redis()).ping())
    except RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
