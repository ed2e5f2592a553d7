"""Fixed-window attempt limiting backed by Redis.

Only claim-code verification is limited: a giver entering codes is the one
place where guessing pays off (9000 possible codes). Counting uses
INCR + EXPIRE so every worker process shares the same window.

Key pattern: "ratelimit:{account_id}:{scope}"
"""

import logging

import redis.asyncio as aioredis
from fastapi import Depends

from config.settings import settings
from src.rp_common.errors import RateLimitError
from src.rp_common.redis_client import get_redis
from src.rp_gateway.auth.dependencies import get_current_session
from src.rp_gateway.auth.session import Session

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class FixedWindowLimiter:
    def __init__(self, scope: str, limit: int, window_seconds: int = WINDOW_SECONDS) -> None:
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    def key(self, subject: str) -> str:
        return f"ratelimit:{subject}:{self.scope}"

    async def hit(self, redis: aioredis.Redis, subject: str) -> int:
        """Count one attempt. Raises RateLimitError once the window is spent."""
        key = self.key(subject)
        count = await redis.incr(key)
        if count == 1:
            await redis.expire(key, self.window_seconds)
        if count > self.limit:
            logger.warning("Rate limit hit: %s (%d/%d)", key, count, self.limit)
            raise RateLimitError()
        return count


claim_code_limiter = FixedWindowLimiter("claim_code", settings.CLAIM_CODE_ATTEMPTS_PER_MINUTE)


async def limit_claim_code_attempts(
    session: Session = Depends(get_current_session),
    redis: aioredis.Redis = Depends(get_redis),
) -> Session:
    """Dependency for POST /listings/complete; passes the session through."""
    await claim_code_limiter.hit(redis, session.account_id)
    return session
