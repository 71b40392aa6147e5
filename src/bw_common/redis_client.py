"""Redis client factory — used for request rate limiting only.

Escrow and trade state never lives here (PostgreSQL only), so Redis is a
soft dependency: short socket timeouts keep the limiter's fail-open path
fast when Redis is slow or down.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
    return _redis_pool


async def ping_redis() -> bool:
    """True if Redis answers PING. Logs and returns False otherwise."""
    try:
        redis = await get_redis()
        return bool(await redis.ping())
    except (RedisError, OSError):
        logger.warning("Redis unreachable at %s; rate limiting will fail open", settings.REDIS_URL)
        return False


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
