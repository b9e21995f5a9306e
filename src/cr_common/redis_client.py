"""Redis client for the login throttle.

Balances, sessions and payment state live in PostgreSQL only; losing Redis
costs nothing but throttling.
"""

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or lazily create the shared client. Does not connect by itself."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT_SECONDS,
        )
    return _redis_pool


async def ping_redis() -> bool:
    """True if Redis answers. Startup only logs a failure; the throttle fails open."""
    client = await get_redis()
    try:
        return bool(await client.ping())
    except RedisError:
        return False


async def close_redis() -> None:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
