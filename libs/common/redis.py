"""Shared async Redis connection.

Usage:
    from libs.common.redis import get_redis

    redis = await get_redis()
    await redis.set("key", "value", ex=60)
"""

from typing import Optional

import redis.asyncio as aioredis

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

_redis: Optional[aioredis.Redis] = None


async def get_redis() -> aioredis.Redis:
    """Return the process-wide Redis client, creating it on first use."""
    global _redis
    if _redis is None:
        settings = get_settings()
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


async def ping_redis() -> bool:
    """Check Redis connectivity. Returns False instead of raising."""
    try:
        client = await get_redis()
        return bool(await client.ping())
    except aioredis.RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    """Close the shared client; the next get_redis call reconnects."""
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
