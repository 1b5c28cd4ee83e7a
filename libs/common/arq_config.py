"""ARQ (Async Redis Queue) configuration utilities.

Usage:
    from libs.common.arq_config import get_redis_settings

    class WorkerSettings:
        redis_settings = get_redis_settings()
"""

from typing import Optional

from arq.connections import RedisSettings
from libs.common.config import get_settings


def get_redis_settings(redis_url: Optional[str] = None) -> RedisSettings:
    """Build ARQ RedisSettings from a redis:// or rediss:// URL.

    Defaults to ``REDIS_URL`` from the application settings.
    """
    return RedisSettings.from_dsn(redis_url or get_settings().REDIS_URL)
