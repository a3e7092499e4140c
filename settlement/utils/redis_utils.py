"""Redis connection utilities.

Builds Redis clients for the shared quota store and the task broker from
settings.
"""

import redis.asyncio as redis

from settlement.config.settings import Settings, settings as default_settings


def get_redis_client(settings: Settings = default_settings) -> redis.Redis:
    """
    Create a Redis client with settings from config.

    The client connects lazily on first command.

    Returns:
        redis.Redis: Configured Redis client with decode_responses=True
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


def get_redis_url_masked(settings: Settings = default_settings) -> str:
    """
    Build Redis URL with masked password for safe logging.

    Returns:
        str: Redis connection URL, e.g. "redis://:****@localhost:6379/0"
    """
    if settings.redis_password:
        return f"redis://:****@{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
    return f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
