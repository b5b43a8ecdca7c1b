"""Redis connection utilities.

Builds the Redis client that backs client-local storage (contacts and saved
recipients) from settings.
"""

import redis.asyncio as redis

from app.config.settings import Settings, settings as default_settings


def get_redis_client(settings: Settings | None = None) -> redis.Redis:
    """
    Create a Redis client with settings from config.

    Args:
        settings: Settings instance (defaults to the global one)

    Returns:
        redis.Redis: Configured Redis client with decode_responses=True
    """
    settings = settings or default_settings
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )


def get_redis_url_masked(settings: Settings | None = None) -> str:
    """
    Redis URL with the password masked, safe for logging.

    Returns:
        str: e.g. "redis://:***@localhost:6379/0"
    """
    settings = settings or default_settings
    auth = ":***@" if settings.redis_password else ""
    return f"redis://{auth}{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
