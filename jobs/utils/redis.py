"""Redis client for task locks."""
import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError

from app.config.settings import settings


def create_redis_client() -> redis.Redis | None:
    """
    Create a Redis client for the distributed lock.

    Returns:
        Client, or None when it cannot be built (the lock then falls back
        to a process-local lock)
    """
    try:
        return redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            db=settings.redis_db,
            decode_responses=True,
        )
    except RedisError as e:
        logger.warning(f"Failed to create Redis client for lock: {e}")
        return None
