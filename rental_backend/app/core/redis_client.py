"""
Redis client initialization and connection management.

Used by the Redis session backend when ``SESSION_BACKEND=redis``.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from rental_backend.app.core.config import settings

logger = logging.getLogger(__name__)


# Connections are opened lazily, so building the client never touches the network
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False
