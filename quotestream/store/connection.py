"""
Redis connection management.
Handles creation and shutdown of the async Redis client shared by the
producer, the worker and the sweeper of one process.
"""

import logging

import redis.asyncio as aioredis

from quotestream.config import get_settings

logger = logging.getLogger(__name__)

# Process-wide client, created by init_redis()
_redis: aioredis.Redis | None = None


def create_redis(redis_url: str | None = None) -> aioredis.Redis:
    """
    Create a new async Redis client backed by its own connection pool.

    Responses are decoded to ``str`` so stream fields map directly onto
    envelope fields.

    Args:
        redis_url: Connection URL. Defaults to the configured URL.

    Returns:
        aioredis.Redis: The client instance.
    """
    settings = get_settings()
    return aioredis.from_url(
        redis_url or settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_connect_timeout_seconds,
        health_check_interval=30,
    )


async def init_redis() -> aioredis.Redis:
    """
    Initialize the process Redis client and verify connectivity.
    Should be called on process startup.

    Returns:
        aioredis.Redis: The initialized client.
    """
    global _redis
    if _redis is None:
        _redis = create_redis()
        await _redis.ping()
        logger.info("Redis connection initialized")
    return _redis


async def close_redis() -> None:
    """
    Close the Redis connection pool.
    Should be called on process shutdown.
    """
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
        logger.info("Redis connection closed")
