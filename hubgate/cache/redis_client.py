"""
Redis Client

Connection used by RedisRateLimitStore so that every gateway replica counts
against the same windows. Only opened when RATE_LIMIT_BACKEND is "redis";
the "memory" backend keeps counters per process and never touches Redis.
"""

from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from hubgate.config.settings import settings
from hubgate.core.logging import logger


class _RedisHolder:
    client: Optional[Redis] = None


_holder = _RedisHolder()


def redis_enabled() -> bool:
    return settings.RATE_LIMIT_BACKEND == "redis"


async def init_redis() -> None:
    """
    Open the shared connection pool and PING it.

    Startup fails here rather than on the first rate-limited request.

    Raises:
        RedisError: If Redis does not answer
    """
    if not redis_enabled():
        logger.info("Redis disabled", rate_limit_backend=settings.RATE_LIMIT_BACKEND)
        return

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.REDIS_POOL_SIZE,
    )
    try:
        await client.ping()
    except RedisError as e:
        logger.error("Redis unreachable", error=str(e))
        await client.aclose()
        raise

    _holder.client = client
    logger.info("Redis ready", max_connections=settings.REDIS_POOL_SIZE)


async def close_redis() -> None:
    if _holder.client is not None:
        await _holder.client.aclose()
        _holder.client = None
        logger.info("Redis closed")


def get_redis() -> Redis:
    """
    The shared client.

    Raises:
        RuntimeError: If init_redis() has not opened one
    """
    if _holder.client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _holder.client
