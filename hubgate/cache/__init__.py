"""Cache module for Redis connections and rate-limit counters."""

from hubgate.cache.redis_client import (
    get_redis,
    init_redis,
    close_redis,
)
from hubgate.cache.rate_limit_store import (
    InMemoryRateLimitStore,
    RateLimitResult,
    RateLimitStore,
    RedisRateLimitStore,
    get_rate_limit_store,
)

__all__ = [
    "get_redis",
    "init_redis",
    "close_redis",
    "RateLimitStore",
    "RateLimitResult",
    "RedisRateLimitStore",
    "InMemoryRateLimitStore",
    "get_rate_limit_store",
]
