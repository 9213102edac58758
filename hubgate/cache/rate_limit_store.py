"""
Rate Limit Store

Fixed-window rate-limit counters.

Window Semantics:
=================
Windows are aligned to epoch multiples of ``window_seconds``:

    window_index = floor(now / window_seconds)
    window_end   = (window_index + 1) * window_seconds

Each (subject, window_seconds, window_index) has its own counter. A hit
increments the counter and compares the NEW value with the limit in one
atomic step, so two concurrent requests can never both observe "0 used".
A request is allowed while ``count <= limit``; the first request of the next
window starts from a fresh counter.

``Retry-After`` is ``ceil(window_end - now)``, never less than 1.

Backends:
=========
- RedisRateLimitStore: INCR + EXPIRE in a MULTI/EXEC pipeline; counters are
  shared by every gateway instance.
- InMemoryRateLimitStore: a dict guarded by an asyncio.Lock; single process
  only. Takes an injectable clock so window boundaries are testable.
"""

import asyncio
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from redis.asyncio import Redis

from hubgate.cache.redis_client import get_redis, redis_enabled
from hubgate.config.constants import RATE_LIMIT_KEY_PREFIX
from hubgate.core.logging import logger

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one counted hit."""

    allowed: bool
    count: int
    limit: int
    window_seconds: int
    retry_after: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


def window_index(now: float, window_seconds: int) -> int:
    """Index of the fixed window containing ``now``."""
    return int(now // window_seconds)


def seconds_until_window_end(now: float, window_seconds: int) -> int:
    """Whole seconds until the window containing ``now`` closes (>= 1)."""
    window_end = (window_index(now, window_seconds) + 1) * window_seconds
    return max(1, math.ceil(window_end - now))


class RateLimitStore(ABC):
    """Counter storage keyed by (subject, window length, window index)."""

    def __init__(self, prefix: str = RATE_LIMIT_KEY_PREFIX, clock: Optional[Clock] = None) -> None:
        self.prefix = prefix
        self.clock: Clock = clock or time.time

    def build_key(self, subject: str, window_seconds: int, index: int) -> str:
        return f"{self.prefix}{subject}:{window_seconds}:{index}"

    async def hit(self, subject: str, limit: int, window_seconds: int) -> RateLimitResult:
        """
        Count one request against a subject's current window.

        Args:
            subject: Counter owner (connection id or API name)
            limit: Allowed requests per window
            window_seconds: Window length

        Returns:
            RateLimitResult; ``allowed`` is False once the limit is exceeded
        """
        now = self.clock()
        index = window_index(now, window_seconds)
        key = self.build_key(subject, window_seconds, index)

        count = await self._increment(key, window_seconds)
        allowed = count <= limit
        retry_after = 0 if allowed else seconds_until_window_end(now, window_seconds)

        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                subject=subject,
                count=count,
                limit=limit,
                window_seconds=window_seconds,
                retry_after=retry_after,
            )

        return RateLimitResult(
            allowed=allowed,
            count=count,
            limit=limit,
            window_seconds=window_seconds,
            retry_after=retry_after,
        )

    @abstractmethod
    async def _increment(self, key: str, window_seconds: int) -> int:
        """Atomically increment a counter and return its new value."""

    @abstractmethod
    async def reset(self, subject: str, window_seconds: int) -> None:
        """Drop the subject's counter for the current window."""


class RedisRateLimitStore(RateLimitStore):
    """Redis-backed counters shared across gateway instances."""

    def __init__(
        self,
        client: Optional[Redis] = None,
        prefix: str = RATE_LIMIT_KEY_PREFIX,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(prefix=prefix, clock=clock)
        self._client = client

    @property
    def client(self) -> Redis:
        return self._client or get_redis()

    async def _increment(self, key: str, window_seconds: int) -> int:
        # Keep the key one extra window so late readers near the boundary see it
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds * 2)
            count, _ = await pipe.execute()
        return int(count)

    async def reset(self, subject: str, window_seconds: int) -> None:
        key = self.build_key(subject, window_seconds, window_index(self.clock(), window_seconds))
        await self.client.delete(key)


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local counters guarded by an asyncio.Lock."""

    def __init__(self, prefix: str = RATE_LIMIT_KEY_PREFIX, clock: Optional[Clock] = None) -> None:
        super().__init__(prefix=prefix, clock=clock)
        self._counters: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def _increment(self, key: str, window_seconds: int) -> int:
        async with self._lock:
            now = self.clock()
            self._evict_expired(now)
            count, _ = self._counters.get(key, (0, 0.0))
            count += 1
            self._counters[key] = (count, now + window_seconds * 2)
            return count

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._counters.items() if expires_at <= now]
        for key in expired:
            del self._counters[key]

    async def reset(self, subject: str, window_seconds: int) -> None:
        key = self.build_key(subject, window_seconds, window_index(self.clock(), window_seconds))
        async with self._lock:
            self._counters.pop(key, None)


class _RateLimitStoreHolder:
    """Container for the process-wide store."""

    store: Optional[RateLimitStore] = None


_holder = _RateLimitStoreHolder()


def get_rate_limit_store() -> RateLimitStore:
    """Get the configured store, creating it on first use.

    RATE_LIMIT_BACKEND selects "redis" (default) or "memory".
    """
    if _holder.store is None:
        if not redis_enabled():
            _holder.store = InMemoryRateLimitStore()
        else:
            _holder.store = RedisRateLimitStore()
    return _holder.store


def set_rate_limit_store(store: Optional[RateLimitStore]) -> None:
    """Replace the process-wide store (None resets to the configured default)."""
    _holder.store = store
