"""Fixed-window request counting behind a swappable counter store."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Protocol

from redis import asyncio as aioredis

logger = logging.getLogger(__name__)


class CounterStore(Protocol):
    async def increment(self, key: str) -> int: ...

    async def expire(self, key: str, ttl: int) -> None: ...


class InMemoryCounterStore:
    """Counters for a single-process deployment."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._store: dict[str, tuple[int, float | None]] = {}
        self._lock = asyncio.Lock()

    async def increment(self, key: str) -> int:
        async with self._lock:
            count, expires_at = self._store.get(key, (0, None))
            if expires_at is not None and self._clock() >= expires_at:
                count, expires_at = 0, None
            count += 1
            self._store[key] = (count, expires_at)
            return count

    async def expire(self, key: str, ttl: int) -> None:
        async with self._lock:
            if key in self._store:
                count, _ = self._store[key]
                self._store[key] = (count, self._clock() + ttl)


class RedisCounterStore:
    """Counters shared by every worker through Redis."""

    def __init__(self, redis_url: str):
        self.redis = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)

    async def increment(self, key: str) -> int:
        return int(await self.redis.incr(key))

    async def expire(self, key: str, ttl: int) -> None:
        await self.redis.expire(key, ttl)


class RateLimiter:
    """Allow ``limit`` hits per key in each ``window_seconds`` window."""

    def __init__(self, store: CounterStore, limit: int, window_seconds: int, prefix: str = "rate-limit"):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix

    async def hit(self, identity: str) -> bool:
        """Count one request; return False once the budget is spent."""
        key = f"{self.prefix}:{identity}"
        count = await self.store.increment(key)
        if count == 1:
            await self.store.expire(key, self.window_seconds)
        if count > self.limit:
            logger.warning(f"Rate limit exceeded for {identity} ({count}/{self.limit})")
            return False
        return True


def build_rate_limiter(limit: int, window_seconds: int, redis_url: str | None = None) -> RateLimiter | None:
    """Rate limiter for the configured backend, or None when disabled."""
    if limit <= 0:
        return None
    store: CounterStore = RedisCounterStore(redis_url) if redis_url else InMemoryCounterStore()
    return RateLimiter(store, limit, window_seconds)
