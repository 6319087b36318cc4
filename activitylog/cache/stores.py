"""TTL key-value stores backing the result cache.

Two interchangeable backends:
- MemoryStore: process-wide dict with expiry timestamps
- RedisStore: shared Redis via SET ... EX / GET / EXISTS

Values are plain strings; serialization is the caller's concern.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from activitylog.errors import CacheUnavailable

logger = logging.getLogger(__name__)


class TTLStore(Protocol):
    """Minimal async get/set/exists store with per-key expiry."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def exists(self, key: str) -> bool: ...


class MemoryStore:
    """In-process TTL store.

    No capacity bound: entries disappear only when their TTL elapses, and
    expired keys are dropped lazily on read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._data[key] = (value, self._clock() + ttl)

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    def clear(self) -> None:
        """Drop every entry."""
        self._data.clear()


class RedisStore:
    """Redis-backed TTL store.

    Any Redis or socket error is raised as CacheUnavailable so callers can
    degrade instead of failing.
    """

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"GET {key} failed: {exc}") from exc

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.set(key, value, ex=ttl)
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"SET {key} failed: {exc}") from exc

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._redis.exists(key))
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"EXISTS {key} failed: {exc}") from exc
