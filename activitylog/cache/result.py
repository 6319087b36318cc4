"""Generic TTL result cache shared by device detection and access throttling.

Usage:
    cache = ResultCache(MemoryStore())
    details = await cache.get_or_compute("device_details:...", 86400, parse)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from activitylog.cache.stores import TTLStore
from activitylog.errors import CacheUnavailable

logger = logging.getLogger(__name__)


class ResultCache:
    """JSON-serializing cache over a TTLStore.

    Concurrent misses on the same key may both compute; the last write wins.
    """

    def __init__(self, store: TTLStore) -> None:
        self._store = store

    async def get_or_compute(self, key: str, ttl: int, compute: Callable[[], Any]) -> Any:
        """Return the cached value for key, computing and storing it on a miss.

        If the store is unavailable the value is computed directly and not cached.
        """
        try:
            cached = await self._store.get(key)
        except CacheUnavailable:
            logger.warning("Cache unavailable, computing %s without cache", key)
            return compute()

        if cached is not None:
            return json.loads(cached)

        value = compute()
        try:
            await self._store.set(key, json.dumps(value), ttl)
        except CacheUnavailable:
            logger.warning("Cache unavailable, result for %s not stored", key)
        return value

    async def exists(self, key: str) -> bool:
        """Raises CacheUnavailable when the store cannot be reached."""
        return await self._store.exists(key)

    async def put(self, key: str, value: Any, ttl: int) -> None:
        """Store value under key for ttl seconds, replacing any existing entry."""
        await self._store.set(key, json.dumps(value), ttl)
