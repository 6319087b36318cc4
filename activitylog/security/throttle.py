"""Cache-backed cooldown for authenticated access logging.

After an access entry is written for a user, a mark with a short TTL
suppresses further access entries for that user until it expires. Anonymous
traffic is never throttled; the recorder only consults this for
authenticated subjects.

Usage:
    if await throttle.should_log(user.id):
        ...emit...
        await throttle.mark_logged(user.id)
"""

from __future__ import annotations

import logging

from activitylog.cache.result import ResultCache
from activitylog.errors import CacheUnavailable

logger = logging.getLogger(__name__)

# Throttle period for authenticated user access logs (5 minutes)
ACCESS_LOG_THROTTLE = 300


class AccessThrottle:
    """Per-subject access-log cooldown stored in a ResultCache."""

    def __init__(self, cache: ResultCache, ttl: int = ACCESS_LOG_THROTTLE) -> None:
        self._cache = cache
        self._ttl = ttl

    @staticmethod
    def cache_key(subject_id: int | str) -> str:
        return f"access_log_throttle:{subject_id}"

    async def should_log(self, subject_id: int | str) -> bool:
        """True unless an access entry was logged for this subject within the window."""
        try:
            return not await self._cache.exists(self.cache_key(subject_id))
        except CacheUnavailable:
            logger.warning("Throttle cache unavailable for subject %s, allowing log", subject_id)
            # Fail open — under-logging is worse than over-logging
            return True

    async def mark_logged(self, subject_id: int | str) -> None:
        """Start (or restart) the cooldown window for this subject."""
        try:
            await self._cache.put(self.cache_key(subject_id), True, self._ttl)
        except CacheUnavailable:
            logger.warning("Throttle cache unavailable, mark for subject %s not stored", subject_id)
