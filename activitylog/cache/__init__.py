"""TTL caching — stores and the JSON result cache."""

from activitylog.cache.result import ResultCache
from activitylog.cache.stores import MemoryStore, RedisStore, TTLStore

__all__ = ["MemoryStore", "RedisStore", "ResultCache", "TTLStore"]
