"""Builds an ActivityRecorder from settings.

Usage:
    recorder = build_recorder()                     # configured backends
    recorder = build_recorder(store=MemoryStore())  # explicit collaborators (tests)
"""

from __future__ import annotations

import logging

from activitylog.cache.result import ResultCache
from activitylog.cache.stores import MemoryStore, RedisStore, TTLStore
from activitylog.config import ActivityLogSettings, settings
from activitylog.detection.device import CachedDeviceClassifier
from activitylog.recorder import ActivityRecorder
from activitylog.security.throttle import AccessThrottle
from activitylog.sinks import DatabaseSink, LogSink, StructlogSink

logger = logging.getLogger(__name__)


def build_store(config: ActivityLogSettings) -> TTLStore:
    """Result cache store for the configured backend."""
    if config.cache_backend == "redis":
        from activitylog.db.engine import redis_client

        return RedisStore(redis_client)
    return MemoryStore()


def build_sink(config: ActivityLogSettings) -> LogSink:
    """Log sink for the configured destination."""
    if config.sink == "database":
        from activitylog.db.engine import async_session_factory

        return DatabaseSink(async_session_factory)
    return StructlogSink()


def build_recorder(
    store: TTLStore | None = None,
    sink: LogSink | None = None,
    config: ActivityLogSettings | None = None,
) -> ActivityRecorder:
    """Wire cache, device classifier, throttle and sink into a recorder.

    Device detection and throttling share one cache; their key prefixes
    keep them apart.
    """
    config = config or settings.activity
    cache = ResultCache(store if store is not None else build_store(config))

    recorder = ActivityRecorder(
        devices=CachedDeviceClassifier(cache, ttl=config.device_cache_ttl),
        throttle=AccessThrottle(cache, ttl=config.access_throttle_ttl),
        sink=sink if sink is not None else build_sink(config),
        sink_timeout=config.sink_timeout,
    )
    logger.info(
        "Activity recorder ready (cache=%s, sink=%s, throttle=%ss)",
        config.cache_backend,
        config.sink,
        config.access_throttle_ttl,
    )
    return recorder
