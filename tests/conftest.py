"""Shared fixtures — controllable clock, in-memory cache, recording sink."""

from __future__ import annotations

import pytest

from activitylog.cache.result import ResultCache
from activitylog.cache.stores import MemoryStore
from activitylog.schemas.activity import LogEntry


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """Sink that keeps every entry it receives."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def write(self, entry: LogEntry) -> None:
        self.entries.append(entry)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def cache(store):
    return ResultCache(store)


@pytest.fixture
def sink():
    return RecordingSink()
