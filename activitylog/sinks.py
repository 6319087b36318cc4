"""Log sinks — durable destinations for LogEntry records.

- DatabaseSink: one activity_log row per entry (production)
- StructlogSink: structured log line per entry (development, last resort)

A sink raises SinkWriteFailure when it cannot persist; the recorder decides
what to do with that.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from activitylog.errors import SinkWriteFailure
from activitylog.models.activity_log import ActivityLog
from activitylog.schemas.activity import LogEntry


class LogSink(Protocol):
    """Append-only destination for log entries."""

    async def write(self, entry: LogEntry) -> None: ...


def _ref_id(value: Any) -> str | None:
    return None if value is None else str(value)


class DatabaseSink:
    """Persist entries to the activity_log table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def write(self, entry: LogEntry) -> None:
        data = entry.model_dump(mode="json")
        try:
            async with self._session_factory() as db:
                db.add(ActivityLog(
                    id=entry.id,
                    log_name=entry.channel.value,
                    event=entry.event_name,
                    description=entry.description,
                    subject_type=entry.subject.type if entry.subject else None,
                    subject_id=_ref_id(entry.subject.id) if entry.subject else None,
                    causer_type=entry.actor.type if entry.actor else None,
                    causer_id=_ref_id(entry.actor.id) if entry.actor else None,
                    properties=data["properties"],
                    created_at=entry.occurred_at,
                ))
                await db.commit()
        except SQLAlchemyError as exc:
            raise SinkWriteFailure(f"Cannot persist {entry.channel.value} entry {entry.id}: {exc}") from exc


class StructlogSink:
    """Emit entries as structured log events."""

    def __init__(self, logger_name: str = "activitylog.entries") -> None:
        self._log = structlog.get_logger(logger_name)

    async def write(self, entry: LogEntry) -> None:
        data = entry.model_dump(mode="json")
        self._log.info(
            entry.event_name,
            entry_id=data["id"],
            channel=data["channel"],
            description=data["description"],
            actor=data["actor"],
            subject=data["subject"],
            properties=data["properties"],
            occurred_at=data["occurred_at"],
        )
