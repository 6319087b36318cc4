"""LogEntry schema — the unit handed to a log sink.

Entries are immutable once created. The recorder builds one per access or
entity event and never retains it after the sink write.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class LogChannel(str, Enum):
    """Event stream a log entry belongs to."""

    ACCESS = "access"
    DEFAULT = "default"


class VisitorType(str, Enum):
    """Who produced an HTTP access."""

    BOT = "bot"
    AUTHENTICATED_USER = "authenticated_user"
    ANONYMOUS_VISITOR = "anonymous_visitor"


class EntityEvent(str, Enum):
    """Lifecycle transitions of a persisted record."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    RESTORED = "restored"
    PERMANENTLY_DELETED = "permanently_deleted"


class Subject(BaseModel):
    """An authenticated identity (the user behind a request)."""

    id: int | str
    type: str = "user"
    name: str | None = None

    model_config = {"frozen": True}

    def ref(self) -> SubjectRef:
        return SubjectRef(type=self.type, id=self.id)


class SubjectRef(BaseModel):
    """Serializable pointer to an actor or audited entity."""

    type: str
    id: int | str | None = None

    model_config = {"frozen": True}


class LogEntry(BaseModel):
    """A single activity-log record.

    - channel=access → one HTTP request
    - channel=default → one entity lifecycle event
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    channel: LogChannel
    event_name: str
    description: str | None = None

    actor: SubjectRef | None = None
    subject: SubjectRef | None = None

    properties: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}
