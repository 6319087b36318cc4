"""ActivityLog model — append-only store for access and entity events.

One row per LogEntry. Rows are never updated or deleted by this package.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from activitylog.models.base import AppendOnlyMixin, Base


class ActivityLog(AppendOnlyMixin, Base):
    """Activity log entry. Rows are inserted once and never modified."""

    __tablename__ = "activity_log"

    # Channel and event
    log_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True, comment="access or default")
    event: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    # Entity the event is about (nullable for access events)
    subject_type: Mapped[str | None] = mapped_column(String(100))
    subject_id: Mapped[str | None] = mapped_column(String(100))

    # Acting user (nullable for anonymous / system actions)
    causer_type: Mapped[str | None] = mapped_column(String(100))
    causer_id: Mapped[str | None] = mapped_column(String(100), index=True)

    # Device, request and diff data
    properties: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<ActivityLog log={self.log_name} event={self.event}>"
