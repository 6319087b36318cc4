"""ORM models — import here so Base.metadata sees every table."""

from activitylog.models.activity_log import ActivityLog
from activitylog.models.base import AppendOnlyMixin, Base

__all__ = ["ActivityLog", "AppendOnlyMixin", "Base"]
