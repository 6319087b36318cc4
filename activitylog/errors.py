"""Exception hierarchy for the activity log.

None of these ever reach an end user: the recorder recovers from each one
locally and at most degrades the completeness of the log.
"""

from __future__ import annotations


class ActivityLogError(Exception):
    """Base class for activity-log failures."""


class ClassificationFailure(ActivityLogError):
    """The user-agent parser crashed or could not be run."""


class CacheUnavailable(ActivityLogError):
    """The backing cache store is unreachable."""


class SinkWriteFailure(ActivityLogError):
    """A log sink rejected or failed to persist an entry."""
