"""Access-log throttling."""

from activitylog.security.throttle import AccessThrottle

__all__ = ["AccessThrottle"]
