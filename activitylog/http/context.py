"""Per-request context binding.

The access-log middleware binds the current RequestContext for the duration
of a request so that entity events raised while handling it can resolve
their actor and device without the request being passed around.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from contextvars import ContextVar

from activitylog.schemas.activity import Subject
from activitylog.schemas.context import RequestContext

_current_request: ContextVar[RequestContext | None] = ContextVar("activitylog_request", default=None)


def current_request() -> RequestContext | None:
    """Request being handled in this context, if any."""
    return _current_request.get()


def current_subject() -> Subject | None:
    """Authenticated subject of the current request, None when anonymous or outside a request."""
    request = _current_request.get()
    return request.subject if request is not None else None


@contextlib.contextmanager
def bind_request(request: RequestContext) -> Iterator[RequestContext]:
    """Make request the current request until the block exits."""
    token = _current_request.set(request)
    try:
        yield request
    finally:
        _current_request.reset(token)
