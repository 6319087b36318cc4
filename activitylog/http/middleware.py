"""Access-log middleware — writes one access entry per HTTP request.

Usage:
    app.add_middleware(
        AccessLogMiddleware,
        recorder=recorder,
        subject_resolver=lambda request: request.state.user,
    )

The subject resolver may be sync or async and returns a Subject or None.
A handler that raises is logged with status 500 before the error propagates.
Without one, `request.state.subject` is used.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from starlette.types import ASGIApp

from activitylog.http.context import bind_request
from activitylog.recorder import ActivityRecorder
from activitylog.schemas.activity import Subject
from activitylog.schemas.context import RequestContext, ResponseContext

logger = logging.getLogger(__name__)

SubjectResolver = Callable[[Request], Subject | None | Awaitable[Subject | None]]


def subject_from_state(request: Request) -> Subject | None:
    """Default resolver: the subject an auth layer stored on request.state."""
    return getattr(request.state, "subject", None)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Bind the request context and log the access once the response is ready."""

    def __init__(
        self,
        app: ASGIApp,
        recorder: ActivityRecorder | None = None,
        subject_resolver: SubjectResolver = subject_from_state,
        exclude_paths: Iterable[str] = ("/health",),
    ) -> None:
        super().__init__(app)
        self._recorder = recorder
        self._subject_resolver = subject_resolver
        self._exclude_paths = frozenset(exclude_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self._exclude_paths:
            return await call_next(request)

        context = RequestContext.from_request(request, await self._resolve_subject(request))
        with bind_request(context):
            try:
                response = await call_next(request)
            except Exception:
                # The error middleware turns this into a 500 once it propagates
                await self._log_access(request, context, HTTP_500_INTERNAL_SERVER_ERROR)
                raise

        await self._log_access(request, context, response.status_code)
        return response

    async def _log_access(self, request: Request, context: RequestContext, status_code: int) -> None:
        # Authentication may have happened inside the handler
        if context.subject is None:
            subject = await self._resolve_subject(request)
            if subject is not None:
                context = context.model_copy(update={"subject": subject})

        recorder = self._recorder or getattr(request.app.state, "recorder", None)
        if recorder is None:
            logger.warning("No activity recorder configured, access to %s not logged", request.url.path)
            return

        try:
            await recorder.log_access(context, ResponseContext(status_code=status_code))
        except Exception:
            logger.exception("Access logging failed for %s %s", request.method, request.url.path)

    async def _resolve_subject(self, request: Request) -> Subject | None:
        try:
            subject = self._subject_resolver(request)
            if inspect.isawaitable(subject):
                subject = await subject
        except Exception:
            logger.exception("Subject resolver failed, treating request as anonymous")
            return None
        return subject
