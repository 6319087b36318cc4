"""Activity recorder — builds and emits access and entity-event log entries.

Two entry points:
- log_access: once per HTTP request, from the access-log middleware
- log_entity_event: on every entity mutation, from the entity observer

Both enrich the entry with cached device details. Access entries for
authenticated users are throttled to one per cooldown window; anonymous and
bot traffic is always logged.

Logging is best-effort: nothing here raises into the request or mutation
that triggered it. Sink writes run in a shielded task, so a caller that is
cancelled or stops waiting after the timeout does not abort the write — the
log favours over-logging for completeness.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from activitylog.detection.device import CachedDeviceClassifier
from activitylog.errors import SinkWriteFailure
from activitylog.http.context import current_request, current_subject
from activitylog.schemas.activity import (
    EntityEvent,
    LogChannel,
    LogEntry,
    Subject,
    SubjectRef,
    VisitorType,
)
from activitylog.schemas.context import EntitySnapshot, RequestContext, ResponseContext
from activitylog.schemas.device import DeviceDetails
from activitylog.security.throttle import AccessThrottle
from activitylog.sinks import LogSink

logger = logging.getLogger(__name__)

ActorResolver = Callable[[], Subject | None]
RequestResolver = Callable[[], RequestContext | None]

DEFAULT_SINK_TIMEOUT = 5.0


class ActivityRecorder:
    """Orchestrates device lookup, throttling and sink emission."""

    def __init__(
        self,
        devices: CachedDeviceClassifier,
        throttle: AccessThrottle,
        sink: LogSink,
        actor_resolver: ActorResolver = current_subject,
        request_resolver: RequestResolver = current_request,
        sink_timeout: float = DEFAULT_SINK_TIMEOUT,
    ) -> None:
        self._devices = devices
        self._throttle = throttle
        self._sink = sink
        self._actor_resolver = actor_resolver
        self._request_resolver = request_resolver
        self._sink_timeout = sink_timeout
        self._pending: set[asyncio.Task[bool]] = set()

    # ── Access events ────────────────────────────────────────────────

    async def log_access(self, request: RequestContext, response: ResponseContext) -> LogEntry | None:
        """Log an HTTP access.

        Returns the emitted entry, or None when the user was throttled.
        """
        user = request.subject

        # Skip authenticated users already logged within the window
        if user is not None and not await self._throttle.should_log(user.id):
            logger.debug("Access log throttled for %s %s", user.type, user.id)
            return None

        device = await self.device_details(request, authenticated=user is not None)

        # Bot wins over authenticated, though detection is skipped for
        # authenticated users so that branch never fires for them today.
        if device.is_bot:
            visitor_type = VisitorType.BOT
        elif user is not None:
            visitor_type = VisitorType.AUTHENTICATED_USER
        else:
            visitor_type = VisitorType.ANONYMOUS_VISITOR

        event_name = f"Access: {request.method} {request.path}"
        entry = LogEntry(
            channel=LogChannel.ACCESS,
            event_name=event_name,
            description=event_name,
            actor=user.ref() if user is not None else None,
            properties={
                "visitor_type": visitor_type.value,
                "is_bot": device.is_bot,
                "url": request.url,
                "method": request.method,
                "path": request.path,
                "query_params": dict(request.query_params),
                "referrer": request.referrer,
                "status_code": response.status_code,
                "device": device.model_dump(),
            },
        )
        await self._emit(entry)

        # Mark only after the emission attempt
        if user is not None:
            await self._throttle.mark_logged(user.id)

        return entry

    # ── Entity events ────────────────────────────────────────────────

    async def log_entity_event(
        self,
        event_kind: EntityEvent | str,
        message: str,
        entity: EntitySnapshot,
    ) -> LogEntry:
        """Log a lifecycle event of a persisted record.

        Raises:
            ValueError: if event_kind is not a known EntityEvent.
        """
        event = EntityEvent(event_kind)
        actor = self._actor_resolver()

        old_values: dict[str, Any] = {}
        if event is EntityEvent.UPDATED:
            old_values = entity.old_values()

        device = await self.device_details(self._request_resolver(), authenticated=actor is not None)

        entry = LogEntry(
            channel=LogChannel.DEFAULT,
            event_name=event.value,
            description=message,
            actor=actor.ref() if actor is not None else None,
            subject=SubjectRef(type=entity.type, id=entity.id),
            properties={
                "attributes": dict(entity.attributes),
                "old": old_values,
                "device": device.model_dump(),
            },
        )
        await self._emit(entry)
        return entry

    # ── Helpers ──────────────────────────────────────────────────────

    async def device_details(self, request: RequestContext | None, authenticated: bool) -> DeviceDetails:
        """Cached device details for request; outside a request the user agent is unknown."""
        if request is None:
            return await self._devices.details(None, None, authenticated=authenticated)
        return await self._devices.details(request.user_agent, request.ip, authenticated=authenticated)

    async def _emit(self, entry: LogEntry) -> bool:
        """Hand entry to the sink, waiting at most sink_timeout seconds.

        Returns True if the sink confirmed the write in time.
        """
        task = asyncio.create_task(self._write(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self._sink_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Sink write for %s entry %s still pending after %.1fs",
                entry.channel.value,
                entry.id,
                self._sink_timeout,
            )
            return False

    async def _write(self, entry: LogEntry) -> bool:
        try:
            await self._sink.write(entry)
        except SinkWriteFailure as exc:
            logger.warning("Activity log entry dropped: %s", exc)
            return False
        except Exception:
            logger.exception("Failed to write %s entry: %s", entry.channel.value, entry.event_name)
            return False
        return True

    async def drain(self) -> None:
        """Wait for sink writes still in flight (call at shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
