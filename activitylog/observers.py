"""Entity observer — turns record lifecycle calls into activity-log entries.

Call it explicitly from wherever records are created, updated, deleted,
restored or permanently deleted:

    observer = EntityObserver(recorder, label="user")
    await observer.created(user)

Entities may be EntitySnapshots or SQLAlchemy mapped instances; instances are
snapshotted from their attribute history, so call the observer before the
session flushes them.

Logging never fails the mutation: recorder errors are logged and swallowed.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm.attributes import NO_VALUE

from activitylog.recorder import ActivityRecorder
from activitylog.schemas.activity import EntityEvent
from activitylog.schemas.context import EntitySnapshot

logger = logging.getLogger(__name__)

SOFT_DELETE_COLUMN = "deleted_at"


def snapshot_from_instance(instance: Any) -> EntitySnapshot:
    """Build an EntitySnapshot from a SQLAlchemy mapped instance.

    Pending changes (not yet flushed) make up `changes`; their previous
    values go into `original`.
    """
    state = sa_inspect(instance)
    mapper = state.mapper

    attributes: dict[str, Any] = {}
    original: dict[str, Any] = {}
    changes: set[str] = set()
    for attr in mapper.column_attrs:
        key = attr.key
        history = state.attrs[key].history
        current = getattr(instance, key)
        attributes[key] = current
        if history.has_changes():
            changes.add(key)
            previous = history.deleted[0] if history.deleted else None
            original[key] = None if previous is NO_VALUE else previous
        else:
            original[key] = current

    identity = state.identity
    if identity:
        entity_id = identity[0] if len(identity) == 1 else "-".join(str(part) for part in identity)
    else:
        pk = [attributes.get(col.key) for col in mapper.primary_key]
        entity_id = pk[0] if len(pk) == 1 else None

    return EntitySnapshot(
        type=mapper.class_.__name__,
        id=entity_id,
        attributes=attributes,
        original=original,
        changes=frozenset(changes),
    )


class EntityObserver:
    """Lifecycle hooks for one kind of record."""

    def __init__(self, recorder: ActivityRecorder, label: str = "record", name_attr: str = "name") -> None:
        self._recorder = recorder
        self._label = label
        self._name_attr = name_attr

    async def created(self, entity: Any) -> None:
        snapshot = self._snapshot(entity)
        await self._log(EntityEvent.CREATED, f"{self._label} created: {self._name(snapshot)}", snapshot)

    async def updated(self, entity: Any) -> None:
        snapshot = self._snapshot(entity)
        # A restore clears deleted_at through an update; restored() reports it
        if SOFT_DELETE_COLUMN in snapshot.changes and snapshot.attributes.get(SOFT_DELETE_COLUMN) is None:
            return
        await self._log(EntityEvent.UPDATED, f"{self._label} updated: {self._name(snapshot)}", snapshot)

    async def deleted(self, entity: Any, force: bool = False) -> None:
        # Permanent deletes are reported by force_deleted()
        if force:
            return
        snapshot = self._snapshot(entity)
        await self._log(EntityEvent.DELETED, f"{self._label} deleted: {self._name(snapshot)}", snapshot)

    async def restored(self, entity: Any) -> None:
        snapshot = self._snapshot(entity)
        await self._log(EntityEvent.RESTORED, f"{self._label} restored: {self._name(snapshot)}", snapshot)

    async def force_deleted(self, entity: Any) -> None:
        snapshot = self._snapshot(entity)
        await self._log(
            EntityEvent.PERMANENTLY_DELETED,
            f"{self._label} permanently deleted: {self._name(snapshot)}",
            snapshot,
        )

    # ── Internals ────────────────────────────────────────────────────

    @staticmethod
    def _snapshot(entity: Any) -> EntitySnapshot:
        if isinstance(entity, EntitySnapshot):
            return entity
        return snapshot_from_instance(entity)

    def _name(self, snapshot: EntitySnapshot) -> str:
        name = snapshot.attributes.get(self._name_attr)
        return str(name) if name is not None else str(snapshot.id)

    async def _log(self, event: EntityEvent, message: str, snapshot: EntitySnapshot) -> None:
        try:
            await self._recorder.log_entity_event(event, message, snapshot)
        except Exception:
            logger.exception("Activity logging failed for %s %s (%s)", snapshot.type, snapshot.id, event.value)
