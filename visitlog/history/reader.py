"""
History Reader: "snapshots + recent edits" for display surfaces

Read-only. Orders everything client-side, so the store never needs
an index:
- recent events: the uncompacted tail, newest first
- snapshots: by version, highest first

Snapshot expansion resolves ids against the event log and skips ids
that no longer resolve; a dangling reference is never an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from visitlog.core.errors import QueryError
from visitlog.core.types import EntityId, Err, Ok, Result
from visitlog.history.events import HistoryEvent
from visitlog.history.snapshot import HistorySnapshot
from visitlog.history.timeline import load_events, load_timeline
from visitlog.observability.logging import StructuredLogger
from visitlog.storage.protocols import DocumentStoreProtocol


logger = StructuredLogger(__name__)


@dataclass(frozen=True, slots=True)
class HistoryView:
    """What a history panel renders for one visit."""
    entity_id: str
    recent_events: tuple[HistoryEvent, ...] = ()
    snapshots: tuple[HistorySnapshot, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.recent_events and not self.snapshots

    def to_dict(self) -> dict[str, Any]:
        return {
            "recentEvents": [event.to_dict() for event in self.recent_events],
            "snapshots": [snapshot.to_dict() for snapshot in self.snapshots],
        }


class HistoryReader:
    """
    Usage:
        reader = HistoryReader(store)
        view = (await reader.list_history(EntityId("visit-42"))).unwrap()
    """

    __slots__ = ("_store",)

    def __init__(self, store: DocumentStoreProtocol) -> None:
        self._store = store

    async def list_history(self, entity_id: EntityId) -> Result[HistoryView, QueryError]:
        loaded = await load_timeline(self._store, entity_id)
        if loaded.is_err():
            collection, reason = loaded.error
            return Err(QueryError.load_failed(str(entity_id), collection, reason))

        timeline = loaded.unwrap()
        recent = sorted(timeline.uncompacted(), key=lambda event: event.sort_key, reverse=True)
        snapshots = sorted(timeline.snapshots, key=lambda snapshot: snapshot.version, reverse=True)

        logger.debug(
            "Loaded version history",
            entity_id=str(entity_id),
            recent_events=len(recent),
            snapshots=len(snapshots),
        )
        return Ok(HistoryView(
            entity_id=str(entity_id),
            recent_events=tuple(recent),
            snapshots=tuple(snapshots),
        ))

    async def expand_snapshot(
        self,
        entity_id: EntityId,
        snapshot_id: str,
    ) -> Result[list[HistoryEvent], QueryError]:
        """Member events of a snapshot, in the snapshot's own order."""
        fetched = await self._store.get(entity_id.snapshots_path, snapshot_id)
        if fetched.is_err():
            return Err(QueryError.load_failed(str(entity_id), entity_id.snapshots_path, fetched.error))
        document = fetched.unwrap()
        if document is None:
            return Err(QueryError.resource_not_found("Snapshot", snapshot_id))

        parsed = HistorySnapshot.from_document(snapshot_id, document)
        if parsed.is_err():
            return Err(QueryError.load_failed(str(entity_id), entity_id.snapshots_path, parsed.error))
        snapshot = parsed.unwrap()

        events = await load_events(self._store, entity_id)
        if events.is_err():
            return Err(QueryError.load_failed(str(entity_id), entity_id.events_path, events.error))
        by_id = {event.id: event for event in events.unwrap()[0]}

        resolved = [by_id[event_id] for event_id in snapshot.event_ids if event_id in by_id]
        missing = len(snapshot.event_ids) - len(resolved)
        if missing:
            logger.warning(
                "Snapshot references missing events",
                entity_id=str(entity_id),
                snapshot_id=snapshot_id,
                missing=missing,
            )
        return Ok(resolved)
