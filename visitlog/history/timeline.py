"""
Visit Timeline: loading and ordering a visit's stored history

Shared by the compactor and the reader so both derive the
uncompacted tail the same way:

    events        = every parseable record in visits/{id}/events
    compacted     = union of eventIds across visits/{id}/snapshots
    uncompacted   = events - compacted, ascending by (timestamp, id)

Records that cannot be parsed (no usable timestamp, unknown type)
are logged and left out; they cannot be placed in time. An unreadable
snapshot still occupies its version slot, so its version counts
toward the maximum and is never handed out again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from visitlog.core.types import EntityId, Err, Ok, Result
from visitlog.history.events import HistoryEvent
from visitlog.history.snapshot import HistorySnapshot, version_of_slot
from visitlog.observability.logging import StructuredLogger
from visitlog.storage.protocols import DocumentStoreProtocol


logger = StructuredLogger(__name__)


@dataclass(slots=True)
class Timeline:
    """
    One consistent read of a visit's history.

    Events are loaded before snapshots, so every snapshot seen here
    references events that were already visible.
    """
    entity_id: EntityId
    events: list[HistoryEvent] = field(default_factory=list)
    snapshots: list[HistorySnapshot] = field(default_factory=list)
    skipped_records: int = 0
    highest_slot: int = 0

    @property
    def compacted_ids(self) -> set[str]:
        ids: set[str] = set()
        for snapshot in self.snapshots:
            ids.update(snapshot.event_ids)
        return ids

    @property
    def max_version(self) -> int:
        return max(max_version(self.snapshots), self.highest_slot)

    def uncompacted(self) -> list[HistoryEvent]:
        """Events in no snapshot, oldest first."""
        compacted = self.compacted_ids
        pending = [event for event in self.events if event.id not in compacted]
        pending.sort(key=lambda event: event.sort_key)
        return pending

    def events_by_id(self) -> dict[str, HistoryEvent]:
        return {event.id: event for event in self.events}


def max_version(snapshots: Sequence[HistorySnapshot]) -> int:
    """Highest version present, 0 when there are none."""
    return max((snapshot.version for snapshot in snapshots), default=0)


@dataclass(slots=True)
class SnapshotSet:
    """
    Parsed snapshots of one visit plus the slots they occupy.

    highest_slot covers every version-slot id in the collection,
    readable or not.
    """
    snapshots: list[HistorySnapshot] = field(default_factory=list)
    skipped: int = 0
    highest_slot: int = 0

    @property
    def max_version(self) -> int:
        return max(max_version(self.snapshots), self.highest_slot)


async def load_events(
    store: DocumentStoreProtocol,
    entity_id: EntityId,
) -> Result[tuple[list[HistoryEvent], int], str]:
    """
    Read and parse the whole event log.

    Returns:
        Ok((events, skipped_count)) or Err(store message)
    """
    result = await store.list_all(entity_id.events_path)
    if result.is_err():
        return Err(result.error)

    events: list[HistoryEvent] = []
    skipped = 0
    for doc_id, document in result.unwrap():
        parsed = HistoryEvent.from_document(doc_id, document)
        if parsed.is_err():
            skipped += 1
            logger.warning(
                "Skipping unreadable history event",
                entity_id=str(entity_id),
                event_id=doc_id,
                reason=parsed.error,
            )
            continue
        events.append(parsed.unwrap())
    return Ok((events, skipped))


async def load_snapshots(
    store: DocumentStoreProtocol,
    entity_id: EntityId,
) -> Result[SnapshotSet, str]:
    """Read and parse every snapshot of a visit."""
    result = await store.list_all(entity_id.snapshots_path)
    if result.is_err():
        return Err(result.error)

    loaded = SnapshotSet()
    for doc_id, document in result.unwrap():
        slot = version_of_slot(doc_id)
        if slot is not None:
            loaded.highest_slot = max(loaded.highest_slot, slot)

        parsed = HistorySnapshot.from_document(doc_id, document)
        if parsed.is_err():
            loaded.skipped += 1
            logger.warning(
                "Skipping unreadable snapshot",
                entity_id=str(entity_id),
                snapshot_id=doc_id,
                reason=parsed.error,
            )
            continue
        loaded.snapshots.append(parsed.unwrap())
    return Ok(loaded)


async def load_timeline(
    store: DocumentStoreProtocol,
    entity_id: EntityId,
) -> Result[Timeline, tuple[str, str]]:
    """
    Load events then snapshots.

    Returns:
        Ok(Timeline) or Err((collection_path, store message))
    """
    events = await load_events(store, entity_id)
    if events.is_err():
        return Err((entity_id.events_path, events.error))

    snapshots = await load_snapshots(store, entity_id)
    if snapshots.is_err():
        return Err((entity_id.snapshots_path, snapshots.error))

    event_list, skipped_events = events.unwrap()
    loaded = snapshots.unwrap()
    return Ok(Timeline(
        entity_id=entity_id,
        events=event_list,
        snapshots=loaded.snapshots,
        skipped_records=skipped_events + loaded.skipped,
        highest_slot=loaded.highest_slot,
    ))
