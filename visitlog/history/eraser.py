"""
History Eraser: administrative removal of a visit's history

Two phases, each one atomic per-collection delete:
    1. events
    2. snapshots

There is no cross-collection transaction. If the second phase fails
the events are already gone; the error carries the counts deleted so
far and is never reported as success.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from visitlog.core.errors import ErasureError
from visitlog.core.types import EntityId, Err, Ok, Result
from visitlog.observability.logging import StructuredLogger
from visitlog.observability.metrics import HistoryMetrics
from visitlog.storage.protocols import DocumentStoreProtocol


logger = StructuredLogger(__name__)


@dataclass(frozen=True, slots=True)
class ErasureReport:
    entity_id: str
    events_deleted: int
    snapshots_deleted: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventsDeleted": self.events_deleted,
            "snapshotsDeleted": self.snapshots_deleted,
        }


class HistoryEraser:
    """Deletes every event and snapshot of a visit."""

    __slots__ = ("_store", "_metrics")

    def __init__(
        self,
        store: DocumentStoreProtocol,
        metrics: Optional[HistoryMetrics] = None,
    ) -> None:
        self._store = store
        self._metrics = metrics or HistoryMetrics()

    async def erase_history(self, entity_id: EntityId) -> Result[ErasureReport, ErasureError]:
        events = await self._store.delete_all(entity_id.events_path)
        if events.is_err():
            return self._failed(entity_id, "events", 0, 0, events.error)
        events_deleted = events.unwrap().affected_rows

        snapshots = await self._store.delete_all(entity_id.snapshots_path)
        if snapshots.is_err():
            return self._failed(entity_id, "snapshots", events_deleted, 0, snapshots.error)
        snapshots_deleted = snapshots.unwrap().affected_rows

        self._metrics.erasures.inc(outcome="success")
        logger.info(
            "Cleared version history",
            entity_id=str(entity_id),
            events_deleted=events_deleted,
            snapshots_deleted=snapshots_deleted,
        )
        return Ok(ErasureReport(
            entity_id=str(entity_id),
            events_deleted=events_deleted,
            snapshots_deleted=snapshots_deleted,
        ))

    def _failed(
        self,
        entity_id: EntityId,
        phase: str,
        events_deleted: int,
        snapshots_deleted: int,
        reason: str,
    ) -> Err[ErasureError]:
        error = ErasureError.phase_failed(
            str(entity_id), phase, events_deleted, snapshots_deleted, reason,
        )
        self._metrics.erasures.inc(outcome="failure")
        logger.error(
            "Failed to clear version history",
            entity_id=str(entity_id),
            phase=phase,
            events_deleted=events_deleted,
            reason=reason,
        )
        return Err(error)
