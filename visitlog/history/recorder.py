"""
Event Recorder: appending detected changes to a visit's log

All drafts from one write are persisted as one atomic batch, each with
a store-generated id and a store-clock timestamp. A successful,
non-empty append then triggers compaction for the same visit.

Compaction is fire-and-forget from the recorder's point of view: its
outcome never changes the result of the append. Two trigger modes:

- INLINE: awaited before record() returns; errors are logged
- BACKGROUND: scheduled as an asyncio task; the recorder keeps a
  reference until the task completes (see drain())
"""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from visitlog.core.config import CompactionMode
from visitlog.core.errors import CaptureError
from visitlog.core.types import EntityId, Err, Ok, Result
from visitlog.history.compactor import SnapshotCompactor
from visitlog.history.events import Editor, EventDraft, HistoryEvent
from visitlog.observability.logging import StructuredLogger
from visitlog.observability.metrics import HistoryMetrics
from visitlog.storage.protocols import DocumentStoreProtocol


logger = StructuredLogger(__name__)


class EventRecorder:
    """
    Appends event batches and drives compaction.

    Usage:
        recorder = EventRecorder(store, compactor)
        result = await recorder.record(entity_id, drafts, editor)
    """

    __slots__ = ("_store", "_compactor", "_mode", "_metrics", "_pending")

    def __init__(
        self,
        store: DocumentStoreProtocol,
        compactor: Optional[SnapshotCompactor] = None,
        mode: CompactionMode = CompactionMode.INLINE,
        metrics: Optional[HistoryMetrics] = None,
    ) -> None:
        self._store = store
        self._compactor = compactor
        self._mode = mode
        self._metrics = metrics or HistoryMetrics()
        self._pending: set[asyncio.Task] = set()

    async def record(
        self,
        entity_id: EntityId,
        drafts: Sequence[EventDraft],
        editor: Editor,
    ) -> Result[list[HistoryEvent], CaptureError]:
        """
        Persist drafts as one batch.

        Returns:
            Ok([...]): the persisted events in draft order ([] when
                there was nothing to record; no store call is made)
            Err(CaptureError): nothing was written; no retry is scheduled
        """
        if not drafts:
            return Ok([])

        documents = [draft.to_document(editor) for draft in drafts]
        written = await self._store.add_many(entity_id.events_path, documents)
        if written.is_err():
            return self._capture_failed(entity_id, len(drafts), written.error)

        events: list[HistoryEvent] = []
        for doc_id, stored in written.unwrap():
            parsed = HistoryEvent.from_document(doc_id, stored)
            if parsed.is_err():
                return self._capture_failed(entity_id, len(drafts), parsed.error)
            events.append(parsed.unwrap())

        for event in events:
            self._metrics.events_recorded.inc(type=event.type.value)
        logger.info(
            f"Saved {len(events)} version history events",
            entity_id=str(entity_id),
            event_count=len(events),
            event_types=[event.type.value for event in events],
            user_id=editor.user_id,
        )

        await self._trigger_compaction(entity_id)
        return Ok(events)

    def _capture_failed(
        self,
        entity_id: EntityId,
        event_count: int,
        reason: str,
    ) -> Err[CaptureError]:
        error = CaptureError.persist_failed(str(entity_id), event_count, reason)
        self._metrics.capture_failures.inc()
        logger.error(
            "Failed to save version history events",
            entity_id=str(entity_id),
            event_count=event_count,
            reason=reason,
            error_id=error.error_id,
        )
        return Err(error)

    # -------------------------------------------------------------------------
    # COMPACTION TRIGGER
    # -------------------------------------------------------------------------

    async def _trigger_compaction(self, entity_id: EntityId) -> None:
        if self._compactor is None:
            return
        if self._mode == CompactionMode.BACKGROUND:
            task = asyncio.create_task(
                self._compact_contained(entity_id),
                name=f"compact:{entity_id}",
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return
        await self._compact_contained(entity_id)

    async def _compact_contained(self, entity_id: EntityId) -> None:
        # The compactor logs and counts its own failures
        try:
            await self._compactor.compact(entity_id)
        except Exception:
            logger.exception("Compaction raised unexpectedly", entity_id=str(entity_id))

    async def drain(self) -> None:
        """Wait for scheduled background compactions to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_compactions(self) -> int:
        return len(self._pending)

    @property
    def mode(self) -> CompactionMode:
        return self._mode
