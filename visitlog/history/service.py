"""
Version History Service: the integration seam

The host application calls capture() from its visit write path with
the state before and after the write. Display surfaces call
list_history() / expand_snapshot(); administrators call
erase_history().

capture() never raises: history is best-effort and must not fail the
write that triggered it. Its outcome says what happened.

Author: Planetary AI Systems
License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from visitlog.core.config import HistoryConfig, VisitLogConfig
from visitlog.core.errors import CaptureError, ErasureError, QueryError, StorageError
from visitlog.core.types import EntityId, Err, Ok, Result
from visitlog.history.compactor import SnapshotCompactor
from visitlog.history.detector import VisitInput, detect_changes
from visitlog.history.eraser import ErasureReport, HistoryEraser
from visitlog.history.events import Editor, HistoryEvent
from visitlog.history.reader import HistoryReader, HistoryView
from visitlog.history.recorder import EventRecorder
from visitlog.observability.logging import StructuredLogger
from visitlog.observability.metrics import HistoryMetrics, MetricsCollector
from visitlog.storage import create_document_store
from visitlog.storage.protocols import DocumentStoreProtocol


logger = StructuredLogger(__name__)

EntityRef = Union[EntityId, str]


@dataclass(frozen=True, slots=True)
class CaptureOutcome:
    """
    Result of one capture call.

    Exactly one of: events recorded (possibly none), skipped with a
    reason, or failed with an error.
    """
    entity_id: str
    events: tuple[HistoryEvent, ...] = ()
    skipped_reason: Optional[str] = None
    error: Optional[CaptureError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.skipped_reason is None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def event_count(self) -> int:
        return len(self.events)


class VersionHistoryService:
    """
    Facade over detector, recorder, compactor, reader and eraser.

    Usage:
        service = VersionHistoryService(InMemoryDocumentStore())
        await service.capture("visit-42", before, after, Editor("u1", "ana@example.com"))
        view = (await service.list_history("visit-42")).unwrap()
    """

    __slots__ = ("_store", "_compactor", "_recorder", "_reader", "_eraser", "_config")

    def __init__(
        self,
        store: DocumentStoreProtocol,
        config: Optional[HistoryConfig] = None,
        metrics: Optional[HistoryMetrics] = None,
    ) -> None:
        self._config = config or HistoryConfig()
        metrics = metrics or HistoryMetrics()
        self._store = store
        self._compactor = SnapshotCompactor(store, self._config.batch_size, metrics)
        self._recorder = EventRecorder(
            store,
            self._compactor if self._config.compaction_enabled else None,
            self._config.compaction_mode,
            metrics,
        )
        self._reader = HistoryReader(store)
        self._eraser = HistoryEraser(store, metrics)

    # -------------------------------------------------------------------------
    # WRITE PATH
    # -------------------------------------------------------------------------

    async def capture(
        self,
        entity_id: EntityRef,
        before: VisitInput,
        after: VisitInput,
        editor: Optional[Editor],
    ) -> CaptureOutcome:
        """Detect and record the edits between two visit states."""
        resolved = _resolve(entity_id)
        if resolved.is_err():
            error = CaptureError.invalid_entity(entity_id, resolved.error)
            logger.warning("Ignoring capture for invalid visit id", entity_id=str(entity_id))
            return CaptureOutcome(entity_id=str(entity_id), error=error)
        visit = resolved.unwrap()

        with logger.context(entity_id=str(visit)):
            if editor is None or not editor.user_id:
                logger.warning(f"No editor recorded for visit {visit}; history not captured")
                return CaptureOutcome(entity_id=str(visit), skipped_reason="missing editor")

            try:
                drafts = detect_changes(before, after)
                if not drafts:
                    logger.debug("No tracked fields changed")
                    return CaptureOutcome(entity_id=str(visit))
                recorded = await self._recorder.record(visit, drafts, editor)
            except Exception as e:
                logger.exception("Capture raised unexpectedly")
                error = CaptureError.persist_failed(str(visit), 0, str(e), cause=e)
                return CaptureOutcome(entity_id=str(visit), error=error)

        if recorded.is_err():
            return CaptureOutcome(entity_id=str(visit), error=recorded.error)
        return CaptureOutcome(entity_id=str(visit), events=tuple(recorded.unwrap()))

    # -------------------------------------------------------------------------
    # DISPLAY SURFACES
    # -------------------------------------------------------------------------

    async def list_history(self, entity_id: EntityRef) -> Result[HistoryView, QueryError]:
        resolved = _resolve(entity_id)
        if resolved.is_err():
            return Err(QueryError.resource_not_found("Visit", str(entity_id)))
        return await self._reader.list_history(resolved.unwrap())

    async def expand_snapshot(
        self,
        entity_id: EntityRef,
        snapshot_id: str,
    ) -> Result[list[HistoryEvent], QueryError]:
        resolved = _resolve(entity_id)
        if resolved.is_err():
            return Err(QueryError.resource_not_found("Visit", str(entity_id)))
        return await self._reader.expand_snapshot(resolved.unwrap(), snapshot_id)

    async def erase_history(self, entity_id: EntityRef) -> Result[ErasureReport, ErasureError]:
        resolved = _resolve(entity_id)
        if resolved.is_err():
            return Err(ErasureError.phase_failed(str(entity_id), "validation", 0, 0, resolved.error))
        return await self._eraser.erase_history(resolved.unwrap())

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for background compactions."""
        await self._recorder.drain()

    async def close(self) -> None:
        await self.drain()
        await self._store.close()

    @property
    def store(self) -> DocumentStoreProtocol:
        return self._store

    @property
    def compactor(self) -> SnapshotCompactor:
        return self._compactor

    @property
    def config(self) -> HistoryConfig:
        return self._config


def _resolve(entity_id: EntityRef) -> Result[EntityId, str]:
    if isinstance(entity_id, EntityId):
        return Ok(entity_id)
    return EntityId.from_string(entity_id)


async def create_service(
    config: Optional[VisitLogConfig] = None,
) -> Result[VersionHistoryService, StorageError]:
    """
    Build the full stack from configuration.

    Connects the Redis backend when selected.
    """
    config = config or VisitLogConfig()
    store = create_document_store(config.storage)

    connect = getattr(store, "connect", None)
    if connect is not None:
        connected = await connect()
        if connected.is_err():
            redis_config = config.storage.redis_config
            logger.error("Document store unavailable", reason=connected.error)
            return Err(StorageError.connection_failed(redis_config.host, redis_config.port))

    if config.observability.metrics_enabled:
        metrics = HistoryMetrics()
    else:
        # Private registry that is never exported
        metrics = HistoryMetrics(MetricsCollector())

    return Ok(VersionHistoryService(store, config.history, metrics))
