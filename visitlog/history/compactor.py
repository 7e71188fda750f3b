"""
Snapshot Compactor: Grouping the Event Log into Versions

Provides:
- Full-chunk grouping of the uncompacted tail into snapshots
- Gap-free version numbering per visit
- Safe concurrent runs on the same visit

Compaction Strategy:
    1. Load all events, then all snapshots
    2. Uncompacted = events in no snapshot, ascending by (timestamp, id)
    3. Split into consecutive chunks of exactly batch_size
    4. For each full chunk: re-read the current max version, check it
       matches what this run expects, create the next version slot
    5. The short final chunk stays behind as the live tail

Concurrency:
    The version slot id is derived from the version number and is
    written with create-if-absent. If the max version moved since this
    run read the log, or the slot is already taken, another run has
    made progress from a newer view; this run stops and reports
    conflict=True. Snapshots stay disjoint and versions stay 1..k.
    A slot holding an unreadable document counts as taken, so the
    next run moves past it instead of retrying it forever.

Failure:
    A failed write aborts the remaining chunks. Nothing is retried;
    the next capture re-drives compaction from what is stored.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Sequence

from visitlog.core import constants as C
from visitlog.core.errors import CompactionError
from visitlog.core.types import EntityId, Err, Ok, Result
from visitlog.history.events import HistoryEvent
from visitlog.history.snapshot import HistorySnapshot, snapshot_id_for
from visitlog.history.timeline import load_snapshots, load_timeline
from visitlog.observability.logging import StructuredLogger
from visitlog.observability.metrics import HistoryMetrics
from visitlog.storage.protocols import ALREADY_EXISTS, DocumentStoreProtocol


logger = StructuredLogger(__name__)


# =============================================================================
# COMPACTION REPORT
# =============================================================================
@dataclass(frozen=True, slots=True)
class CompactionReport:
    """Outcome of one compaction run."""
    entity_id: str
    events_seen: int
    uncompacted: int
    snapshots_created: tuple[HistorySnapshot, ...] = ()
    tail_size: int = 0
    conflict: bool = False

    @property
    def versions_created(self) -> list[int]:
        return [snapshot.version for snapshot in self.snapshots_created]


# =============================================================================
# COMPACTION STATISTICS
# =============================================================================
@dataclass
class CompactionStats:
    """Running totals for one compactor instance."""
    runs: int = 0
    snapshots_created: int = 0
    failures: int = 0
    conflicts: int = 0
    total_duration_seconds: float = 0.0

    @property
    def avg_run_duration(self) -> float:
        if self.runs == 0:
            return 0.0
        return self.total_duration_seconds / self.runs


def full_chunks(events: Sequence[HistoryEvent], batch_size: int) -> list[list[HistoryEvent]]:
    """Consecutive groups of exactly batch_size; a short remainder is dropped."""
    complete = len(events) - (len(events) % batch_size)
    return [list(events[i:i + batch_size]) for i in range(0, complete, batch_size)]


# =============================================================================
# SNAPSHOT COMPACTOR
# =============================================================================
class SnapshotCompactor:
    """
    Groups a visit's uncompacted events into numbered snapshots.

    Holds no per-visit state between runs; the store is the only
    channel between runs, including concurrent ones.

    Usage:
        compactor = SnapshotCompactor(store, batch_size=10)
        result = await compactor.compact(EntityId("visit-42"))
        if result.is_ok():
            print(result.unwrap().versions_created)
    """

    __slots__ = ("_store", "_batch_size", "_stats", "_metrics")

    def __init__(
        self,
        store: DocumentStoreProtocol,
        batch_size: int = C.DEFAULT_BATCH_SIZE,
        metrics: Optional[HistoryMetrics] = None,
    ) -> None:
        if batch_size < C.MIN_BATCH_SIZE:
            raise ValueError(f"batch_size must be >= {C.MIN_BATCH_SIZE}, got {batch_size}")
        self._store = store
        self._batch_size = batch_size
        self._stats = CompactionStats()
        self._metrics = metrics or HistoryMetrics()

    async def compact(self, entity_id: EntityId) -> Result[CompactionReport, CompactionError]:
        """
        Run one compaction pass for a visit.

        Returns:
            Ok(CompactionReport): finished, possibly stopped by a
                concurrent run (report.conflict)
            Err(CompactionError): a load or write failed; snapshots
                created before the failure remain valid
        """
        start = time.perf_counter()
        with logger.context(entity_id=str(entity_id)):
            with self._metrics.compaction_duration.time():
                result = await self._run(entity_id)
        self._stats.runs += 1
        self._stats.total_duration_seconds += time.perf_counter() - start

        if result.is_err():
            self._stats.failures += 1
            self._metrics.compaction_failures.inc()
            logger.error(
                "Compaction failed",
                error=str(result.error),
                error_code=result.error.code.name,
                **result.error.context,
            )
            return result

        report = result.unwrap()
        self._stats.snapshots_created += len(report.snapshots_created)
        if report.conflict:
            self._stats.conflicts += 1
            self._metrics.compaction_conflicts.inc()
        return result

    async def _run(self, entity_id: EntityId) -> Result[CompactionReport, CompactionError]:
        loaded = await load_timeline(self._store, entity_id)
        if loaded.is_err():
            collection, reason = loaded.error
            return Err(CompactionError.load_failed(str(entity_id), collection, reason))

        timeline = loaded.unwrap()
        pending = timeline.uncompacted()
        baseline = timeline.max_version
        chunks = full_chunks(pending, self._batch_size)

        created: list[HistorySnapshot] = []
        conflict = False

        for chunk in chunks:
            expected = baseline + len(created)
            version = expected + 1

            current = await self._current_max_version(entity_id)
            if current.is_err():
                return Err(CompactionError.persist_failed(
                    str(entity_id), version, len(created), current.error,
                ))
            if current.unwrap() != expected:
                conflict = True
                logger.warning(
                    "Version moved during compaction; yielding to concurrent run",
                    expected_version=expected,
                    current_version=current.unwrap(),
                )
                break

            written = await self._store.create(
                entity_id.snapshots_path,
                snapshot_id_for(version),
                HistorySnapshot.new_document(version, chunk),
            )
            if written.is_err():
                if written.error == ALREADY_EXISTS:
                    conflict = True
                    logger.warning(
                        "Version slot already taken; yielding to concurrent run",
                        version=version,
                    )
                    break
                return Err(CompactionError.persist_failed(
                    str(entity_id), version, len(created), written.error,
                ))

            snapshot = HistorySnapshot.from_document(snapshot_id_for(version), written.unwrap())
            if snapshot.is_err():
                return Err(CompactionError.persist_failed(
                    str(entity_id), version, len(created), snapshot.error,
                ))
            created.append(snapshot.unwrap())
            self._metrics.snapshots_created.inc()
            logger.info(
                f"Created snapshot Version {version}",
                version=version,
                event_count=len(chunk),
                summary=snapshot.unwrap().summary,
            )

        return Ok(CompactionReport(
            entity_id=str(entity_id),
            events_seen=len(timeline.events),
            uncompacted=len(pending),
            snapshots_created=tuple(created),
            tail_size=len(pending) - len(created) * self._batch_size,
            conflict=conflict,
        ))

    async def _current_max_version(self, entity_id: EntityId) -> Result[int, str]:
        snapshots = await load_snapshots(self._store, entity_id)
        if snapshots.is_err():
            return Err(snapshots.error)
        return Ok(snapshots.unwrap().max_version)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def stats(self) -> CompactionStats:
        return self._stats
