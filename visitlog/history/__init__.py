"""
History Module: Visit Version History

Provides:
- Text: HTML to plain-text normalization shared by detection and display
- Detector: Old vs. new visit state diffing
- Recorder: Append-only event log writes
- Compactor: Grouping the log into numbered snapshots
- Reader: Snapshots + recent edits for display
- Eraser: Administrative removal
- Service: The capture / display / erase facade

Architecture:
- Command Side: detector -> recorder -> compactor, per visit write
- Query Side: reader assembles views client-side from the two collections
"""

from visitlog.history.text import (
    to_plain_text,
    truncate,
)
from visitlog.history.events import (
    Editor,
    EventDraft,
    EventType,
    HistoryEvent,
)
from visitlog.history.snapshot import (
    HistorySnapshot,
    build_summary,
    snapshot_id_for,
    version_of_slot,
)
from visitlog.history.detector import (
    NoteState,
    VisitState,
    detect_changes,
)
from visitlog.history.recorder import EventRecorder
from visitlog.history.compactor import (
    CompactionReport,
    CompactionStats,
    SnapshotCompactor,
)
from visitlog.history.reader import (
    HistoryReader,
    HistoryView,
)
from visitlog.history.eraser import (
    ErasureReport,
    HistoryEraser,
)
from visitlog.history.service import (
    CaptureOutcome,
    VersionHistoryService,
    create_service,
)

__all__ = [
    "to_plain_text",
    "truncate",
    "Editor",
    "EventDraft",
    "EventType",
    "HistoryEvent",
    "HistorySnapshot",
    "build_summary",
    "snapshot_id_for",
    "version_of_slot",
    "NoteState",
    "VisitState",
    "detect_changes",
    "EventRecorder",
    "CompactionReport",
    "CompactionStats",
    "SnapshotCompactor",
    "HistoryReader",
    "HistoryView",
    "ErasureReport",
    "HistoryEraser",
    "CaptureOutcome",
    "VersionHistoryService",
    "create_service",
]
