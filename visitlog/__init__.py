"""
Visit Version History Engine

Per-visit edit history for a visit-logging application:
- Event Log: append-only record of every agenda, debrief and note edit
- Snapshots: fixed-size, immutable, gap-free numbered versions
- Reader: "snapshots + recent edits" for history panels
- Eraser: administrative removal of a visit's history

Backends: in-memory (development, tests) and Redis (production).

Author: Planetary AI Systems
License: MIT
"""

__version__ = "0.1.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from visitlog.core.types import (
    Result,
    Ok,
    Err,
    EntityId,
    Timestamp,
)
from visitlog.core.errors import (
    VisitLogError,
    StorageError,
    CaptureError,
    QueryError,
    CompactionError,
    ErasureError,
    ConfigError,
)
from visitlog.core.config import VisitLogConfig

# History exports
from visitlog.history import (
    Editor,
    EventType,
    HistoryEvent,
    HistorySnapshot,
    CaptureOutcome,
    VersionHistoryService,
    create_service,
)

# Storage exports
from visitlog.storage import (
    InMemoryDocumentStore,
    create_document_store,
)

__all__ = [
    # Version
    "__version__",
    # Result monad
    "Result",
    "Ok",
    "Err",
    # Identity types
    "EntityId",
    "Timestamp",
    # Errors
    "VisitLogError",
    "StorageError",
    "CaptureError",
    "QueryError",
    "CompactionError",
    "ErasureError",
    "ConfigError",
    # Config
    "VisitLogConfig",
    # History
    "Editor",
    "EventType",
    "HistoryEvent",
    "HistorySnapshot",
    "CaptureOutcome",
    "VersionHistoryService",
    "create_service",
    # Storage
    "InMemoryDocumentStore",
    "create_document_store",
]
