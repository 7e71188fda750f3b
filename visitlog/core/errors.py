"""
Error Hierarchy for the Visit History Engine

Design Principles:
- Forbid exceptions for control flow (use Result types)
- Never swallow errors or use null for absence
- Carry full error context for debugging and audit trails

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlation with log lines

Usage:
    result = await eraser.erase_history(entity_id)
    match result:
        case Ok(report):
            show(report)
        case Err(ErasureError() as error):
            alert(error.context["events_deleted"])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from visitlog.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Storage errors
    - 2xxx: Capture (detect + append) errors
    - 3xxx: Query errors
    - 4xxx: Compaction errors
    - 5xxx: Erasure errors
    - 9xxx: Internal/configuration errors
    """

    # Storage errors (1xxx)
    STORAGE_CONNECTION_FAILED = 1001
    STORAGE_OPERATION_FAILED = 1002
    STORAGE_CONFLICT = 1003

    # Capture errors (2xxx)
    CAPTURE_INVALID_ENTITY = 2001
    CAPTURE_PERSIST_FAILED = 2002

    # Query errors (3xxx)
    QUERY_LOAD_FAILED = 3001
    QUERY_RESOURCE_NOT_FOUND = 3004

    # Compaction errors (4xxx)
    COMPACTION_LOAD_FAILED = 4001
    COMPACTION_PERSIST_FAILED = 4002

    # Erasure errors (5xxx)
    ERASURE_FAILED = 5001

    # Internal errors (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_CONFIGURATION_ERROR = 9002


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class VisitLogError(Exception):
    """
    Base class for all history engine errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp for correlation
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[Exception] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for logging/API responses."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# STORAGE ERRORS
# =============================================================================
@dataclass
class StorageError(VisitLogError):
    """Errors raised by document store backends."""

    @classmethod
    def connection_failed(
        cls,
        host: str,
        port: int,
        cause: Optional[Exception] = None,
    ) -> StorageError:
        """Store connection failed."""
        return cls(
            code=ErrorCode.STORAGE_CONNECTION_FAILED,
            message=f"Failed to connect to document store at {host}:{port}",
            cause=cause,
            context={"host": host, "port": port},
        )

    @classmethod
    def operation_failed(
        cls,
        operation: str,
        collection: str,
        reason: str,
    ) -> StorageError:
        """A store operation returned an error."""
        return cls(
            code=ErrorCode.STORAGE_OPERATION_FAILED,
            message=f"Store operation '{operation}' on '{collection}' failed: {reason}",
            context={"operation": operation, "collection": collection, "reason": reason},
        )

    @classmethod
    def conflict(cls, collection: str, doc_id: str) -> StorageError:
        """Conditional create lost against an existing document."""
        return cls(
            code=ErrorCode.STORAGE_CONFLICT,
            message=f"Document '{doc_id}' already exists in '{collection}'",
            context={"collection": collection, "doc_id": doc_id},
        )


# =============================================================================
# CAPTURE ERRORS (WRITE PATH)
# =============================================================================
@dataclass
class CaptureError(VisitLogError):
    """
    Errors from detecting and appending history events.

    Capture is best-effort: these are logged and reported, never
    raised into the write path that triggered them.
    """

    @classmethod
    def invalid_entity(cls, raw_id: Any, reason: str) -> CaptureError:
        return cls(
            code=ErrorCode.CAPTURE_INVALID_ENTITY,
            message=f"Cannot capture history for entity {raw_id!r}: {reason}",
            context={"entity_id": str(raw_id), "reason": reason},
        )

    @classmethod
    def persist_failed(
        cls,
        entity_id: str,
        event_count: int,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> CaptureError:
        return cls(
            code=ErrorCode.CAPTURE_PERSIST_FAILED,
            message=f"Failed to append {event_count} event(s) for {entity_id}: {reason}",
            cause=cause,
            context={"entity_id": entity_id, "event_count": event_count, "reason": reason},
        )


# =============================================================================
# QUERY ERRORS (READ PATH)
# =============================================================================
@dataclass
class QueryError(VisitLogError):
    """Errors from assembling history views."""

    @classmethod
    def load_failed(cls, entity_id: str, collection: str, reason: str) -> QueryError:
        return cls(
            code=ErrorCode.QUERY_LOAD_FAILED,
            message=f"Failed to load {collection} for {entity_id}: {reason}",
            context={"entity_id": entity_id, "collection": collection, "reason": reason},
        )

    @classmethod
    def resource_not_found(cls, resource_type: str, resource_id: str) -> QueryError:
        return cls(
            code=ErrorCode.QUERY_RESOURCE_NOT_FOUND,
            message=f"{resource_type} '{resource_id}' not found",
            context={"resource_type": resource_type, "resource_id": resource_id},
        )


# =============================================================================
# COMPACTION ERRORS
# =============================================================================
@dataclass
class CompactionError(VisitLogError):
    """
    Errors from grouping the event log into snapshots.

    The run that hit the error is abandoned; the next capture
    recomputes the uncompacted tail from the store.
    """

    @classmethod
    def load_failed(cls, entity_id: str, collection: str, reason: str) -> CompactionError:
        return cls(
            code=ErrorCode.COMPACTION_LOAD_FAILED,
            message=f"Compaction could not load {collection} for {entity_id}: {reason}",
            context={"entity_id": entity_id, "collection": collection, "reason": reason},
        )

    @classmethod
    def persist_failed(
        cls,
        entity_id: str,
        version: int,
        snapshots_created: int,
        reason: str,
    ) -> CompactionError:
        return cls(
            code=ErrorCode.COMPACTION_PERSIST_FAILED,
            message=f"Failed to persist snapshot version {version} for {entity_id}: {reason}",
            context={
                "entity_id": entity_id,
                "version": version,
                "snapshots_created": snapshots_created,
                "reason": reason,
            },
        )


# =============================================================================
# ERASURE ERRORS
# =============================================================================
@dataclass
class ErasureError(VisitLogError):
    """
    Erasure failed part-way.

    Context always carries the counts deleted before the failure,
    so callers can report the partial state honestly.
    """

    @classmethod
    def phase_failed(
        cls,
        entity_id: str,
        phase: str,
        events_deleted: int,
        snapshots_deleted: int,
        reason: str,
    ) -> ErasureError:
        return cls(
            code=ErrorCode.ERASURE_FAILED,
            message=f"Erasing {phase} for {entity_id} failed: {reason}",
            context={
                "entity_id": entity_id,
                "phase": phase,
                "events_deleted": events_deleted,
                "snapshots_deleted": snapshots_deleted,
                "reason": reason,
            },
        )

    @property
    def events_deleted(self) -> int:
        return int(self.context.get("events_deleted", 0))

    @property
    def snapshots_deleted(self) -> int:
        return int(self.context.get("snapshots_deleted", 0))


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass
class ConfigError(VisitLogError):
    """Invalid configuration value."""

    @classmethod
    def invalid(cls, key: str, value: Any, reason: str) -> ConfigError:
        return cls(
            code=ErrorCode.INTERNAL_CONFIGURATION_ERROR,
            message=f"Invalid configuration {key}={value!r}: {reason}",
            context={"key": key, "value": str(value), "reason": reason},
        )
