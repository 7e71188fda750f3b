"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for the history engine:
- Result/Either monads for zero-exception control flow
- Exhaustive error hierarchy with pattern matching support
- Configuration management with validation
"""

from visitlog.core.types import (
    Result,
    Ok,
    Err,
    EntityId,
    Timestamp,
)
from visitlog.core.errors import (
    ErrorCode,
    VisitLogError,
    StorageError,
    CaptureError,
    QueryError,
    CompactionError,
    ErasureError,
    ConfigError,
)
from visitlog.core.config import (
    CompactionMode,
    HistoryConfig,
    ObservabilityConfig,
    VisitLogConfig,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "EntityId",
    "Timestamp",
    "ErrorCode",
    "VisitLogError",
    "StorageError",
    "CaptureError",
    "QueryError",
    "CompactionError",
    "ErasureError",
    "ConfigError",
    "CompactionMode",
    "HistoryConfig",
    "ObservabilityConfig",
    "VisitLogConfig",
]
