"""
Core Type Definitions for the Visit History Engine

Implements Result/Either monads for zero-exception control flow,
plus the identity and time types shared by every history component.

Design Principles:
- Never use null for absence (use Optional or Result)
- Enforce exhaustive pattern matching for all variants
- Identity types validate on construction boundaries (from_string)
- Time is integer nanoseconds; never floats for ordering keys
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    TypeVar,
    Union,
)

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD: ZERO-EXCEPTION CONTROL FLOW
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """
        Extract value. Safe to call after is_ok() check.

        Returns:
            T: The wrapped success value
        """
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Immutable container for error information.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Attempting to unwrap an error is a programming error.

        Raises:
            RuntimeError: Always, with error context
        """
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# IDENTITY TYPES WITH VALIDATION
# =============================================================================
_ENTITY_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]{0,254}$")


@dataclass(frozen=True, slots=True, order=True)
class EntityId:
    """
    Identifier of a visit whose history is tracked.

    Visit ids are opaque strings issued by the document store
    (e.g. "visit-42"). They become a path segment of the history
    collections, so separators are rejected.
    """

    value: str

    @classmethod
    def from_string(cls, s: str) -> Result[EntityId, str]:
        """
        Parse EntityId from string representation.

        Returns:
            Ok[EntityId]: Valid identifier
            Err[str]: Validation error message
        """
        if not isinstance(s, str):
            return Err(f"Invalid EntityId type: {type(s).__name__}")
        candidate = s.strip()
        if not _ENTITY_ID_PATTERN.match(candidate):
            return Err(f"Invalid EntityId format: {s!r}")
        return Ok(cls(value=candidate))

    @property
    def events_path(self) -> str:
        """Collection path of the visit's event log."""
        return f"visits/{self.value}/events"

    @property
    def snapshots_path(self) -> str:
        """Collection path of the visit's snapshots."""
        return f"visits/{self.value}/snapshots"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# TIMESTAMP WITH NANOSECOND PRECISION
# =============================================================================
@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """
    High-precision timestamp for event ordering.

    Stores nanoseconds since Unix epoch. Persisted as a plain int
    so documents stay JSON-serializable.
    """

    nanos: int

    NANOS_PER_SECOND = 1_000_000_000
    NANOS_PER_MILLI = 1_000_000
    NANOS_PER_MICRO = 1_000

    @classmethod
    def now(cls) -> Timestamp:
        """Capture current wall-clock time with nanosecond precision."""
        return cls(nanos=time.time_ns())

    @classmethod
    def from_seconds(cls, seconds: float) -> Timestamp:
        """Convert floating-point seconds to Timestamp."""
        return cls(nanos=int(seconds * cls.NANOS_PER_SECOND))

    @classmethod
    def from_millis(cls, millis: int) -> Timestamp:
        """Convert milliseconds to Timestamp."""
        return cls(nanos=millis * cls.NANOS_PER_MILLI)

    @classmethod
    def parse(cls, raw: Any) -> Result[Timestamp, str]:
        """
        Parse a persisted timestamp field.

        Accepts integer nanoseconds (the native form), Timestamp
        instances and aware datetimes. Anything else is invalid:
        such records cannot be placed in time.
        """
        if isinstance(raw, Timestamp):
            return Ok(raw)
        if isinstance(raw, bool):
            return Err(f"Invalid timestamp: {raw!r}")
        if isinstance(raw, int):
            if raw < 0:
                return Err(f"Negative timestamp: {raw}")
            return Ok(cls(nanos=raw))
        if isinstance(raw, datetime):
            if raw.tzinfo is None:
                raw = raw.replace(tzinfo=timezone.utc)
            return Ok(cls(nanos=int(raw.timestamp() * cls.NANOS_PER_SECOND)))
        return Err(f"Invalid timestamp: {raw!r}")

    @property
    def seconds(self) -> float:
        return self.nanos / self.NANOS_PER_SECOND

    @property
    def millis(self) -> int:
        return self.nanos // self.NANOS_PER_MILLI

    def to_datetime(self) -> datetime:
        """Convert to an aware UTC datetime (microsecond precision)."""
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc)

    def isoformat(self) -> str:
        return self.to_datetime().isoformat()

    def __sub__(self, other: Timestamp) -> int:
        """Subtract timestamps, returning difference in nanos."""
        return self.nanos - other.nanos

    def __add__(self, nanos: int) -> Timestamp:
        result = self.nanos + nanos
        if result < 0:
            raise OverflowError("Timestamp underflow")
        return Timestamp(nanos=result)

    def __repr__(self) -> str:
        return f"Timestamp({self.nanos}ns)"
