"""
Document Store Protocol: the slice of the external document database
that the history engine consumes.

Provides structural subtyping protocols (PEP 544) for pluggable backends:
- DocumentStoreProtocol: batch append, conditional create, list, bulk delete

Design Principles:
    - Zero-exception control flow via Result[T, E] monad
    - Async-first for non-blocking I/O
    - No server-side ordering: callers sort client-side, so no
      composite index is ever required
    - Atomicity is per single document or per single-collection batch;
      there are no cross-collection transactions

Author: Planetary AI Systems
License: MIT
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from visitlog.core.types import Result


# Stored documents are JSON-compatible mappings
Document = dict[str, Any]


# =============================================================================
# SERVER TIMESTAMP SENTINEL
# =============================================================================
class _ServerTimestamp:
    """
    Placeholder replaced by the store's clock at write time.

    Field values equal to SERVER_TIMESTAMP are rewritten to integer
    nanoseconds by the backend, so creation times come from the store,
    never from the caller.
    """

    _instance: Optional[_ServerTimestamp] = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


# =============================================================================
# OPERATION TYPE
# =============================================================================
class OperationType(Enum):
    """Store operation types reported in OperationMetadata."""
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class OperationMetadata:
    """
    Metadata returned with store write operations.

    Immutable to prevent accidental modification after return.
    """
    operation: OperationType
    latency_ns: int
    affected_rows: int = 0

    @property
    def latency_ms(self) -> float:
        return self.latency_ns / 1_000_000


# Error string returned by create() when the id is taken
ALREADY_EXISTS = "already_exists"


# =============================================================================
# DOCUMENT STORE PROTOCOL
# =============================================================================
@runtime_checkable
class DocumentStoreProtocol(Protocol):
    """
    Async document store with collection-scoped operations.

    Collections are slash-separated paths such as
    "visits/visit-42/events". All methods return Result[T, str].
    """

    @abstractmethod
    async def add_many(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
    ) -> Result[list[tuple[str, Document]], str]:
        """
        Atomically create documents with generated ids.

        SERVER_TIMESTAMP field values are replaced by the store clock.
        Either every document is written or none is.

        Returns:
            Ok([(doc_id, stored_document), ...]) in input order
            Err(message): nothing was written
        """
        ...

    @abstractmethod
    async def create(
        self,
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
    ) -> Result[Document, str]:
        """
        Create a document under a caller-chosen id, only if absent.

        Returns:
            Ok(stored_document)
            Err(ALREADY_EXISTS): id already taken, nothing written
            Err(message): write failed
        """
        ...

    @abstractmethod
    async def get(
        self,
        collection: str,
        doc_id: str,
    ) -> Result[Optional[Document], str]:
        """Fetch one document; Ok(None) when absent."""
        ...

    @abstractmethod
    async def list_all(
        self,
        collection: str,
    ) -> Result[list[tuple[str, Document]], str]:
        """Read every document in a collection, unordered."""
        ...

    @abstractmethod
    async def delete_all(
        self,
        collection: str,
    ) -> Result[OperationMetadata, str]:
        """
        Atomically delete every document in a collection.

        affected_rows in the metadata is the number deleted.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connections. Safe to call multiple times."""
        ...
