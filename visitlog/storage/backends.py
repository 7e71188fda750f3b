"""
In-Memory Document Store: Development and Testing Implementation

Provides a protocol-complete in-memory implementation of
DocumentStoreProtocol:
- Collection-scoped documents with generated ids
- Atomic single-collection batches
- Conditional create (create-if-absent)
- Strictly increasing server timestamps

Design Principles:
    - Full protocol compliance for seamless production swap
    - Safe under concurrent coroutines via one asyncio.Lock
    - Documents are copied on the way in and out, so callers can
      never mutate stored state
    - Optional simulated latency to interleave concurrent callers

Performance Characteristics:
    - add_many / delete_all / list_all: O(n) in documents touched
    - create / get: O(1)

Author: Planetary AI Systems
License: MIT
"""

from __future__ import annotations

import asyncio
import copy
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from visitlog.core.types import Err, Ok, Result
from visitlog.storage.protocols import (
    ALREADY_EXISTS,
    SERVER_TIMESTAMP,
    Document,
    OperationMetadata,
    OperationType,
)


# =============================================================================
# CONSTANTS
# =============================================================================
DEFAULT_SIMULATED_LATENCY_NS: int = 50_000  # 50 microseconds


class InMemoryDocumentStore:
    """
    In-memory document store with per-operation atomicity.

    Thread Safety:
        All operations are protected by asyncio.Lock for
        concurrent access safety within async context.

    Example:
        store = InMemoryDocumentStore()

        result = await store.add_many("visits/v1/events", [{"type": "note_add"}])
        docs = (await store.list_all("visits/v1/events")).unwrap()
    """

    __slots__ = (
        "_collections",
        "_lock",
        "_last_timestamp_ns",
        "_simulate_latency",
    )

    def __init__(self, simulate_latency: bool = False) -> None:
        """
        Initialize in-memory store.

        Args:
            simulate_latency: If True, yield to the event loop with a
                small delay before every operation
        """
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = asyncio.Lock()
        self._last_timestamp_ns: int = 0
        self._simulate_latency = simulate_latency

    async def _simulate_network_latency(self) -> None:
        if self._simulate_latency:
            await asyncio.sleep(DEFAULT_SIMULATED_LATENCY_NS / 1_000_000_000)

    def _server_time_ns(self) -> int:
        """Store clock; strictly increasing even within one batch."""
        now = time.time_ns()
        if now <= self._last_timestamp_ns:
            now = self._last_timestamp_ns + 1
        self._last_timestamp_ns = now
        return now

    def _materialize(self, document: Mapping[str, Any]) -> Document:
        stored: Document = {}
        for key, value in document.items():
            if value is SERVER_TIMESTAMP:
                stored[key] = self._server_time_ns()
            else:
                stored[key] = copy.deepcopy(value)
        return stored

    # -------------------------------------------------------------------------
    # DocumentStoreProtocol Implementation
    # -------------------------------------------------------------------------

    async def add_many(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
    ) -> Result[List[Tuple[str, Document]], str]:
        """Atomically create documents with generated ids."""
        await self._simulate_network_latency()

        async with self._lock:
            target = self._collections.setdefault(collection, {})
            written: List[Tuple[str, Document]] = []
            for document in documents:
                doc_id = uuid4().hex
                stored = self._materialize(document)
                target[doc_id] = stored
                written.append((doc_id, copy.deepcopy(stored)))
            return Ok(written)

    async def create(
        self,
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
    ) -> Result[Document, str]:
        """Create-if-absent under a caller-chosen id."""
        await self._simulate_network_latency()

        async with self._lock:
            target = self._collections.setdefault(collection, {})
            if doc_id in target:
                return Err(ALREADY_EXISTS)
            stored = self._materialize(document)
            target[doc_id] = stored
            return Ok(copy.deepcopy(stored))

    async def get(
        self,
        collection: str,
        doc_id: str,
    ) -> Result[Optional[Document], str]:
        await self._simulate_network_latency()

        async with self._lock:
            stored = self._collections.get(collection, {}).get(doc_id)
            return Ok(copy.deepcopy(stored) if stored is not None else None)

    async def list_all(
        self,
        collection: str,
    ) -> Result[List[Tuple[str, Document]], str]:
        """Read every document; insertion order is not a contract."""
        await self._simulate_network_latency()

        async with self._lock:
            target = self._collections.get(collection, {})
            return Ok([
                (doc_id, copy.deepcopy(stored))
                for doc_id, stored in target.items()
            ])

    async def delete_all(
        self,
        collection: str,
    ) -> Result[OperationMetadata, str]:
        """Atomically delete every document in the collection."""
        start_ns = time.time_ns()
        await self._simulate_network_latency()

        async with self._lock:
            removed = self._collections.pop(collection, {})
            return Ok(OperationMetadata(
                operation=OperationType.DELETE,
                latency_ns=time.time_ns() - start_ns,
                affected_rows=len(removed),
            ))

    async def close(self) -> None:
        """Nothing to release for the in-memory store."""
        return None

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    async def clear(self) -> None:
        """Clear all data (for testing)."""
        async with self._lock:
            self._collections.clear()

    async def count(self, collection: str) -> int:
        """Number of documents in a collection."""
        async with self._lock:
            return len(self._collections.get(collection, {}))

    async def put_raw(self, collection: str, doc_id: str, document: Document) -> None:
        """Write a document verbatim, bypassing id generation (for tests)."""
        async with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(document)
