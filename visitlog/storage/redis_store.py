"""
Redis Document Store
====================

Production implementation of DocumentStoreProtocol on Redis/Valkey.

Layout:
-------
Each collection is one Redis hash, plus a clock counter:

    {key_prefix}:{collection}        ->  { doc_id: <JSON document>, ... }
    {key_prefix}:{collection}:clock  ->  last timestamp handed out (ns)

e.g. ``visitlog:visits/visit-42/events``.

Atomicity:
----------
- add_many: one MULTI/EXEC transaction of HSET commands
- create: HSETNX (create-if-absent on the server)
- delete_all: MULTI/EXEC of HLEN + DEL, so the reported count is
  exactly what was removed

Timestamps:
-----------
SERVER_TIMESTAMP values in add_many come from a Lua script that reads
the Redis TIME and reserves a block of nanosecond stamps from the
collection clock: max(TIME, last + 1) onwards. Stamps are unique and
increasing per collection across every writing process, even within
one microsecond of server time. create() stamps with TIME directly.

Corrupt Payloads:
-----------------
list_all logs and skips a field whose JSON cannot be decoded, so one
bad document never hides the rest of a collection.

Thread Safety:
--------------
- Connection pool is thread-safe (redis-py internal locking)
- Instance methods are stateless except for pool reference
- Lua scripts execute atomically on server

Author: Planetary AI Systems
License: MIT
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

import redis.asyncio as aioredis
from redis.exceptions import NoScriptError, RedisError

from visitlog.core.types import Err, Ok, Result
from visitlog.observability.logging import StructuredLogger
from visitlog.storage.config import RedisConfig
from visitlog.storage.protocols import (
    ALREADY_EXISTS,
    SERVER_TIMESTAMP,
    Document,
    OperationMetadata,
    OperationType,
)


logger = StructuredLogger(__name__)


# =============================================================================
# LUA SCRIPTS
# =============================================================================

# Reserve ARGV[1] timestamps on the clock at KEYS[1]; returns the last one.
# Timestamps are kept as 19-digit decimal strings and compared as strings,
# since Lua numbers cannot hold nanosecond epochs exactly.
LUA_RESERVE_TIMESTAMPS: str = """
local t = redis.call('TIME')
local now = tostring(t[1]) .. string.format('%06d', tonumber(t[2])) .. '000'
local last = redis.call('GET', KEYS[1])
if (not last) or #now > #last or (#now == #last and now > last) then
    redis.call('SET', KEYS[1], now)
end
return redis.call('INCRBY', KEYS[1], tonumber(ARGV[1]))
"""


# =============================================================================
# METRICS
# =============================================================================

@dataclass(slots=True)
class RedisMetrics:
    """Operation and error counters for the Redis store."""
    write_count: int = 0
    read_count: int = 0
    delete_count: int = 0
    connection_errors: int = 0
    command_errors: int = 0
    create_conflicts: int = 0
    corrupt_documents: int = 0


class RedisDocumentStore:
    """
    Redis-backed document store.

    Usage:
        store = RedisDocumentStore(RedisConfig(host="redis.internal"))
        await store.connect()
        await store.add_many("visits/visit-42/events", [event_doc])
        await store.close()

    A ready-made client (e.g. a shared pool) can be passed as `client`;
    connect() then verifies it instead of opening a new pool.
    """

    __slots__ = ("_config", "_pool", "_metrics", "_connected", "_clock_sha")

    def __init__(self, config: RedisConfig, client: Optional[aioredis.Redis] = None) -> None:
        """
        Initialize Redis store.

        Note:
            Call `connect()` before performing operations.
        """
        self._config = config
        self._pool: Optional[aioredis.Redis] = client
        self._metrics = RedisMetrics()
        self._connected = False
        self._clock_sha: Optional[str] = None

    # -------------------------------------------------------------------------
    # CONNECTION MANAGEMENT
    # -------------------------------------------------------------------------

    async def connect(self) -> Result[None, str]:
        """
        Establish connection pool, verify with PING and load Lua scripts.

        Returns:
            Ok(None) on success, Err with message on failure.
        """
        try:
            if self._pool is None:
                self._pool = aioredis.Redis(**self._config.get_connection_kwargs())
            await self._pool.ping()
            self._clock_sha = await self._pool.script_load(LUA_RESERVE_TIMESTAMPS)
            self._connected = True
            return Ok(None)
        except RedisError as e:
            self._metrics.connection_errors += 1
            self._pool = None
            return Err(
                f"Redis connection to {self._config.host}:{self._config.port} failed: {e}"
            )

    async def close(self) -> None:
        """Close the pool. Safe to call multiple times."""
        if self._pool is not None:
            await self._pool.aclose()
            self._pool = None
        self._connected = False

    async def health_check(self) -> Result[Dict[str, Any], str]:
        """PING round-trip plus operation counters."""
        if not self._connected or self._pool is None:
            return Err("Not connected")
        try:
            await self._pool.ping()
        except RedisError as e:
            self._metrics.command_errors += 1
            return Err(f"Redis error: {e}")
        return Ok({
            "connected": True,
            "writes": self._metrics.write_count,
            "reads": self._metrics.read_count,
            "create_conflicts": self._metrics.create_conflicts,
            "corrupt_documents": self._metrics.corrupt_documents,
        })

    # -------------------------------------------------------------------------
    # KEY + ENCODING HELPERS
    # -------------------------------------------------------------------------

    def collection_key(self, collection: str) -> str:
        """Redis key holding a collection's hash."""
        return f"{self._config.key_prefix}:{collection}"

    def clock_key(self, collection: str) -> str:
        """Redis key holding a collection's timestamp clock."""
        return f"{self.collection_key(collection)}:clock"

    @staticmethod
    def encode(document: Mapping[str, Any]) -> str:
        return json.dumps(document, separators=(",", ":"), sort_keys=True)

    @staticmethod
    def decode(raw: str) -> Document:
        return json.loads(raw)

    @staticmethod
    def materialize(document: Mapping[str, Any], server_ns: int) -> Document:
        """Replace SERVER_TIMESTAMP sentinels with the given store time."""
        return {
            key: (server_ns if value is SERVER_TIMESTAMP else value)
            for key, value in document.items()
        }

    async def _server_time_ns(self) -> int:
        seconds, micros = await self._pool.time()
        return int(seconds) * 1_000_000_000 + int(micros) * 1_000

    async def _reserve_timestamps(self, collection: str, count: int) -> int:
        """
        Reserve `count` consecutive stamps on the collection clock.

        Returns:
            The first reserved stamp; the block is [first, first + count).
        """
        key = self.clock_key(collection)
        try:
            last = await self._pool.evalsha(self._clock_sha, 1, key, count)
        except NoScriptError:
            # Script cache was flushed (restart, SCRIPT FLUSH)
            self._clock_sha = await self._pool.script_load(LUA_RESERVE_TIMESTAMPS)
            last = await self._pool.evalsha(self._clock_sha, 1, key, count)
        return int(last) - count + 1

    def _ready(self) -> Optional[str]:
        if not self._connected or self._pool is None:
            return "Not connected"
        return None

    # -------------------------------------------------------------------------
    # DocumentStoreProtocol Implementation
    # -------------------------------------------------------------------------

    async def add_many(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
    ) -> Result[List[Tuple[str, Document]], str]:
        """Atomic batch create; stamps are unique per collection."""
        not_ready = self._ready()
        if not_ready:
            return Err(not_ready)
        if not documents:
            return Ok([])

        try:
            first_ns = await self._reserve_timestamps(collection, len(documents))
            written: List[Tuple[str, Document]] = []
            mapping: Dict[str, str] = {}
            for offset, document in enumerate(documents):
                doc_id = uuid4().hex
                stored = self.materialize(document, first_ns + offset)
                mapping[doc_id] = self.encode(stored)
                written.append((doc_id, stored))

            async with self._pool.pipeline(transaction=True) as pipe:
                pipe.hset(self.collection_key(collection), mapping=mapping)
                await pipe.execute()

            self._metrics.write_count += len(written)
            return Ok(written)
        except RedisError as e:
            self._metrics.command_errors += 1
            return Err(f"Redis error: {e}")

    async def create(
        self,
        collection: str,
        doc_id: str,
        document: Mapping[str, Any],
    ) -> Result[Document, str]:
        """HSETNX: create only if the field is absent."""
        not_ready = self._ready()
        if not_ready:
            return Err(not_ready)

        try:
            stored = self.materialize(document, await self._server_time_ns())
            created = await self._pool.hsetnx(
                self.collection_key(collection), doc_id, self.encode(stored),
            )
            if not created:
                self._metrics.create_conflicts += 1
                return Err(ALREADY_EXISTS)
            self._metrics.write_count += 1
            return Ok(stored)
        except RedisError as e:
            self._metrics.command_errors += 1
            return Err(f"Redis error: {e}")

    async def get(
        self,
        collection: str,
        doc_id: str,
    ) -> Result[Optional[Document], str]:
        not_ready = self._ready()
        if not_ready:
            return Err(not_ready)

        try:
            raw = await self._pool.hget(self.collection_key(collection), doc_id)
            self._metrics.read_count += 1
            return Ok(self.decode(raw) if raw is not None else None)
        except RedisError as e:
            self._metrics.command_errors += 1
            return Err(f"Redis error: {e}")
        except json.JSONDecodeError as e:
            self._metrics.corrupt_documents += 1
            return Err(f"Corrupt document {collection}/{doc_id}: {e}")

    async def list_all(
        self,
        collection: str,
    ) -> Result[List[Tuple[str, Document]], str]:
        not_ready = self._ready()
        if not_ready:
            return Err(not_ready)

        try:
            raw = await self._pool.hgetall(self.collection_key(collection))
            self._metrics.read_count += 1
        except RedisError as e:
            self._metrics.command_errors += 1
            return Err(f"Redis error: {e}")

        documents: List[Tuple[str, Document]] = []
        for doc_id, payload in raw.items():
            try:
                document = self.decode(payload)
            except json.JSONDecodeError as e:
                self._metrics.corrupt_documents += 1
                logger.warning(
                    "Skipping corrupt document",
                    collection=collection,
                    doc_id=doc_id,
                    reason=str(e),
                )
                continue
            if not isinstance(document, dict):
                self._metrics.corrupt_documents += 1
                logger.warning(
                    "Skipping corrupt document",
                    collection=collection,
                    doc_id=doc_id,
                    reason=f"expected an object, got {type(document).__name__}",
                )
                continue
            documents.append((doc_id, document))
        return Ok(documents)

    async def delete_all(
        self,
        collection: str,
    ) -> Result[OperationMetadata, str]:
        not_ready = self._ready()
        if not_ready:
            return Err(not_ready)

        key = self.collection_key(collection)
        try:
            start_ns = await self._server_time_ns()
            async with self._pool.pipeline(transaction=True) as pipe:
                pipe.hlen(key)
                pipe.delete(key, self.clock_key(collection))
                count, _ = await pipe.execute()
            end_ns = await self._server_time_ns()
            self._metrics.delete_count += int(count)
            return Ok(OperationMetadata(
                operation=OperationType.DELETE,
                latency_ns=max(0, end_ns - start_ns),
                affected_rows=int(count),
            ))
        except RedisError as e:
            self._metrics.command_errors += 1
            return Err(f"Redis error: {e}")

    @property
    def metrics(self) -> RedisMetrics:
        return self._metrics

    @property
    def is_connected(self) -> bool:
        return self._connected
