"""
Storage Module: Document Store Abstraction
==========================================

Provides:
- Protocol definition for pluggable document stores
- In-memory implementation for development/testing
- Redis implementation for production
- Factory function for backend selection

Design Principles:
-----------------
1. **Backend Agnostic**: Same interface for in-memory and production
2. **Factory Pattern**: Runtime backend selection via configuration
3. **Lazy Loading**: The Redis client is imported only when selected
4. **Result Monad**: No exceptions for control flow

Example:
    >>> # Development (in-memory)
    >>> store = create_document_store()

    >>> # Production (configured)
    >>> from visitlog.storage.config import RedisConfig
    >>> store = create_document_store(
    ...     StorageConfig(backend=BackendType.REDIS, redis_config=RedisConfig(host="redis.prod"))
    ... )
    >>> await store.connect()
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from visitlog.storage.protocols import (
    ALREADY_EXISTS,
    SERVER_TIMESTAMP,
    Document,
    DocumentStoreProtocol,
    OperationMetadata,
    OperationType,
)
from visitlog.storage.backends import InMemoryDocumentStore
from visitlog.storage.config import (
    BackendType,
    RedisConfig,
    StorageConfig,
)

if TYPE_CHECKING:
    from visitlog.storage.redis_store import RedisDocumentStore


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def create_document_store(
    config: Optional[StorageConfig] = None,
) -> DocumentStoreProtocol:
    """
    Create the document store selected by configuration.

    Returns:
        InMemoryDocumentStore: If config is None or backend is IN_MEMORY.
        RedisDocumentStore: If backend is REDIS. Not yet connected;
            call ``await store.connect()`` before use.
    """
    if config is not None and config.backend == BackendType.REDIS:
        from visitlog.storage.redis_store import RedisDocumentStore
        return RedisDocumentStore(config.redis_config)

    return InMemoryDocumentStore()


__all__ = [
    "ALREADY_EXISTS",
    "SERVER_TIMESTAMP",
    "Document",
    "DocumentStoreProtocol",
    "OperationMetadata",
    "OperationType",
    "InMemoryDocumentStore",
    "BackendType",
    "RedisConfig",
    "StorageConfig",
    "create_document_store",
]
