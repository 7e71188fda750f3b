"""
Storage Backend Configuration
=============================

Type-safe, immutable configuration dataclasses for document store backends.
All configurations use frozen dataclasses for thread-safety and hash-ability.

Design Principles:
------------------
1. **Immutability**: All configs are frozen to prevent runtime mutation
2. **Validation**: Pre-conditions checked at construction time
3. **Defaults**: Sensible defaults for development; explicit for production
4. **Environment**: Supports loading from environment variables

Author: Planetary AI Systems
License: MIT
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional

from visitlog.core import constants as C


# =============================================================================
# ENUMERATIONS
# =============================================================================

class BackendType(Enum):
    """
    Document store backend type.

    Used for factory pattern dispatch and configuration validation.
    """
    IN_MEMORY = auto()  # Development/testing only
    REDIS = auto()      # Production - shared across app instances

    @classmethod
    def parse(cls, raw: str) -> BackendType:
        """Parse `memory` / `redis` (case-insensitive)."""
        aliases = {
            "memory": cls.IN_MEMORY,
            "in_memory": cls.IN_MEMORY,
            "inmemory": cls.IN_MEMORY,
            "redis": cls.REDIS,
        }
        try:
            return aliases[raw.strip().lower()]
        except KeyError:
            raise ValueError(f"unknown storage backend {raw!r}") from None


# =============================================================================
# REDIS CONFIGURATION
# =============================================================================

@dataclass(frozen=True, slots=True)
class RedisConfig:
    """
    Redis connection configuration.

    Attributes:
        host: Redis server hostname or IP address.
        port: Redis server port (1-65535).
        password: Optional authentication password.
        db: Logical database index (0-15).
        key_prefix: Namespace prepended to every collection key.
        max_connections: Connection pool size. Must be > 0.
        connect_timeout_ms: TCP connection timeout in milliseconds.
        socket_timeout_ms: Socket read/write timeout in milliseconds.
        ssl: Enable TLS encryption for connections.

    Example:
        >>> config = RedisConfig.from_env()
        >>> config = RedisConfig(host="redis.example.com", password="secret")
    """
    host: str = "localhost"
    port: int = C.REDIS_DEFAULT_PORT
    password: Optional[str] = None
    db: int = 0
    key_prefix: str = C.REDIS_KEY_PREFIX
    max_connections: int = C.REDIS_MAX_CONNECTIONS
    connect_timeout_ms: int = C.REDIS_CONNECT_TIMEOUT_MS
    socket_timeout_ms: int = C.REDIS_SOCKET_TIMEOUT_MS
    ssl: bool = False

    def __post_init__(self) -> None:
        """
        Validate configuration invariants.

        Raises:
            ValueError: If any invariant is violated.
        """
        if not (1 <= self.port <= 65535):
            raise ValueError(f"port must be in [1, 65535], got {self.port}")
        if not (0 <= self.db <= 15):
            raise ValueError(f"db must be in [0, 15], got {self.db}")
        if self.max_connections <= 0:
            raise ValueError(f"max_connections must be > 0, got {self.max_connections}")
        if self.connect_timeout_ms <= 0:
            raise ValueError(f"connect_timeout_ms must be > 0, got {self.connect_timeout_ms}")
        if self.socket_timeout_ms <= 0:
            raise ValueError(f"socket_timeout_ms must be > 0, got {self.socket_timeout_ms}")
        if not self.key_prefix or ":" in self.key_prefix:
            raise ValueError(f"key_prefix must be non-empty without ':', got {self.key_prefix!r}")

    @classmethod
    def from_env(cls, prefix: str = "VISITLOG_REDIS") -> RedisConfig:
        """
        Construct configuration from environment variables.

        Environment Variables:
        - {prefix}_HOST: Server hostname (default: localhost)
        - {prefix}_PORT: Server port (default: 6379)
        - {prefix}_PASSWORD: Authentication password
        - {prefix}_DB: Database index (default: 0)
        - {prefix}_KEY_PREFIX: Key namespace (default: visitlog)
        - {prefix}_SSL: Enable TLS (default: false)
        - {prefix}_MAX_CONNECTIONS: Pool size (default: 50)

        Raises:
            ValueError: On malformed numbers or out-of-range values.
        """
        def _get(key: str, default: str = "") -> str:
            return os.environ.get(f"{prefix}_{key}", default)

        def _get_int(key: str, default: int) -> int:
            val = _get(key)
            return int(val) if val else default

        def _get_bool(key: str, default: bool) -> bool:
            val = _get(key).lower()
            if val in ("true", "1", "yes"):
                return True
            if val in ("false", "0", "no"):
                return False
            return default

        return cls(
            host=_get("HOST", "localhost"),
            port=_get_int("PORT", C.REDIS_DEFAULT_PORT),
            password=_get("PASSWORD") or None,
            db=_get_int("DB", 0),
            key_prefix=_get("KEY_PREFIX", C.REDIS_KEY_PREFIX),
            max_connections=_get_int("MAX_CONNECTIONS", C.REDIS_MAX_CONNECTIONS),
            connect_timeout_ms=_get_int("CONNECT_TIMEOUT_MS", C.REDIS_CONNECT_TIMEOUT_MS),
            socket_timeout_ms=_get_int("SOCKET_TIMEOUT_MS", C.REDIS_SOCKET_TIMEOUT_MS),
            ssl=_get_bool("SSL", False),
        )

    def get_connection_kwargs(self) -> Dict[str, Any]:
        """
        Generate kwargs for redis-py connection.

        Returns:
            Dict suitable for redis.asyncio.Redis().
        """
        kwargs: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "max_connections": self.max_connections,
            "socket_connect_timeout": self.connect_timeout_ms / 1000.0,
            "socket_timeout": self.socket_timeout_ms / 1000.0,
            "decode_responses": True,
            "ssl": self.ssl,
        }
        if self.password:
            kwargs["password"] = self.password
        return kwargs


# =============================================================================
# UNIFIED STORAGE CONFIGURATION
# =============================================================================

@dataclass(frozen=True, slots=True)
class StorageConfig:
    """
    Document store selection.

    Attributes:
        backend: Which backend `create_document_store` builds.
        redis_config: Required when backend is REDIS.
    """
    backend: BackendType = BackendType.IN_MEMORY
    redis_config: Optional[RedisConfig] = None

    def __post_init__(self) -> None:
        if self.backend == BackendType.REDIS and self.redis_config is None:
            raise ValueError("redis_config required when backend=REDIS")

    @classmethod
    def for_development(cls) -> StorageConfig:
        """In-memory store, zero external dependencies."""
        return cls(backend=BackendType.IN_MEMORY)

    @classmethod
    def from_env(cls) -> StorageConfig:
        """
        Load from VISITLOG_STORAGE_BACKEND (memory|redis) and,
        for redis, the VISITLOG_REDIS_* variables.

        Raises:
            ValueError: On unknown backend or invalid Redis settings.
        """
        backend = BackendType.parse(os.environ.get("VISITLOG_STORAGE_BACKEND", "memory"))
        redis_config = RedisConfig.from_env() if backend == BackendType.REDIS else None
        return cls(backend=backend, redis_config=redis_config)
