"""
Configuration Management for the Visit History Engine

Provides validated configuration with sensible defaults.
Supports environment variable overrides (prefix VISITLOG_).

Design:
- Immutable after validation
- Fail-fast on invalid configuration
- Type-safe with dataclasses
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from visitlog.core import constants as C
from visitlog.core.errors import ConfigError
from visitlog.core.types import Err, Ok, Result
from visitlog.storage.config import StorageConfig


class CompactionMode(Enum):
    """How the recorder drives compaction after an append."""
    INLINE = "inline"          # awaited in the capture call, errors contained
    BACKGROUND = "background"  # scheduled as an asyncio task


@dataclass(frozen=True)
class HistoryConfig:
    """Event log and compaction settings."""

    batch_size: int = C.DEFAULT_BATCH_SIZE
    compaction_mode: CompactionMode = CompactionMode.INLINE
    compaction_enabled: bool = True


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging and metrics configuration."""

    log_level: str = "INFO"
    log_json: bool = True
    metrics_enabled: bool = True


@dataclass(frozen=True)
class VisitLogConfig:
    """Root configuration."""

    history: HistoryConfig = field(default_factory=HistoryConfig)
    storage: StorageConfig = field(default_factory=StorageConfig.for_development)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> Result[VisitLogConfig, ConfigError]:
        """
        Load configuration from environment variables.

        Example: VISITLOG_BATCH_SIZE=10, VISITLOG_STORAGE_BACKEND=redis
        """
        raw_batch = os.getenv("VISITLOG_BATCH_SIZE", str(C.DEFAULT_BATCH_SIZE))
        try:
            batch_size = int(raw_batch)
        except ValueError:
            return Err(ConfigError.invalid("VISITLOG_BATCH_SIZE", raw_batch, "not an integer"))

        raw_mode = os.getenv("VISITLOG_COMPACTION_MODE", CompactionMode.INLINE.value)
        try:
            mode = CompactionMode(raw_mode.strip().lower())
        except ValueError:
            return Err(ConfigError.invalid(
                "VISITLOG_COMPACTION_MODE", raw_mode, "expected 'inline' or 'background'",
            ))

        try:
            storage = StorageConfig.from_env()
        except ValueError as e:
            return Err(ConfigError.invalid("VISITLOG_STORAGE_BACKEND", os.getenv(
                "VISITLOG_STORAGE_BACKEND", "memory"), str(e)))

        history = HistoryConfig(
            batch_size=batch_size,
            compaction_mode=mode,
            compaction_enabled=_env_bool("VISITLOG_COMPACTION_ENABLED", True),
        )
        observability = ObservabilityConfig(
            log_level=os.getenv("VISITLOG_LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("VISITLOG_LOG_JSON", True),
            metrics_enabled=_env_bool("VISITLOG_METRICS_ENABLED", True),
        )
        config = cls(history=history, storage=storage, observability=observability)
        return config.validate().map(lambda _: config)

    def validate(self) -> Result[None, ConfigError]:
        """Validate configuration invariants."""
        if self.history.batch_size < C.MIN_BATCH_SIZE:
            return Err(ConfigError.invalid(
                "history.batch_size", self.history.batch_size,
                f"must be >= {C.MIN_BATCH_SIZE}",
            ))
        if self.observability.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return Err(ConfigError.invalid(
                "observability.log_level", self.observability.log_level, "unknown level",
            ))
        return Ok(None)


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name, "").strip().lower()
    if val in ("true", "1", "yes"):
        return True
    if val in ("false", "0", "no"):
        return False
    return default
