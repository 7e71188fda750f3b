"""
Tests for core types, the error hierarchy and configuration loading.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from visitlog.core.config import CompactionMode, VisitLogConfig
from visitlog.core.errors import ErasureError, ErrorCode, StorageError
from visitlog.core.types import EntityId, Err, Ok, Timestamp
from visitlog.storage.config import BackendType, RedisConfig, StorageConfig
from visitlog.tests.helpers import assert_err, assert_ok


# =============================================================================
# RESULT + IDENTITY
# =============================================================================

def test_result_variants():
    assert Ok(2).map(lambda v: v * 2).unwrap() == 4
    assert Err("boom").map(lambda v: v * 2).is_err()
    assert Err("boom").unwrap_or(7) == 7
    with pytest.raises(RuntimeError):
        Err("boom").unwrap()


@pytest.mark.parametrize("raw", ["visit-42", "abc_DEF.1", "7"])
def test_entity_id_accepts(raw):
    assert str(assert_ok(EntityId.from_string(raw))) == raw


@pytest.mark.parametrize("raw", ["", "a/b", "-lead", "x" * 300, None])
def test_entity_id_rejects(raw):
    assert_err(EntityId.from_string(raw))


def test_entity_id_paths():
    visit = EntityId("visit-42")
    assert visit.events_path == "visits/visit-42/events"
    assert visit.snapshots_path == "visits/visit-42/snapshots"


def test_timestamp_parse():
    assert assert_ok(Timestamp.parse(5)) == Timestamp(5)
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert assert_ok(Timestamp.parse(moment)).seconds == moment.timestamp()
    assert_err(Timestamp.parse(True))
    assert_err(Timestamp.parse(None))
    assert_err(Timestamp.parse("2024-01-01"))


def test_timestamp_arithmetic():
    assert Timestamp.from_millis(3) - Timestamp.from_millis(1) == 2_000_000
    assert (Timestamp(10) + 5).nanos == 15
    assert Timestamp.from_seconds(1.5).millis == 1500


# =============================================================================
# ERRORS
# =============================================================================

def test_error_serialization():
    error = ErasureError.phase_failed("visit-1", "snapshots", 4, 0, "timeout")

    data = error.to_dict()
    assert data["code"] == "ERASURE_FAILED"
    assert data["context"]["events_deleted"] == 4
    assert "ERASURE_FAILED" in str(error)
    assert isinstance(error, Exception)


def test_storage_error_factories():
    assert StorageError.conflict("c", "d").code == ErrorCode.STORAGE_CONFLICT
    assert StorageError.connection_failed("h", 1).context == {"host": "h", "port": 1}


# =============================================================================
# CONFIGURATION
# =============================================================================

_ENV_KEYS = [
    "VISITLOG_BATCH_SIZE",
    "VISITLOG_COMPACTION_MODE",
    "VISITLOG_COMPACTION_ENABLED",
    "VISITLOG_STORAGE_BACKEND",
    "VISITLOG_LOG_LEVEL",
    "VISITLOG_LOG_JSON",
    "VISITLOG_METRICS_ENABLED",
    "VISITLOG_REDIS_HOST",
    "VISITLOG_REDIS_PORT",
    "VISITLOG_REDIS_KEY_PREFIX",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_config_defaults(clean_env):
    config = assert_ok(VisitLogConfig.from_env())

    assert config.history.batch_size == 10
    assert config.history.compaction_mode == CompactionMode.INLINE
    assert config.history.compaction_enabled
    assert config.storage.backend == BackendType.IN_MEMORY
    assert config.observability.log_level == "INFO"


def test_config_from_env(clean_env):
    clean_env.setenv("VISITLOG_BATCH_SIZE", "5")
    clean_env.setenv("VISITLOG_COMPACTION_MODE", "Background")
    clean_env.setenv("VISITLOG_COMPACTION_ENABLED", "false")
    clean_env.setenv("VISITLOG_LOG_LEVEL", "debug")
    clean_env.setenv("VISITLOG_LOG_JSON", "0")
    clean_env.setenv("VISITLOG_STORAGE_BACKEND", "redis")
    clean_env.setenv("VISITLOG_REDIS_HOST", "redis.internal")
    clean_env.setenv("VISITLOG_REDIS_PORT", "6380")

    config = assert_ok(VisitLogConfig.from_env())

    assert config.history.batch_size == 5
    assert config.history.compaction_mode == CompactionMode.BACKGROUND
    assert not config.history.compaction_enabled
    assert config.observability.log_level == "DEBUG"
    assert not config.observability.log_json
    assert config.storage.backend == BackendType.REDIS
    assert config.storage.redis_config.host == "redis.internal"
    assert config.storage.redis_config.port == 6380


@pytest.mark.parametrize("key,value", [
    ("VISITLOG_BATCH_SIZE", "ten"),
    ("VISITLOG_BATCH_SIZE", "0"),
    ("VISITLOG_COMPACTION_MODE", "eventually"),
    ("VISITLOG_STORAGE_BACKEND", "firestore"),
    ("VISITLOG_LOG_LEVEL", "LOUD"),
])
def test_invalid_env_is_an_error(clean_env, key, value):
    clean_env.setenv(key, value)
    error = assert_err(VisitLogConfig.from_env())
    assert error.code == ErrorCode.INTERNAL_CONFIGURATION_ERROR


def test_invalid_redis_env_is_an_error(clean_env):
    clean_env.setenv("VISITLOG_STORAGE_BACKEND", "redis")
    clean_env.setenv("VISITLOG_REDIS_PORT", "70000")
    assert_err(VisitLogConfig.from_env())


def test_storage_config_invariants():
    with pytest.raises(ValueError):
        StorageConfig(backend=BackendType.REDIS)
    with pytest.raises(ValueError):
        RedisConfig(key_prefix="a:b")
    kwargs = RedisConfig(password="s3cret").get_connection_kwargs()
    assert kwargs["password"] == "s3cret"
    assert kwargs["decode_responses"] is True
