from __future__ import annotations

import logging

import pytest
from fakeredis import FakeServer
from fakeredis import aioredis as fake_aioredis

from visitlog.core.types import EntityId
from visitlog.storage.backends import InMemoryDocumentStore
from visitlog.storage.config import RedisConfig
from visitlog.storage.redis_store import RedisDocumentStore
from visitlog.tests.helpers import FlakyStore, assert_ok, create_test_entity, fresh_metrics


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def entity_id() -> EntityId:
    return create_test_entity()


@pytest.fixture
def metrics():
    return fresh_metrics()


@pytest.fixture
def restore_root_logging():
    """setup_logging() replaces root handlers; put them back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def redis_client():
    """In-process Redis with its own server state."""
    return fake_aioredis.FakeRedis(server=FakeServer(), decode_responses=True)


@pytest.fixture
async def redis_store(redis_client):
    store = RedisDocumentStore(RedisConfig(key_prefix="test"), client=redis_client)
    assert_ok(await store.connect())
    yield store
    await store.close()
