"""
Shared test utilities: Result assertions, seeded logs, fault-injecting store.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence
from uuid import uuid4

from visitlog.core.types import EntityId, Err
from visitlog.history.events import Editor, EventDraft, EventType, HistoryEvent
from visitlog.history.recorder import EventRecorder
from visitlog.history.snapshot import version_of_slot
from visitlog.observability.metrics import HistoryMetrics, MetricsCollector
from visitlog.storage.backends import InMemoryDocumentStore
from visitlog.storage.protocols import DocumentStoreProtocol


EDITOR = Editor(user_id="user-1", user_name="ana@example.com")


def create_test_entity() -> EntityId:
    """Create a test entity ID."""
    return EntityId(f"visit-{uuid4().hex[:8]}")


def assert_ok(result, message: str = "Expected Ok result"):
    """Assert that result is Ok."""
    if result.is_err():
        raise AssertionError(f"{message}: {result.error}")
    return result.unwrap()


def assert_err(result, message: str = "Expected Err result"):
    """Assert that result is Err."""
    if result.is_ok():
        raise AssertionError(f"{message}: Got Ok({result.unwrap()})")
    return result.error


def fresh_metrics() -> HistoryMetrics:
    """Metrics on a private registry, isolated from other tests."""
    return HistoryMetrics(MetricsCollector())


async def seed_events(
    store: DocumentStoreProtocol,
    entity_id: EntityId,
    count: int,
) -> list[HistoryEvent]:
    """Append `count` single-event writes without compacting."""
    recorder = EventRecorder(store, compactor=None, metrics=fresh_metrics())
    events: list[HistoryEvent] = []
    for i in range(count):
        drafts = [EventDraft(EventType.AGENDA_EDIT, f"agenda {i}", f"agenda {i + 1}")]
        events.extend(assert_ok(await recorder.record(entity_id, drafts, EDITOR)))
    return events


class FlakyStore(InMemoryDocumentStore):
    """In-memory store with switchable failures."""

    def __init__(self, simulate_latency: bool = False) -> None:
        super().__init__(simulate_latency=simulate_latency)
        self.fail_add_many = False
        self.creates_before_failure: Optional[int] = None
        self.fail_delete_for: set[str] = set()
        self.fail_list_for: set[str] = set()
        self.steal_next_slot = False

    async def add_many(self, collection: str, documents: Sequence[Mapping[str, Any]]):
        if self.fail_add_many:
            return Err("injected add_many failure")
        return await super().add_many(collection, documents)

    async def create(self, collection: str, doc_id: str, document: Mapping[str, Any]):
        if self.creates_before_failure is not None:
            if self.creates_before_failure <= 0:
                return Err("injected create failure")
            self.creates_before_failure -= 1
        if self.steal_next_slot:
            # Another writer claims the slot between the version check and the create
            self.steal_next_slot = False
            await self.put_raw(collection, doc_id, {"version": version_of_slot(doc_id), "eventIds": []})
        return await super().create(collection, doc_id, document)

    async def delete_all(self, collection: str):
        if any(collection.endswith(suffix) for suffix in self.fail_delete_for):
            return Err("injected delete failure")
        return await super().delete_all(collection)

    async def list_all(self, collection: str):
        if any(collection.endswith(suffix) for suffix in self.fail_list_for):
            return Err("injected list failure")
        return await super().list_all(collection)
