"""
End-to-end tests through VersionHistoryService.

Run with: pytest visitlog/tests/test_service.py
"""

from __future__ import annotations

from visitlog.core.config import CompactionMode, HistoryConfig, VisitLogConfig
from visitlog.core.errors import ErrorCode
from visitlog.core.types import EntityId
from visitlog.history.events import Editor, EventType
from visitlog.history.service import VersionHistoryService, create_service
from visitlog.storage.backends import InMemoryDocumentStore
from visitlog.tests.helpers import EDITOR, FlakyStore, assert_err, assert_ok, fresh_metrics


def _service(store, **config) -> VersionHistoryService:
    return VersionHistoryService(store, HistoryConfig(**config), fresh_metrics())


def _single_edit_states(count: int) -> list[dict]:
    states = [{"agenda": "", "debrief": "", "notes": []}]
    for step in range(1, count + 1):
        state = {**states[-1], "notes": list(states[-1]["notes"])}
        if step % 3 == 1:
            state["agenda"] = f"<p>Agenda {step}</p>"
        elif step % 3 == 2:
            state["debrief"] = f"Debrief {step}"
        else:
            state["notes"].append({"id": f"n{step}", "text": f"note {step}"})
        states.append(state)
    return states


async def _capture_all(service, visit, states):
    for before, after in zip(states, states[1:]):
        outcome = await service.capture(visit, before, after, EDITOR)
        assert outcome.succeeded and outcome.event_count == 1


# =============================================================================
# SCENARIOS
# =============================================================================

async def test_visit_42_with_23_edits(store):
    service = _service(store)

    await _capture_all(service, "visit-42", _single_edit_states(23))

    view = assert_ok(await service.list_history("visit-42"))
    assert [s.version for s in view.snapshots] == [2, 1]
    assert all(s.event_count == 10 for s in view.snapshots)
    assert len(view.recent_events) == 3

    erased = assert_ok(await service.erase_history("visit-42"))
    assert erased.to_dict() == {"eventsDeleted": 23, "snapshotsDeleted": 2}
    assert assert_ok(await service.list_history("visit-42")).is_empty


async def test_background_compaction_reaches_same_state(store):
    service = _service(store, compaction_mode=CompactionMode.BACKGROUND)

    await _capture_all(service, "visit-42", _single_edit_states(23))
    await service.drain()

    view = assert_ok(await service.list_history("visit-42"))
    assert [s.version for s in view.snapshots] == [2, 1]
    assert len(view.recent_events) == 3


async def test_compaction_disabled_keeps_everything_recent(store):
    service = _service(store, compaction_enabled=False)

    await _capture_all(service, "visit-7", _single_edit_states(12))

    view = assert_ok(await service.list_history("visit-7"))
    assert view.snapshots == ()
    assert len(view.recent_events) == 12


async def test_formatting_only_edit_records_nothing(store):
    service = _service(store)

    outcome = await service.capture("visit-1", {"agenda": "<p>Plan A</p>"}, {"agenda": "Plan A"}, EDITOR)

    assert outcome.succeeded
    assert outcome.event_count == 0
    assert await store.count(EntityId("visit-1").events_path) == 0


async def test_expand_snapshot_through_service(store):
    service = _service(store, batch_size=3)
    await _capture_all(service, "visit-3", _single_edit_states(3))

    view = assert_ok(await service.list_history(EntityId("visit-3")))
    expanded = assert_ok(await service.expand_snapshot("visit-3", view.snapshots[0].id))

    assert [e.type for e in expanded] == [
        EventType.AGENDA_EDIT, EventType.DEBRIEF_EDIT, EventType.NOTE_ADD,
    ]


# =============================================================================
# CAPTURE NEVER RAISES
# =============================================================================

async def test_missing_editor_skips_capture(store):
    service = _service(store)

    for editor in (None, Editor(user_id="")):
        outcome = await service.capture("visit-1", {}, {"agenda": "x"}, editor)
        assert outcome.skipped
        assert outcome.error is None

    assert await store.count(EntityId("visit-1").events_path) == 0


async def test_invalid_visit_id_is_reported(store):
    outcome = await _service(store).capture("visits/../x", {}, {"agenda": "x"}, EDITOR)

    assert outcome.error is not None
    assert outcome.error.code == ErrorCode.CAPTURE_INVALID_ENTITY


async def test_store_failure_is_reported_not_raised():
    store = FlakyStore()
    store.fail_add_many = True

    outcome = await _service(store).capture("visit-1", {}, {"debrief": "x"}, EDITOR)

    assert not outcome.succeeded
    assert outcome.error.code == ErrorCode.CAPTURE_PERSIST_FAILED


async def test_store_exception_is_contained():
    class ExplodingStore(InMemoryDocumentStore):
        async def add_many(self, collection, documents):
            raise ConnectionResetError("socket closed")

    outcome = await _service(ExplodingStore()).capture("visit-1", {}, {"agenda": "x"}, EDITOR)

    assert outcome.error is not None
    assert outcome.error.cause is not None


# =============================================================================
# QUERY VALIDATION AND FACTORY
# =============================================================================

async def test_invalid_ids_on_display_surfaces(store):
    service = _service(store)

    assert assert_err(await service.list_history("")).code == ErrorCode.QUERY_RESOURCE_NOT_FOUND
    assert assert_err(await service.expand_snapshot("a/b", "version-000001")).code == (
        ErrorCode.QUERY_RESOURCE_NOT_FOUND
    )
    assert assert_err(await service.erase_history("a/b")).code == ErrorCode.ERASURE_FAILED


async def test_create_service_defaults_to_in_memory():
    service = assert_ok(await create_service(VisitLogConfig()))

    assert isinstance(service.store, InMemoryDocumentStore)
    assert service.config.batch_size == 10
    await service.close()
