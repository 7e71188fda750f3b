"""
Tests for the persisted event and snapshot shapes.
"""

from __future__ import annotations

from visitlog.core.types import Timestamp
from visitlog.history.events import Editor, EventDraft, EventType, HistoryEvent
from visitlog.history.snapshot import HistorySnapshot, build_summary, snapshot_id_for, version_of_slot
from visitlog.storage.protocols import SERVER_TIMESTAMP
from visitlog.tests.helpers import assert_err, assert_ok


def _event(event_id: str, event_type: EventType, nanos: int = 1) -> HistoryEvent:
    return HistoryEvent(
        id=event_id,
        type=event_type,
        before_value="",
        after_value="x",
        user_id="u",
        user_name="n",
        timestamp=Timestamp(nanos),
    )


# =============================================================================
# EDITOR
# =============================================================================

def test_editor_name_prefers_email_then_username():
    assert Editor.from_profile("u1", {"email": "a@x.org", "username": "ana"}).user_name == "a@x.org"
    assert Editor.from_profile("u1", {"username": "ana"}).user_name == "ana"
    assert Editor.from_profile("u1", {}).user_name == "Unknown User"
    assert Editor.from_profile("u1", None).user_name == "Unknown User"


# =============================================================================
# EVENTS
# =============================================================================

def test_draft_document_shape():
    editor = Editor("u1", "ana")
    doc = EventDraft(EventType.NOTE_ADD, "", "hello", note_id="n1").to_document(editor)

    assert doc == {
        "type": "note_add",
        "beforeValue": "",
        "afterValue": "hello",
        "userId": "u1",
        "userName": "ana",
        "timestamp": SERVER_TIMESTAMP,
        "metadata": {"noteId": "n1"},
    }
    field_doc = EventDraft(EventType.AGENDA_EDIT, "a", "b").to_document(editor)
    assert "metadata" not in field_doc


def test_event_round_trip_through_document():
    doc = {
        "type": "note_edit",
        "beforeValue": "a",
        "afterValue": "b",
        "userId": "u1",
        "userName": "ana",
        "timestamp": 1_700_000_000_000_000_000,
        "metadata": {"noteId": "n9"},
    }
    event = assert_ok(HistoryEvent.from_document("e1", doc))

    assert event.type == EventType.NOTE_EDIT
    assert event.note_id == "n9"
    assert event.to_dict() == {"id": "e1", **doc}


def test_event_without_usable_timestamp_is_rejected():
    base = {"type": "agenda_edit", "beforeValue": "", "afterValue": "x"}
    assert_err(HistoryEvent.from_document("e1", base))
    assert_err(HistoryEvent.from_document("e1", {**base, "timestamp": "yesterday"}))
    assert_err(HistoryEvent.from_document("e1", {**base, "timestamp": -5}))


def test_event_with_unknown_type_is_rejected():
    error = assert_err(HistoryEvent.from_document("e1", {"type": "title_edit", "timestamp": 1}))
    assert "unknown type" in error


def test_sort_key_breaks_ties_by_id():
    a = _event("a", EventType.AGENDA_EDIT, nanos=5)
    b = _event("b", EventType.AGENDA_EDIT, nanos=5)
    c = _event("c", EventType.AGENDA_EDIT, nanos=4)
    assert [e.id for e in sorted([b, a, c], key=lambda e: e.sort_key)] == ["c", "a", "b"]


def test_event_type_labels():
    assert EventType.NOTE_DELETE.label == "Note deleted"
    assert EventType.NOTE_ADD.is_note_event
    assert not EventType.AGENDA_EDIT.is_note_event


# =============================================================================
# SNAPSHOTS
# =============================================================================

def test_snapshot_ids_are_version_slots():
    assert snapshot_id_for(1) == "version-000001"
    assert snapshot_id_for(123) == "version-000123"


def test_version_of_slot_reads_slot_ids_only():
    assert version_of_slot("version-000007") == 7
    assert version_of_slot(snapshot_id_for(1234567)) == 1234567
    assert version_of_slot("version-000000") is None
    assert version_of_slot("version-abc") is None
    assert version_of_slot("legacy-snapshot") is None


def test_summary_wording_and_order():
    events = [
        _event("1", EventType.NOTE_ADD),
        _event("2", EventType.AGENDA_EDIT),
        _event("3", EventType.AGENDA_EDIT),
        _event("4", EventType.NOTE_DELETE),
        _event("5", EventType.NOTE_DELETE),
        _event("6", EventType.NOTE_DELETE),
        _event("7", EventType.DEBRIEF_EDIT),
        _event("8", EventType.NOTE_EDIT),
    ]
    assert build_summary(events) == (
        "2 agenda edits, 1 debrief edit, 1 note added, 1 note edited, 3 notes deleted"
    )
    assert build_summary([_event("1", EventType.NOTE_ADD)] * 3) == "3 notes added"
    assert build_summary([]) == ""


def test_new_snapshot_document():
    events = [_event(str(i), EventType.AGENDA_EDIT, nanos=i) for i in range(3)]
    doc = HistorySnapshot.new_document(2, events)

    assert doc["id"] == "version-000002"
    assert doc["version"] == 2
    assert doc["title"] == "Version 2"
    assert doc["eventIds"] == ["0", "1", "2"]
    assert doc["eventCount"] == 3
    assert doc["summary"] == "3 agenda edits"
    assert doc["createdAt"] is SERVER_TIMESTAMP


def test_snapshot_parse_rejects_bad_version():
    assert_err(HistorySnapshot.from_document("s", {"version": 0, "eventIds": []}))
    assert_err(HistorySnapshot.from_document("s", {"version": "1", "eventIds": []}))
    assert_err(HistorySnapshot.from_document("s", {"version": 1, "eventIds": "abc"}))


def test_snapshot_parse_and_render():
    doc = {
        "id": "version-000001",
        "version": 1,
        "title": "Version 1",
        "eventIds": ["a", "b"],
        "createdAt": 10,
        "eventCount": 2,
        "summary": "2 agenda edits",
    }
    snapshot = assert_ok(HistorySnapshot.from_document("version-000001", doc))
    assert snapshot.event_ids == ("a", "b")
    assert snapshot.created_at == Timestamp(10)
    assert snapshot.to_dict() == doc
