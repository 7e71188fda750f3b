"""
Tests for plain-text normalization and change detection.

Run with: pytest visitlog/tests/test_text_and_detector.py
"""

from __future__ import annotations

from visitlog.history.detector import VisitState, detect_changes
from visitlog.history.events import EventType
from visitlog.history.text import to_plain_text, truncate


# =============================================================================
# NORMALIZER
# =============================================================================

def test_plain_text_strips_tags_and_collapses_whitespace():
    assert to_plain_text("<p>Plan A</p>") == "Plan A"
    assert to_plain_text("<p>Line one</p><p>Line two</p>") == "Line one Line two"
    assert to_plain_text("  spaced \n\t out  ") == "spaced out"


def test_plain_text_decodes_entities():
    assert to_plain_text("Plan&nbsp;A") == "Plan A"
    assert to_plain_text("Tom &amp; Jerry") == "Tom & Jerry"
    assert to_plain_text("a\u00a0b") == "a b"


def test_plain_text_handles_missing_and_scalars():
    assert to_plain_text(None) == ""
    assert to_plain_text("") == ""
    assert to_plain_text(42) == "42"


def test_plain_text_is_idempotent():
    once = to_plain_text("<b>Budget</b>&nbsp;review <i>Q3</i>")
    assert to_plain_text(once) == once


def test_truncate():
    assert truncate("short", 10) == "short"
    cut = truncate("x" * 200, 160)
    assert len(cut) == 160
    assert cut.endswith("…")
    assert truncate("anything", 0) == ""


# =============================================================================
# DETECTOR
# =============================================================================

def test_identical_states_yield_nothing():
    state = {
        "agenda": "<p>Plan</p>",
        "debrief": "Went well",
        "notes": [{"id": "n1", "text": "Call back"}],
    }
    assert detect_changes(state, dict(state)) == []


def test_formatting_only_change_yields_nothing():
    assert detect_changes({"agenda": "<p>Plan A</p>"}, {"agenda": "Plan A"}) == []


def test_only_debrief_changed():
    before = {"agenda": "Plan", "debrief": "Draft", "notes": []}
    after = {"agenda": "Plan", "debrief": "Final", "notes": []}

    drafts = detect_changes(before, after)

    assert len(drafts) == 1
    assert drafts[0].type == EventType.DEBRIEF_EDIT
    assert drafts[0].before_value == "Draft"
    assert drafts[0].after_value == "Final"
    assert drafts[0].note_id is None


def test_values_are_normalized():
    drafts = detect_changes({"agenda": "<p>Old</p>"}, {"agenda": "<p>New&nbsp;plan</p>"})
    assert drafts[0].before_value == "Old"
    assert drafts[0].after_value == "New plan"


def test_missing_fields_read_as_empty():
    drafts = detect_changes(None, {"agenda": "First agenda"})
    assert [d.type for d in drafts] == [EventType.AGENDA_EDIT]
    assert drafts[0].before_value == ""


def test_note_add_edit_delete():
    before = {"notes": [
        {"id": "keep", "text": "same"},
        {"id": "edit", "text": "old text"},
        {"id": "gone", "text": "bye"},
    ]}
    after = {"notes": [
        {"id": "keep", "text": "<p>same</p>"},
        {"id": "edit", "text": "new text"},
        {"id": "new", "text": "hello"},
    ]}

    drafts = detect_changes(before, after)

    assert [(d.type, d.note_id) for d in drafts] == [
        (EventType.NOTE_ADD, "new"),
        (EventType.NOTE_EDIT, "edit"),
        (EventType.NOTE_DELETE, "gone"),
    ]
    add, edit, delete = drafts
    assert (add.before_value, add.after_value) == ("", "hello")
    assert (edit.before_value, edit.after_value) == ("old text", "new text")
    assert (delete.before_value, delete.after_value) == ("bye", "")


def test_output_order_across_fields():
    before = {"agenda": "a", "debrief": "d", "notes": [{"id": "x", "text": "1"}, {"id": "y", "text": "2"}]}
    after = {
        "agenda": "a2",
        "debrief": "d2",
        "notes": [{"id": "z", "text": "3"}, {"id": "y", "text": "2b"}, {"id": "w", "text": "4"}],
    }

    types = [(d.type, d.note_id) for d in detect_changes(before, after)]

    assert types == [
        (EventType.AGENDA_EDIT, None),
        (EventType.DEBRIEF_EDIT, None),
        (EventType.NOTE_ADD, "z"),
        (EventType.NOTE_ADD, "w"),
        (EventType.NOTE_EDIT, "y"),
        (EventType.NOTE_DELETE, "x"),
    ]


def test_notes_without_id_are_ignored_and_first_duplicate_wins():
    state = VisitState.from_mapping({"notes": [
        {"text": "no id"},
        {"id": "a", "text": "first"},
        {"id": "a", "text": "second"},
        "not a note",
    ]})
    assert [(n.id, n.text) for n in state.notes] == [("a", "first")]


def test_numeric_note_ids_match_across_sides():
    before = {"notes": [{"id": 7, "text": "x"}]}
    after = {"notes": [{"id": 7, "text": "y"}]}
    drafts = detect_changes(before, after)
    assert [(d.type, d.note_id) for d in drafts] == [(EventType.NOTE_EDIT, "7")]


def test_accepts_visit_state_instances():
    before = VisitState(agenda="a")
    after = VisitState(agenda="b")
    assert [d.type for d in detect_changes(before, after)] == [EventType.AGENDA_EDIT]
