"""
Change Detector: old vs. new visit state -> candidate events

Pure and synchronous. Compares only the two states it is given,
never the stored log, so the same pair always yields the same drafts.

Output order:
    1. agenda_edit
    2. debrief_edit
    3. note_add    (in `after` order)
    4. note_edit   (in `after` order)
    5. note_delete (in `before` order)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from visitlog.history.events import EventDraft, EventType
from visitlog.history.text import to_plain_text


@dataclass(frozen=True, slots=True)
class NoteState:
    """A note as the detector sees it: id plus normalized text."""
    id: str
    text: str


@dataclass(frozen=True, slots=True)
class VisitState:
    """
    The editable fields of a visit, normalized.

    Missing fields read as "" / []. Notes without an id cannot be
    diffed and are dropped; for duplicate ids the first occurrence wins.
    """
    agenda: str = ""
    debrief: str = ""
    notes: tuple[NoteState, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> VisitState:
        raw = raw or {}
        return cls(
            agenda=to_plain_text(raw.get("agenda")),
            debrief=to_plain_text(raw.get("debrief")),
            notes=_normalize_notes(raw.get("notes")),
        )

    def notes_by_id(self) -> dict[str, NoteState]:
        return {note.id: note for note in self.notes}


VisitInput = Union[VisitState, Mapping[str, Any], None]


def _normalize_notes(raw_notes: Any) -> tuple[NoteState, ...]:
    if not isinstance(raw_notes, Iterable) or isinstance(raw_notes, (str, bytes, Mapping)):
        return ()
    seen: set[str] = set()
    notes: list[NoteState] = []
    for raw in raw_notes:
        if not isinstance(raw, Mapping):
            continue
        note_id = raw.get("id")
        if note_id is None or note_id == "":
            continue
        key = str(note_id)
        if key in seen:
            continue
        seen.add(key)
        notes.append(NoteState(id=key, text=to_plain_text(raw.get("text"))))
    return tuple(notes)


def _as_state(value: VisitInput) -> VisitState:
    if isinstance(value, VisitState):
        return value
    return VisitState.from_mapping(value)


def detect_changes(before: VisitInput, after: VisitInput) -> list[EventDraft]:
    """
    Diff two visit states into event drafts.

    Formatting-only differences normalize away and yield nothing.

    Example:
        >>> detect_changes({"agenda": "<p>Plan A</p>"}, {"agenda": "Plan A"})
        []
    """
    old = _as_state(before)
    new = _as_state(after)
    drafts: list[EventDraft] = []

    if old.agenda != new.agenda:
        drafts.append(EventDraft(EventType.AGENDA_EDIT, old.agenda, new.agenda))
    if old.debrief != new.debrief:
        drafts.append(EventDraft(EventType.DEBRIEF_EDIT, old.debrief, new.debrief))

    old_notes = old.notes_by_id()
    new_notes = new.notes_by_id()

    for note in new.notes:
        if note.id not in old_notes:
            drafts.append(EventDraft(EventType.NOTE_ADD, "", note.text, note_id=note.id))

    for note in new.notes:
        previous = old_notes.get(note.id)
        if previous is not None and previous.text != note.text:
            drafts.append(EventDraft(EventType.NOTE_EDIT, previous.text, note.text, note_id=note.id))

    for note in old.notes:
        if note.id not in new_notes:
            drafts.append(EventDraft(EventType.NOTE_DELETE, note.text, "", note_id=note.id))

    return drafts
