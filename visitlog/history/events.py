"""
History Events: the append-only edit log of a visit.

Provides:
- EventType: the five kinds of edit that are tracked
- EventDraft: a detected change, not yet persisted
- Editor: identity of the user whose write produced the change
- HistoryEvent: a persisted, immutable log entry

Persisted shape (field names are a storage contract shared with
display surfaces):

    {id, type, beforeValue, afterValue, userId, userName,
     timestamp, metadata?: {noteId}}

The document id doubles as the event id; ``timestamp`` is assigned by
the store clock and is integer nanoseconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from visitlog.core import constants as C
from visitlog.core.types import Err, Ok, Result, Timestamp
from visitlog.storage.protocols import SERVER_TIMESTAMP, Document


# =============================================================================
# EVENT TYPE
# =============================================================================
class EventType(str, Enum):
    """Kind of edit; the value is the persisted form."""
    AGENDA_EDIT = "agenda_edit"
    DEBRIEF_EDIT = "debrief_edit"
    NOTE_ADD = "note_add"
    NOTE_EDIT = "note_edit"
    NOTE_DELETE = "note_delete"

    @property
    def label(self) -> str:
        """Short human label for timelines."""
        return {
            EventType.AGENDA_EDIT: "Agenda edited",
            EventType.DEBRIEF_EDIT: "Debrief edited",
            EventType.NOTE_ADD: "Note added",
            EventType.NOTE_EDIT: "Note edited",
            EventType.NOTE_DELETE: "Note deleted",
        }[self]

    @property
    def is_note_event(self) -> bool:
        return self in (EventType.NOTE_ADD, EventType.NOTE_EDIT, EventType.NOTE_DELETE)


# =============================================================================
# EDITOR IDENTITY
# =============================================================================
@dataclass(frozen=True, slots=True)
class Editor:
    """
    The user whose write is being recorded.

    Resolved once at capture time; later profile changes do not
    rewrite history.
    """
    user_id: str
    user_name: str = C.UNKNOWN_USER_NAME

    @classmethod
    def from_profile(
        cls,
        user_id: str,
        profile: Optional[Mapping[str, Any]] = None,
    ) -> Editor:
        """Display name is the profile email, else username, else a placeholder."""
        profile = profile or {}
        name = profile.get("email") or profile.get("username") or C.UNKNOWN_USER_NAME
        return cls(user_id=user_id, user_name=str(name))


# =============================================================================
# EVENT DRAFT
# =============================================================================
@dataclass(frozen=True, slots=True)
class EventDraft:
    """
    One detected change between two visit states.

    Values are already normalized plain text; the missing side of an
    add or delete is the empty string.
    """
    type: EventType
    before_value: str
    after_value: str
    note_id: Optional[str] = None

    def to_document(self, editor: Editor) -> Document:
        """Persisted form; the store fills in the timestamp."""
        document: Document = {
            "type": self.type.value,
            "beforeValue": self.before_value,
            "afterValue": self.after_value,
            "userId": editor.user_id,
            "userName": editor.user_name,
            "timestamp": SERVER_TIMESTAMP,
        }
        if self.note_id is not None:
            document["metadata"] = {"noteId": self.note_id}
        return document


# =============================================================================
# HISTORY EVENT
# =============================================================================
@dataclass(frozen=True, slots=True)
class HistoryEvent:
    """
    A persisted log entry. Never mutated; removed only by erasure.

    Ordering is by (timestamp, id) so events written in the same
    store tick still have a deterministic order.
    """
    id: str
    type: EventType
    before_value: str
    after_value: str
    user_id: str
    user_name: str
    timestamp: Timestamp
    note_id: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, document: Mapping[str, Any]) -> Result[HistoryEvent, str]:
        """
        Parse a stored event.

        Returns Err for records that cannot be placed in time or
        carry an unknown type; callers skip those with a warning.
        """
        try:
            event_type = EventType(document.get("type"))
        except ValueError:
            return Err(f"event {doc_id}: unknown type {document.get('type')!r}")

        timestamp = Timestamp.parse(document.get("timestamp"))
        if timestamp.is_err():
            return Err(f"event {doc_id}: {timestamp.error}")

        metadata = document.get("metadata") or {}
        note_id = metadata.get("noteId") if isinstance(metadata, Mapping) else None

        return Ok(cls(
            id=doc_id,
            type=event_type,
            before_value=str(document.get("beforeValue") or ""),
            after_value=str(document.get("afterValue") or ""),
            user_id=str(document.get("userId") or ""),
            user_name=str(document.get("userName") or C.UNKNOWN_USER_NAME),
            timestamp=timestamp.unwrap(),
            note_id=str(note_id) if note_id is not None else None,
        ))

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.timestamp.nanos, self.id)

    def to_dict(self) -> dict[str, Any]:
        """Contract field names, as persisted."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "beforeValue": self.before_value,
            "afterValue": self.after_value,
            "userId": self.user_id,
            "userName": self.user_name,
            "timestamp": self.timestamp.nanos,
        }
        if self.note_id is not None:
            data["metadata"] = {"noteId": self.note_id}
        return data
