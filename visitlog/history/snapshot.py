"""
History Snapshot: Immutable Version Groups

Provides:
- HistorySnapshot: a numbered, immutable group of event ids
- Deterministic version-slot ids
- Counts-by-type summaries

Design:
    Snapshots reference events by id only; event bodies stay in the
    event log. A snapshot is written once by the compactor under the
    id of its version slot ("version-000003"), so two compactors can
    never both claim the same version number.

Persisted shape:

    {id, version, title, eventIds[], createdAt, eventCount, summary}
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from visitlog.core import constants as C
from visitlog.core.types import Err, Ok, Result, Timestamp
from visitlog.history.events import EventType, HistoryEvent
from visitlog.storage.protocols import SERVER_TIMESTAMP, Document


# Summary parts in display order: (type, singular, plural)
_SUMMARY_PARTS: tuple[tuple[EventType, str, str], ...] = (
    (EventType.AGENDA_EDIT, "agenda edit", "agenda edits"),
    (EventType.DEBRIEF_EDIT, "debrief edit", "debrief edits"),
    (EventType.NOTE_ADD, "note added", "notes added"),
    (EventType.NOTE_EDIT, "note edited", "notes edited"),
    (EventType.NOTE_DELETE, "note deleted", "notes deleted"),
)


def snapshot_id_for(version: int) -> str:
    """Document id of a version slot, e.g. 3 -> "version-000003"."""
    if version < 1:
        raise ValueError(f"version must be >= 1, got {version}")
    return f"{C.SNAPSHOT_ID_PREFIX}{version:0{C.SNAPSHOT_ID_WIDTH}d}"


def version_of_slot(doc_id: str) -> Optional[int]:
    """Version held by a slot id, or None if doc_id is not a version slot."""
    if not doc_id.startswith(C.SNAPSHOT_ID_PREFIX):
        return None
    digits = doc_id[len(C.SNAPSHOT_ID_PREFIX):]
    if not digits.isdigit():
        return None
    version = int(digits)
    return version if version >= 1 else None


def title_for(version: int) -> str:
    return f"Version {version}"


def build_summary(events: Sequence[HistoryEvent]) -> str:
    """
    Counts-by-type description of a group of events.

    Examples:
        "2 agenda edits, 1 note added"
        "1 debrief edit, 3 notes deleted"
    """
    counts = Counter(event.type for event in events)
    parts = []
    for event_type, singular, plural in _SUMMARY_PARTS:
        count = counts.get(event_type, 0)
        if count:
            parts.append(f"{count} {singular if count == 1 else plural}")
    return ", ".join(parts)


@dataclass(frozen=True, slots=True)
class HistorySnapshot:
    """
    A persisted snapshot. Never mutated; removed only by erasure.

    Attributes:
        id: Version-slot document id
        version: 1, 2, 3, ... per visit, no gaps
        event_ids: Member events in ascending timestamp order
        created_at: Store-assigned creation time (None if unreadable)
    """
    id: str
    version: int
    title: str
    event_ids: tuple[str, ...]
    event_count: int
    summary: str
    created_at: Optional[Timestamp] = None

    @classmethod
    def new_document(cls, version: int, events: Sequence[HistoryEvent]) -> Document:
        """Persisted form of a new snapshot; the store fills in createdAt."""
        return {
            "id": snapshot_id_for(version),
            "version": version,
            "title": title_for(version),
            "eventIds": [event.id for event in events],
            "createdAt": SERVER_TIMESTAMP,
            "eventCount": len(events),
            "summary": build_summary(events),
        }

    @classmethod
    def from_document(cls, doc_id: str, document: Mapping[str, Any]) -> Result[HistorySnapshot, str]:
        """Parse a stored snapshot; Err when the version is unusable."""
        version = document.get("version")
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            return Err(f"snapshot {doc_id}: invalid version {version!r}")

        raw_ids = document.get("eventIds") or []
        if not isinstance(raw_ids, (list, tuple)):
            return Err(f"snapshot {doc_id}: eventIds is not a list")
        event_ids = tuple(str(event_id) for event_id in raw_ids)

        created = Timestamp.parse(document.get("createdAt"))
        event_count = document.get("eventCount")
        if isinstance(event_count, bool) or not isinstance(event_count, int):
            event_count = len(event_ids)

        return Ok(cls(
            id=doc_id,
            version=version,
            title=str(document.get("title") or title_for(version)),
            event_ids=event_ids,
            event_count=event_count,
            summary=str(document.get("summary") or ""),
            created_at=created.unwrap() if created.is_ok() else None,
        ))

    def to_dict(self) -> dict[str, Any]:
        """Contract field names, as persisted."""
        return {
            "id": self.id,
            "version": self.version,
            "title": self.title,
            "eventIds": list(self.event_ids),
            "createdAt": self.created_at.nanos if self.created_at else None,
            "eventCount": self.event_count,
            "summary": self.summary,
        }
