"""
Plain-Text Normalizer

Rich-text fields (agenda, debrief, note text) arrive as HTML fragments
from the editor. Detection and display both compare and render the
plain-text projection produced here, so a formatting-only change
(wrapping "Plan A" in <p>) is never reported as an edit.
"""

from __future__ import annotations

import html
import re
from typing import Any

from visitlog.core import constants as C


_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def to_plain_text(value: Any) -> str:
    """
    Project an HTML fragment onto trimmed, whitespace-collapsed text.

    - None becomes ""
    - Non-string scalars are stringified
    - Each tag is replaced by one space
    - Entities are decoded; non-breaking spaces become plain spaces

    Examples:
        >>> to_plain_text("<p>Plan&nbsp;A</p>")
        'Plan A'
        >>> to_plain_text(None)
        ''
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    text = _TAG_PATTERN.sub(" ", text)
    text = html.unescape(text).replace("\u00a0", " ")
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def truncate(text: str, max_length: int = C.PREVIEW_MAX_LENGTH) -> str:
    """Shorten display text, ending in an ellipsis when cut."""
    if max_length <= 0:
        return ""
    if len(text) <= max_length:
        return text
    cut = max(0, max_length - len(C.PREVIEW_ELLIPSIS))
    return text[:cut].rstrip() + C.PREVIEW_ELLIPSIS
