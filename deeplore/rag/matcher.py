from __future__ import annotations

"""Keyword trigger matching against dialogue or entry text."""

import re
from typing import Sequence

from deeplore.rag.types import DialogueTurn, IndexedEntry


def build_scan_text(window: Sequence[DialogueTurn], depth: int) -> str:
    """Render the last ``depth`` turns as ``speaker: text`` lines."""
    if depth <= 0:
        return ""
    recent = window[-depth:]
    return "\n".join(f"{turn.speaker or ''}: {turn.text or ''}" for turn in recent)


def match_entry(
    entry: IndexedEntry,
    scan_text: str,
    case_sensitive: bool = False,
    whole_words: bool = False,
) -> str | None:
    """Return the first of the entry's keys found in ``scan_text``, else None."""
    if not entry.keys:
        return None
    haystack = scan_text if case_sensitive else scan_text.lower()
    flags = 0 if case_sensitive else re.IGNORECASE
    for raw_key in entry.keys:
        key = raw_key if case_sensitive else raw_key.lower()
        if whole_words:
            if re.search(rf"\b{re.escape(key)}\b", scan_text, flags):
                return raw_key
        elif key in haystack:
            return raw_key
    return None
