from __future__ import annotations

"""Render matched entries into the injection text under entry and token caps."""

import re
from typing import Sequence

from deeplore.rag.types import DEFAULT_TEMPLATE, FormattedInjection, IndexedEntry

_PLACEHOLDER_RE = re.compile(r"\{\{(title|content)\}\}")

ENTRY_SEPARATOR = "\n\n"


def render_entry(entry: IndexedEntry, template: str) -> str:
    """Substitute every title and content placeholder in the template."""
    values = {"title": entry.title, "content": entry.content}
    return _PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], template)


def format_with_budget(
    entries: Sequence[IndexedEntry],
    template: str,
    max_entries: int,
    unlimited_entries: bool,
    max_tokens: int,
    unlimited_budget: bool,
) -> FormattedInjection:
    """Accept entries in order until a cap is hit.

    The entry cap applies from the first entry. The token cap never rejects
    the first entry, so one oversized entry still produces output.
    """
    template = template or DEFAULT_TEMPLATE
    parts: list[str] = []
    total_tokens = 0
    count = 0
    for entry in entries:
        if not unlimited_entries and count >= max_entries:
            break
        if not unlimited_budget and count > 0 and total_tokens + entry.token_estimate > max_tokens:
            break
        parts.append(render_entry(entry, template))
        total_tokens += entry.token_estimate
        count += 1
    return FormattedInjection(text=ENTRY_SEPARATOR.join(parts), count=count, total_tokens=total_tokens)
