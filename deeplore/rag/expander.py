from __future__ import annotations

"""Initial keyword pass plus bounded recursive expansion over entry content."""

import logging
from typing import Sequence

from deeplore.rag.matcher import build_scan_text, match_entry
from deeplore.rag.types import DialogueTurn, IndexedEntry, LoreConfig, MatchResult

logger = logging.getLogger(__name__)

CONSTANT_REASON = "(constant)"


def initial_matches(
    entries: Sequence[IndexedEntry],
    config: LoreConfig,
    window: Sequence[DialogueTurn],
) -> dict[str, str]:
    """Step 0: constants plus entries whose keys appear in their scan window."""
    global_text = build_scan_text(window, config.scan_depth)
    reasons: dict[str, str] = {}
    for entry in entries:
        if entry.constant:
            reasons[entry.path] = CONSTANT_REASON
            continue
        scan_text = (
            global_text
            if entry.scan_depth is None
            else build_scan_text(window, entry.scan_depth)
        )
        key = match_entry(entry, scan_text, config.case_sensitive, config.match_whole_words)
        if key is not None:
            reasons[entry.path] = key
    return reasons


def expand_matches(
    entries: Sequence[IndexedEntry],
    config: LoreConfig,
    window: Sequence[DialogueTurn],
) -> MatchResult:
    """Match entries against the dialogue and follow keywords through content.

    Each recursion step scans only the content of the entries first matched in
    the previous step, so a cycle of entries that mention each other stops
    growing once all of them are matched, and the step cap bounds the rest.
    """
    reasons = initial_matches(entries, config, window)
    matched = frozenset(reasons)
    frontier = tuple(entry for entry in entries if entry.path in matched)

    step = 0
    if config.recursive_scan and config.max_recursion_steps > 0:
        while frontier and step < config.max_recursion_steps:
            step += 1
            recursion_text = "\n".join(
                entry.content for entry in frontier if not entry.exclude_recursion
            )
            if not recursion_text.strip():
                break
            found: dict[str, str] = {}
            for entry in entries:
                if entry.path in matched or entry.constant:
                    continue
                key = match_entry(
                    entry, recursion_text, config.case_sensitive, config.match_whole_words
                )
                if key is not None:
                    found[entry.path] = f"{key} (recursion step {step})"
            frontier = tuple(entry for entry in entries if entry.path in found)
            matched = matched | frozenset(found)
            reasons = {**reasons, **found}

    ordered = sorted(
        (entry for entry in entries if entry.path in matched),
        key=lambda entry: entry.priority,
    )
    logger.debug(
        "expansion_complete",
        extra={"matched": len(ordered), "recursion_steps": step},
    )
    return MatchResult(entries=tuple(ordered), reasons=reasons)
