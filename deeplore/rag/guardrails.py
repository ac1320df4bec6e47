from __future__ import annotations

from dataclasses import dataclass

from deeplore.rag.types import MatchResult, VaultIndex


@dataclass(frozen=True)
class GuardrailResult:
    allowed: bool
    reason: str


def require_entries(index: VaultIndex | None) -> GuardrailResult:
    if index is None or not index.entries:
        return GuardrailResult(allowed=False, reason="no_entries")
    return GuardrailResult(allowed=True, reason="ok")


def require_scan_text(scan_text: str) -> GuardrailResult:
    if not scan_text.strip():
        return GuardrailResult(allowed=False, reason="empty_scan_window")
    return GuardrailResult(allowed=True, reason="ok")


def require_matches(match: MatchResult) -> GuardrailResult:
    if not match.entries:
        return GuardrailResult(allowed=False, reason="no_matches")
    return GuardrailResult(allowed=True, reason="ok")
