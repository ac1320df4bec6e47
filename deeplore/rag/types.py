from __future__ import annotations

"""Core data types for lore documents, entries and retrieval."""

from dataclasses import dataclass, field, replace
from typing import Union

FrontmatterValue = Union[str, bool, int, list[str]]

DEFAULT_PRIORITY = 100
DEFAULT_TEMPLATE = "<{{title}}>\n{{content}}\n</{{title}}>"
DEFAULT_LOREBOOK_TAG = "lorebook"

# (min, max) bounds applied by LoreConfig.clamped()
CONFIG_CONSTRAINTS: dict[str, tuple[int, int]] = {
    "scan_depth": (1, 100),
    "max_entries": (1, 100),
    "max_tokens_budget": (100, 100000),
    "max_recursion_steps": (1, 10),
    "cache_ttl": (0, 86400),
    "review_response_tokens": (0, 100000),
}


@dataclass(frozen=True)
class RawDocument:
    """Document as returned by the vault source."""
    path: str
    content: str


@dataclass(frozen=True)
class IndexedEntry:
    """Lore entry built from one accepted vault document."""
    path: str
    title: str
    keys: tuple[str, ...]
    content: str
    priority: int = DEFAULT_PRIORITY
    constant: bool = False
    token_estimate: int = 0
    scan_depth: int | None = None
    exclude_recursion: bool = False


@dataclass(frozen=True)
class VaultIndex:
    """Published snapshot of indexed entries."""
    entries: tuple[IndexedEntry, ...]
    built_at: float
    source_total: int = 0

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class DialogueTurn:
    """One turn of recent dialogue."""
    speaker: str
    text: str


@dataclass(frozen=True)
class MatchResult:
    """Matched entries in priority order and the trigger for each path."""
    entries: tuple[IndexedEntry, ...]
    reasons: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FormattedInjection:
    text: str
    count: int
    total_tokens: int


@dataclass(frozen=True)
class RetrievalResult:
    """Outcome of a single retrieval request."""
    injection_text: str = ""
    selected_count: int = 0
    matched_count: int = 0
    total_tokens: int = 0
    match_reasons: dict[str, str] = field(default_factory=dict)
    selected: tuple[IndexedEntry, ...] = ()
    refusal_reason: str | None = None
    warning: str | None = None
    index_error: str | None = None


@dataclass(frozen=True)
class IndexStatus:
    entry_count: int
    constant_count: int
    keyword_count: int
    total_tokens: int
    cache_age_seconds: float | None
    rebuilding: bool


@dataclass(frozen=True)
class LoreConfig:
    """Options that drive indexing, matching and rendering."""
    lorebook_tag: str = DEFAULT_LOREBOOK_TAG
    constant_tag: str = "lorebook-always"
    never_insert_tag: str = "lorebook-never"
    scan_depth: int = 4
    max_entries: int = 10
    unlimited_entries: bool = True
    max_tokens_budget: int = 2048
    unlimited_budget: bool = True
    case_sensitive: bool = False
    match_whole_words: bool = False
    recursive_scan: bool = False
    max_recursion_steps: int = 3
    cache_ttl: int = 300
    injection_template: str = DEFAULT_TEMPLATE
    review_response_tokens: int = 0
    debug: bool = False

    def clamped(self) -> LoreConfig:
        """Return a copy with numeric options clamped and tags trimmed."""
        updates: dict[str, object] = {}
        for name, (low, high) in CONFIG_CONSTRAINTS.items():
            value = getattr(self, name)
            bounded = max(low, min(high, int(round(value))))
            if bounded != value:
                updates[name] = bounded
        updates["lorebook_tag"] = self.lorebook_tag.strip() or DEFAULT_LOREBOOK_TAG
        updates["constant_tag"] = self.constant_tag.strip()
        updates["never_insert_tag"] = self.never_insert_tag.strip()
        return replace(self, **updates)
