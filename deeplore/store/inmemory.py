from __future__ import annotations

"""In-memory holder for the published vault index."""

from dataclasses import dataclass

from deeplore.rag.types import VaultIndex


@dataclass
class InMemoryIndexStore:
    """Single published index snapshot plus the rebuild-in-flight flag.

    Snapshots are replaced wholesale by ``publish`` and never mutated, so a
    reader holding one keeps a consistent view while a rebuild runs.
    """
    _snapshot: VaultIndex | None = None
    _rebuilding: bool = False

    def get_snapshot(self) -> VaultIndex | None:
        return self._snapshot

    def is_rebuilding(self) -> bool:
        return self._rebuilding

    def try_begin_rebuild(self) -> bool:
        """Claim the rebuild slot; False when a rebuild is already running."""
        if self._rebuilding:
            return False
        self._rebuilding = True
        return True

    def end_rebuild(self) -> None:
        self._rebuilding = False

    def publish(self, index: VaultIndex) -> None:
        self._snapshot = index

    def stats(self, now: float) -> dict[str, object]:
        snapshot = self._snapshot
        entries = snapshot.entries if snapshot else ()
        return {
            "entry_count": len(entries),
            "constant_count": sum(1 for entry in entries if entry.constant),
            "keyword_count": sum(len(entry.keys) for entry in entries),
            "total_tokens": sum(entry.token_estimate for entry in entries),
            "cache_age_seconds": (now - snapshot.built_at) if snapshot else None,
            "rebuilding": self._rebuilding,
        }
