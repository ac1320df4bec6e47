from __future__ import annotations

"""Build and cache the lore index from vault documents."""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Awaitable, Callable, Sequence

from deeplore.loaders.frontmatter import split_frontmatter
from deeplore.loaders.markdown import is_markdown_path, resolve_title, sanitize_content
from deeplore.loaders.obsidian import SourceUnavailableError
from deeplore.loaders.tokens import TokenEstimator, fallback_token_estimate
from deeplore.rag.types import (
    DEFAULT_PRIORITY,
    FrontmatterValue,
    IndexedEntry,
    IndexStatus,
    LoreConfig,
    RawDocument,
    VaultIndex,
)
from deeplore.store.inmemory import InMemoryIndexStore

logger = logging.getLogger(__name__)

DocumentFetcher = Callable[[], Awaitable[Sequence[RawDocument]]]

TOKEN_BATCH_SIZE = 10


def _int_field(frontmatter: dict[str, FrontmatterValue], name: str) -> int | None:
    value = frontmatter.get(name)
    # bool is an int subclass and must not count as a number here
    if type(value) is int:
        return value
    return None


def build_entry(document: RawDocument, config: LoreConfig) -> IndexedEntry | None:
    """Parse one document into an entry, or None when tag filters reject it.

    The returned entry carries no token estimate yet.
    """
    frontmatter, body = split_frontmatter(document.content)
    raw_tags = frontmatter.get("tags")
    tags = {str(tag).lower() for tag in raw_tags} if isinstance(raw_tags, list) else set()

    if config.lorebook_tag.lower() not in tags:
        return None
    if frontmatter.get("enabled") is False:
        return None
    never_tag = config.never_insert_tag.lower()
    if never_tag and never_tag in tags:
        return None

    raw_keys = frontmatter.get("keys")
    keys = tuple(str(key) for key in raw_keys) if isinstance(raw_keys, list) else ()
    content = sanitize_content(body)
    priority = _int_field(frontmatter, "priority")
    constant_tag = config.constant_tag.lower()
    return IndexedEntry(
        path=document.path,
        title=resolve_title(content, document.path),
        keys=keys,
        content=content,
        priority=DEFAULT_PRIORITY if priority is None else priority,
        constant=frontmatter.get("constant") is True or bool(constant_tag and constant_tag in tags),
        scan_depth=_int_field(frontmatter, "scanDepth"),
        exclude_recursion=frontmatter.get("excludeRecursion") is True,
    )


class VaultIndexer:
    """Own the published index and rebuild it from the document source.

    Only one rebuild runs at a time. The new index is published in one step
    after every entry, token estimate included, is ready.
    """

    def __init__(
        self,
        fetch_all: DocumentFetcher,
        estimator: TokenEstimator | None = None,
        store: InMemoryIndexStore | None = None,
        clock: Callable[[], float] = time.time,
        batch_size: int = TOKEN_BATCH_SIZE,
    ) -> None:
        self.fetch_all = fetch_all
        self.estimator = estimator
        self.store = store or InMemoryIndexStore()
        self.clock = clock
        self.batch_size = max(1, batch_size)

    def get_snapshot(self) -> VaultIndex | None:
        return self.store.get_snapshot()

    def is_rebuilding(self) -> bool:
        return self.store.is_rebuilding()

    async def rebuild(self, config: LoreConfig) -> VaultIndex | None:
        """Rebuild and publish the index.

        Returns None without touching state when a rebuild is already in
        flight. Raises SourceUnavailableError when the source fails, leaving
        the previous index published.
        """
        if not self.store.try_begin_rebuild():
            logger.debug("index_rebuild_skipped")
            return None
        try:
            try:
                documents = await self.fetch_all()
            except SourceUnavailableError:
                raise
            except Exception as exc:
                raise SourceUnavailableError(str(exc) or type(exc).__name__) from exc
            if not isinstance(documents, (list, tuple)):
                raise SourceUnavailableError("Invalid response from document source")
            candidates = [doc for doc in documents if is_markdown_path(doc.path)]
            entries = self._build_entries(candidates, config)
            entries = await self._estimate_tokens(entries)
            index = VaultIndex(
                entries=tuple(entries),
                built_at=self.clock(),
                source_total=len(candidates),
            )
            self.store.publish(index)
        except SourceUnavailableError as exc:
            logger.error("index_rebuild_failed", extra={"detail": str(exc)})
            raise
        finally:
            self.store.end_rebuild()
        logger.info(
            "index_rebuild_complete",
            extra={"entries": len(index.entries), "source_total": index.source_total},
        )
        return index

    async def ensure_fresh(self, config: LoreConfig, now: float | None = None) -> VaultIndex | None:
        """Rebuild when the index is missing or empty, or older than the TTL."""
        now = self.clock() if now is None else now
        snapshot = self.store.get_snapshot()
        ttl = config.cache_ttl
        if snapshot is None or not snapshot.entries or (ttl > 0 and now - snapshot.built_at > ttl):
            rebuilt = await self.rebuild(config)
            return rebuilt or self.store.get_snapshot()
        return snapshot

    async def force_refresh(self, config: LoreConfig) -> VaultIndex | None:
        return await self.rebuild(config)

    def status(self, now: float | None = None) -> IndexStatus:
        now = self.clock() if now is None else now
        return IndexStatus(**self.store.stats(now))

    def _build_entries(self, documents: list[RawDocument], config: LoreConfig) -> list[IndexedEntry]:
        entries: list[IndexedEntry] = []
        seen_paths: set[str] = set()
        for document in documents:
            if document.path in seen_paths:
                continue
            seen_paths.add(document.path)
            try:
                entry = build_entry(document, config)
            except Exception as exc:
                logger.warning(
                    "document_skipped",
                    extra={"path": document.path, "detail": type(exc).__name__},
                )
                continue
            if entry is None:
                continue
            entries.append(entry)
        return entries

    async def _estimate_tokens(self, entries: list[IndexedEntry]) -> list[IndexedEntry]:
        estimated: list[IndexedEntry] = []
        for start in range(0, len(entries), self.batch_size):
            batch = entries[start : start + self.batch_size]
            counts = await asyncio.gather(*(self._estimate(entry.content) for entry in batch))
            estimated.extend(
                replace(entry, token_estimate=count) for entry, count in zip(batch, counts)
            )
        return estimated

    async def _estimate(self, text: str) -> int:
        if self.estimator is None:
            return fallback_token_estimate(text)
        try:
            return int(await self.estimator.estimate_tokens(text))
        except Exception as exc:
            logger.debug("token_estimate_fallback", extra={"detail": type(exc).__name__})
            return fallback_token_estimate(text)
