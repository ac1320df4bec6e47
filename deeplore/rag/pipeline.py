from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from deeplore.loaders.obsidian import SourceUnavailableError
from deeplore.rag.expander import expand_matches
from deeplore.rag.formatters import format_with_budget
from deeplore.rag.guardrails import require_entries, require_matches, require_scan_text
from deeplore.rag.indexer import VaultIndexer
from deeplore.rag.matcher import build_scan_text
from deeplore.rag.review import build_review_prompt
from deeplore.rag.types import (
    DialogueTurn,
    IndexedEntry,
    IndexStatus,
    LoreConfig,
    RetrievalResult,
    VaultIndex,
)

logger = logging.getLogger(__name__)

CONTEXT_WARNING_RATIO = 0.20
CONTEXT_WARNING_STEP = 0.05

Interceptor = Callable[[Sequence[DialogueTurn], int], Awaitable[RetrievalResult]]


@dataclass
class LorePipeline:
    indexer: VaultIndexer
    last_warning_ratio: float = 0.0

    async def retrieve(
        self,
        window: Sequence[DialogueTurn],
        config: LoreConfig,
        context_size: int = 0,
    ) -> RetrievalResult:
        """Select and render the lore entries triggered by the dialogue window.

        Source failures never propagate: the previously published index is
        used if there is one, and otherwise nothing is injected.
        """
        config = config.clamped()
        index_error: str | None = None
        try:
            await self.indexer.ensure_fresh(config)
        except SourceUnavailableError as exc:
            index_error = str(exc)
            logger.warning("index_unavailable", extra={"detail": index_error})

        # one snapshot for the whole match pass, even if a rebuild starts later
        snapshot = self.indexer.get_snapshot()
        guardrail = require_entries(snapshot)
        if not guardrail.allowed:
            logger.debug("retrieval_skipped", extra={"reason": guardrail.reason})
            return RetrievalResult(refusal_reason=guardrail.reason, index_error=index_error)

        guardrail = require_scan_text(build_scan_text(window, config.scan_depth))
        if not guardrail.allowed:
            return RetrievalResult(refusal_reason=guardrail.reason, index_error=index_error)

        match = expand_matches(snapshot.entries, config, window)
        guardrail = require_matches(match)
        if not guardrail.allowed:
            logger.debug("retrieval_skipped", extra={"reason": guardrail.reason})
            return RetrievalResult(refusal_reason=guardrail.reason, index_error=index_error)

        injection = format_with_budget(
            match.entries,
            config.injection_template,
            max_entries=config.max_entries,
            unlimited_entries=config.unlimited_entries,
            max_tokens=config.max_tokens_budget,
            unlimited_budget=config.unlimited_budget,
        )
        selected = match.entries[: injection.count]
        warning = self._context_warning(injection.count, injection.total_tokens, context_size)
        if config.debug:
            self._log_selection(selected, match.reasons)
        logger.info(
            "retrieval_complete",
            extra={
                "matched": len(match.entries),
                "injected": injection.count,
                "tokens": injection.total_tokens,
            },
        )
        return RetrievalResult(
            injection_text=injection.text,
            selected_count=injection.count,
            matched_count=len(match.entries),
            total_tokens=injection.total_tokens,
            match_reasons=match.reasons,
            selected=selected,
            warning=warning,
            index_error=index_error,
        )

    async def force_refresh(self, config: LoreConfig) -> VaultIndex | None:
        """Rebuild now regardless of cache age; source errors propagate."""
        return await self.indexer.force_refresh(config.clamped())

    def get_status(self) -> IndexStatus:
        return self.indexer.status()

    def describe(self, config: LoreConfig) -> list[str]:
        """Human-readable summary of tags, index size, limits and cache age."""
        config = config.clamped()
        status = self.get_status()
        if status.cache_age_seconds is None:
            cache = "none"
        else:
            cache = f"{round(status.cache_age_seconds)}s old"
        constant_tag = f"#{config.constant_tag}" if config.constant_tag else "(none)"
        never_tag = f"#{config.never_insert_tag}" if config.never_insert_tag else "(none)"
        budget = "unlimited" if config.unlimited_budget else f"{config.max_tokens_budget} tokens"
        max_entries = "unlimited" if config.unlimited_entries else str(config.max_entries)
        recursion = (
            f"on (max {config.max_recursion_steps} steps)" if config.recursive_scan else "off"
        )
        return [
            f"Lorebook Tag: #{config.lorebook_tag}",
            f"Always-Send Tag: {constant_tag}",
            f"Never-Insert Tag: {never_tag}",
            f"Entries: {status.entry_count} ({status.constant_count} always-send, "
            f"~{status.total_tokens} tokens)",
            f"Budget: {budget}",
            f"Max Entries: {max_entries}",
            f"Recursive: {recursion}",
            f"Cache: {cache} / TTL {config.cache_ttl}s",
        ]

    async def review_prompt(
        self,
        config: LoreConfig,
        default_response_tokens: int,
        question: str | None = None,
    ) -> str | None:
        """Build the whole-vault review prompt, or None when nothing is indexed."""
        config = config.clamped()
        await self.indexer.ensure_fresh(config)
        snapshot = self.indexer.get_snapshot()
        if not require_entries(snapshot).allowed:
            return None
        response_tokens = (
            config.review_response_tokens
            if config.review_response_tokens > 0
            else default_response_tokens
        )
        return build_review_prompt(snapshot, response_tokens, question)

    def as_interceptor(self, config_provider: Callable[[], LoreConfig]) -> Interceptor:
        """Return a plain callable the host invokes before each generation."""

        async def intercept(window: Sequence[DialogueTurn], context_size: int = 0) -> RetrievalResult:
            return await self.retrieve(window, config_provider(), context_size=context_size)

        return intercept

    def _context_warning(self, count: int, total_tokens: int, context_size: int) -> str | None:
        if context_size <= 0:
            return None
        ratio = total_tokens / context_size
        if ratio <= CONTEXT_WARNING_RATIO or ratio <= self.last_warning_ratio + CONTEXT_WARNING_STEP:
            return None
        self.last_warning_ratio = ratio
        pct = round(ratio * 100)
        message = (
            f"{count} entries injected (~{total_tokens} tokens, {pct}% of context). "
            "Consider setting a token budget."
        )
        logger.warning("context_usage_warning", extra={"ratio": ratio, "entries": count})
        return message

    def _log_selection(self, selected: Sequence[IndexedEntry], reasons: dict[str, str]) -> None:
        for entry in selected:
            logger.info(
                "entry_injected",
                extra={
                    "title": entry.title,
                    "matched_key": reasons.get(entry.path, "?"),
                    "priority": entry.priority,
                    "tokens": entry.token_estimate,
                    "constant": entry.constant,
                },
            )
