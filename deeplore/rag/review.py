from __future__ import annotations

"""Whole-vault review prompt, for asking a model to critique the lorebook."""

from deeplore.rag.types import VaultIndex

DEFAULT_REVIEW_QUESTION = (
    "Review this lorebook/world-building vault. Comment on consistency, gaps, "
    "interesting connections between entries, and any suggestions for improvement."
)

ENTRY_DIVIDER = "\n\n---\n\n"


def build_review_prompt(
    index: VaultIndex,
    response_tokens: int,
    question: str | None = None,
) -> str:
    """Dump every entry followed by the question and a response length hint."""
    lore_dump = ENTRY_DIVIDER.join(f"## {entry.title}\n{entry.content}" for entry in index.entries)
    total_tokens = sum(entry.token_estimate for entry in index.entries)
    question = question.strip() if question and question.strip() else DEFAULT_REVIEW_QUESTION
    header = f"[DeepLore Review - {len(index.entries)} entries, ~{total_tokens} tokens]"
    budget_hint = f"\n\nKeep your response under {response_tokens} tokens."
    return f"{header}\n\n{lore_dump}{ENTRY_DIVIDER}{question}{budget_hint}"
