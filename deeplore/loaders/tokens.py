from __future__ import annotations

"""Token estimators used to cost lore entries against the injection budget."""

import asyncio
import math
from typing import Protocol

import tiktoken

FALLBACK_CHARS_PER_TOKEN = 3.5


class TokenEstimator(Protocol):
    async def estimate_tokens(self, text: str) -> int:
        ...


def fallback_token_estimate(text: str) -> int:
    """Deterministic length-based estimate used when no tokenizer is available."""
    return math.ceil(len(text) / FALLBACK_CHARS_PER_TOKEN)


class LengthEstimator:
    """Estimator that always uses the length-based fallback."""

    async def estimate_tokens(self, text: str) -> int:
        return fallback_token_estimate(text)


class TiktokenEstimator:
    """Count tokens with a tiktoken encoding, loaded on first use."""

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        self.encoding_name = encoding_name
        self._encoding: tiktoken.Encoding | None = None

    def _get_encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            try:
                self._encoding = tiktoken.get_encoding(self.encoding_name)
            except ValueError:
                # unknown encoding name, fall back to the default encoding
                self._encoding = tiktoken.get_encoding("cl100k_base")
        return self._encoding

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self._get_encoding().encode(text, disallowed_special=()))

    async def estimate_tokens(self, text: str) -> int:
        return await asyncio.to_thread(self.count, text)


def build_token_estimator(kind: str, encoding_name: str = "cl100k_base") -> TokenEstimator:
    """Return the estimator named by ``kind`` (``tiktoken`` or ``length``)."""
    if kind.strip().lower() == "tiktoken":
        return TiktokenEstimator(encoding_name=encoding_name)
    return LengthEstimator()
