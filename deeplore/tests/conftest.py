from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("DEEPLORE_DISABLE_TIKTOKEN", "true")
os.environ.setdefault("DEEPLORE_OBSIDIAN_API_KEY", "test-key")
os.environ.setdefault("DEEPLORE_CACHE_TTL", "300")
os.environ.pop("DEEPLORE_RECURSIVE_SCAN", None)
os.environ.pop("DEEPLORE_CASE_SENSITIVE", None)
os.environ.pop("DEEPLORE_MATCH_WHOLE_WORDS", None)

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
