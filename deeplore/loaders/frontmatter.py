from __future__ import annotations

"""Frontmatter parsing for vault notes.

Only the subset of YAML that lorebook notes use is understood: scalar
``key: value`` pairs and block sequences of ``- item`` lines. Anything else in
the block is ignored, and a note without a well-formed block is returned
unchanged with empty metadata.
"""

import re

from deeplore.rag.types import FrontmatterValue

FRONTMATTER_DELIM = "---"

_KEY_LINE_RE = re.compile(r"^(\w[\w-]*)\s*:\s*(.*)$")
_ITEM_LINE_RE = re.compile(r"^\s+-\s+(.*)$")
_DIGITS_RE = re.compile(r"^\d+$")


def split_frontmatter(raw: str) -> tuple[dict[str, FrontmatterValue], str]:
    """Extract the frontmatter dict and return (frontmatter, body)."""
    lines = raw.split("\n")
    if lines[0].rstrip("\r") != FRONTMATTER_DELIM:
        return {}, raw
    # the line after the opening marker cannot close the block
    for idx in range(2, len(lines)):
        if lines[idx].rstrip("\r") == FRONTMATTER_DELIM:
            scanner = FrontmatterScanner()
            for line in lines[1:idx]:
                scanner.feed(line)
            return scanner.fields, "\n".join(lines[idx + 1 :])
    # unterminated block, treat as no frontmatter
    return {}, raw


def parse_scalar(raw_value: str) -> FrontmatterValue:
    """Type a trimmed ``key: value`` right-hand side."""
    if raw_value in ("", "[]"):
        return []
    if raw_value == "true":
        return True
    if raw_value == "false":
        return False
    if _DIGITS_RE.match(raw_value):
        return int(raw_value)
    if len(raw_value) >= 2 and raw_value[0] == raw_value[-1] and raw_value[0] in "'\"":
        return raw_value[1:-1]
    return raw_value


class FrontmatterScanner:
    """Two-state line classifier over the lines of a frontmatter block.

    The scanner is either expecting a key line (``_sequence is None``) or has a
    sequence open for the current key, into which item lines are appended.
    """

    def __init__(self) -> None:
        self.fields: dict[str, FrontmatterValue] = {}
        self._current_key: str | None = None
        self._sequence: list[str] | None = None

    def feed(self, line: str) -> None:
        line = line.rstrip()
        key_match = _KEY_LINE_RE.match(line)
        if key_match:
            self._start_field(key_match.group(1), key_match.group(2).strip())
            return
        item_match = _ITEM_LINE_RE.match(line)
        if item_match and self._current_key is not None:
            self._append_item(item_match.group(1).strip())

    def _start_field(self, key: str, raw_value: str) -> None:
        value = parse_scalar(raw_value)
        self._current_key = key
        self.fields[key] = value
        self._sequence = value if isinstance(value, list) else None

    def _append_item(self, item: str) -> None:
        if self._sequence is None:
            self._sequence = []
            self.fields[self._current_key] = self._sequence
        self._sequence.append(item)
