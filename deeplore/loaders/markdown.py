from __future__ import annotations

"""Markdown cleanup and title extraction for lore notes."""

import re

MARKDOWN_SUFFIX = ".md"

_EMBED_RE = re.compile(r"!\[\[.*?\]\]")
_IMAGE_RE = re.compile(r"!\[.*?\]\(.*?\)")
_ALIASED_LINK_RE = re.compile(r"\[\[([^\]|]+)\|([^\]]+)\]\]")
_LINK_RE = re.compile(r"\[\[([^\]]+)\]\]")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_H1_RE = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)


def sanitize_content(body: str) -> str:
    """Strip embeds and wikilink markup so the body reads as plain prose."""
    cleaned = body
    # unwrapping a nested link can expose another one
    while True:
        previous = cleaned
        cleaned = _EMBED_RE.sub("", cleaned)
        cleaned = _IMAGE_RE.sub("", cleaned)
        cleaned = _ALIASED_LINK_RE.sub(r"\2", cleaned)
        cleaned = _LINK_RE.sub(r"\1", cleaned)
        if cleaned == previous:
            break
    cleaned = _BLANK_RUN_RE.sub("\n\n", cleaned)
    return cleaned.strip()


def resolve_title(body: str, path: str) -> str:
    """Return the first H1 heading, else the file name without extension."""
    match = _H1_RE.search(body)
    if match and match.group(1).strip():
        return match.group(1).strip()
    name = path.rsplit("/", 1)[-1]
    return name.removesuffix(MARKDOWN_SUFFIX)


def is_markdown_path(path: str) -> bool:
    return path.endswith(MARKDOWN_SUFFIX)
