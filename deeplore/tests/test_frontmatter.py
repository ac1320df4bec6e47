from __future__ import annotations

from deeplore.loaders.frontmatter import parse_scalar, split_frontmatter


def test_block_with_sequence_and_scalars() -> None:
    raw = "---\ntags:\n  - lorebook\npriority: 10\nenabled: true\n---\nBODY"

    frontmatter, body = split_frontmatter(raw)

    assert frontmatter == {"tags": ["lorebook"], "priority": 10, "enabled": True}
    assert body == "BODY"


def test_no_block_returns_input_verbatim() -> None:
    raw = "# Eris\n\nNo metadata here.\n"

    frontmatter, body = split_frontmatter(raw)

    assert frontmatter == {}
    assert body == raw


def test_unterminated_block_is_not_metadata() -> None:
    raw = "---\ntags:\n  - lorebook\nBody without closing marker"

    assert split_frontmatter(raw) == ({}, raw)


def test_opening_marker_must_start_the_text() -> None:
    raw = "\n---\ntags: lorebook\n---\nbody"

    assert split_frontmatter(raw) == ({}, raw)


def test_crlf_lines_are_tolerated() -> None:
    raw = "---\r\nkeys:\r\n  - Eris\r\n  - Discord\r\npriority: 5\r\n---\r\nBody text\r\n"

    frontmatter, body = split_frontmatter(raw)

    assert frontmatter == {"keys": ["Eris", "Discord"], "priority": 5}
    assert body == "Body text\r\n"


def test_trailing_newline_after_closing_marker_is_consumed() -> None:
    frontmatter, body = split_frontmatter("---\nconstant: false\n---\n\nParagraph")

    assert frontmatter == {"constant": False}
    assert body == "\nParagraph"


def test_closing_marker_at_end_of_text_gives_empty_body() -> None:
    assert split_frontmatter("---\ntitle: x\n---") == ({"title": "x"}, "")


def test_item_after_scalar_replaces_value_with_sequence() -> None:
    raw = "---\nkeys: Eris\n  - Discord\n  - Strife\n---\n"

    frontmatter, _ = split_frontmatter(raw)

    assert frontmatter["keys"] == ["Discord", "Strife"]


def test_unindented_items_and_ignored_lines() -> None:
    raw = "---\n  - orphan\ntags:\n- lorebook\n  - Characters\n# comment\n  nested: value\n---\n"

    frontmatter, _ = split_frontmatter(raw)

    assert frontmatter == {"tags": ["Characters"]}


def test_unindented_tag_list_is_not_a_sequence() -> None:
    frontmatter, body = split_frontmatter("---\ntags:\n- lorebook\n---\nbody")

    assert frontmatter == {"tags": []}
    assert body == "body"


def test_empty_block_is_not_metadata() -> None:
    raw = "---\n---\nbody"

    assert split_frontmatter(raw) == ({}, raw)


def test_marker_right_after_opening_is_block_content() -> None:
    frontmatter, body = split_frontmatter("---\n---\npriority: 3\n---\nbody")

    assert frontmatter == {"priority": 3}
    assert body == "body"


def test_empty_list_literal_opens_sequence() -> None:
    raw = "---\nkeys: []\naliases:\n---\n"

    frontmatter, _ = split_frontmatter(raw)

    assert frontmatter == {"keys": [], "aliases": []}


def test_hyphenated_keys_are_recognized() -> None:
    frontmatter, _ = split_frontmatter("---\nlast-updated: 2024-01-02\n---\n")

    assert frontmatter == {"last-updated": "2024-01-02"}


def test_scalar_typing() -> None:
    assert parse_scalar("") == []
    assert parse_scalar("[]") == []
    assert parse_scalar("true") is True
    assert parse_scalar("false") is False
    assert parse_scalar("42") == 42
    assert parse_scalar("-3") == "-3"
    assert parse_scalar("True") == "True"
    assert parse_scalar('"quoted value"') == "quoted value"
    assert parse_scalar("'single'") == "single"
    assert parse_scalar("\"mismatched'") == "\"mismatched'"
    assert parse_scalar('""') == ""
