from __future__ import annotations

"""Budgeted rendering tests."""

from deeplore.rag.formatters import format_with_budget, render_entry
from deeplore.rag.types import DEFAULT_TEMPLATE, IndexedEntry


def entry(title: str, tokens: int, content: str | None = None) -> IndexedEntry:
    return IndexedEntry(
        path=f"{title}.md",
        title=title,
        keys=(title,),
        content=content if content is not None else f"{title} content",
        token_estimate=tokens,
    )


def test_template_placeholders_are_all_substituted() -> None:
    rendered = render_entry(entry("Eris", 5), DEFAULT_TEMPLATE)

    assert rendered == "<Eris>\nEris content\n</Eris>"


def test_placeholder_text_inside_values_is_not_reexpanded() -> None:
    tricky = entry("{{content}}", 1, content="body")

    assert render_entry(tricky, "{{title}}|{{content}}") == "{{content}}|body"


def test_unlimited_renders_everything_joined_by_blank_line() -> None:
    entries = [entry("A", 10), entry("B", 20)]

    result = format_with_budget(entries, "{{title}}", 1, True, 100, True)

    assert result.text == "A\n\nB"
    assert result.count == 2
    assert result.total_tokens == 30


def test_entry_cap_applies_from_first_entry() -> None:
    entries = [entry("A", 1), entry("B", 1), entry("C", 1)]

    result = format_with_budget(entries, "{{title}}", 2, False, 100, True)

    assert result.text == "A\n\nB"
    assert result.count == 2


def test_token_budget_stops_before_overflow() -> None:
    entries = [entry("A", 60), entry("B", 50), entry("C", 10)]

    result = format_with_budget(entries, "{{title}}", 10, True, 100, False)

    assert result.text == "A"
    assert result.count == 1
    assert result.total_tokens == 60


def test_first_entry_always_accepted_even_if_oversized() -> None:
    entries = [entry("Huge", 5000), entry("Small", 1)]

    result = format_with_budget(entries, "{{title}}", 10, True, 100, False)

    assert result.count == 1
    assert result.text == "Huge"
    assert result.total_tokens == 5000


def test_empty_input_and_empty_template() -> None:
    assert format_with_budget([], "{{title}}", 10, False, 100, False).count == 0

    result = format_with_budget([entry("A", 1)], "", 10, True, 100, True)
    assert result.text == "<A>\nA content\n</A>"
