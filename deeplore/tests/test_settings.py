from __future__ import annotations

from deeplore.app.settings import Settings
from deeplore.rag.types import LoreConfig


def test_clamped_limits_numeric_options() -> None:
    config = LoreConfig(
        scan_depth=0,
        max_entries=500,
        max_tokens_budget=5,
        max_recursion_steps=50,
        cache_ttl=-1,
        review_response_tokens=10**6,
    ).clamped()

    assert config.scan_depth == 1
    assert config.max_entries == 100
    assert config.max_tokens_budget == 100
    assert config.max_recursion_steps == 10
    assert config.cache_ttl == 0
    assert config.review_response_tokens == 100000


def test_clamped_trims_tags_and_restores_blank_lorebook_tag() -> None:
    config = LoreConfig(lorebook_tag="   ", constant_tag=" always ", never_insert_tag="").clamped()

    assert config.lorebook_tag == "lorebook"
    assert config.constant_tag == "always"
    assert config.never_insert_tag == ""


def test_settings_build_clamped_engine_config() -> None:
    settings = Settings(scan_depth=999, obsidian_port=70000, disable_tiktoken=True)

    assert settings.lore_config().scan_depth == 100
    assert settings.obsidian_config().port == 65535
    assert settings.token_estimator_kind == "length"
