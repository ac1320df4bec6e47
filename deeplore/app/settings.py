from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from deeplore.loaders.obsidian import ObsidianConfig
from deeplore.rag.types import DEFAULT_TEMPLATE, LoreConfig

load_dotenv()

_TRUTHY = {"1", "true", "yes"}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    obsidian_host: str = os.getenv("DEEPLORE_OBSIDIAN_HOST", "127.0.0.1")
    obsidian_port: int = int(os.getenv("DEEPLORE_OBSIDIAN_PORT", "27123"))
    obsidian_api_key: str = os.getenv("DEEPLORE_OBSIDIAN_API_KEY", "")
    obsidian_timeout: float = float(os.getenv("DEEPLORE_OBSIDIAN_TIMEOUT", "30"))
    fetch_batch_size: int = int(os.getenv("DEEPLORE_FETCH_BATCH_SIZE", "10"))
    lorebook_tag: str = os.getenv("DEEPLORE_LOREBOOK_TAG", "lorebook")
    constant_tag: str = os.getenv("DEEPLORE_CONSTANT_TAG", "lorebook-always")
    never_insert_tag: str = os.getenv("DEEPLORE_NEVER_INSERT_TAG", "lorebook-never")
    scan_depth: int = int(os.getenv("DEEPLORE_SCAN_DEPTH", "4"))
    max_entries: int = int(os.getenv("DEEPLORE_MAX_ENTRIES", "10"))
    unlimited_entries: bool = _env_flag("DEEPLORE_UNLIMITED_ENTRIES", "true")
    max_tokens_budget: int = int(os.getenv("DEEPLORE_MAX_TOKENS_BUDGET", "2048"))
    unlimited_budget: bool = _env_flag("DEEPLORE_UNLIMITED_BUDGET", "true")
    case_sensitive: bool = _env_flag("DEEPLORE_CASE_SENSITIVE", "false")
    match_whole_words: bool = _env_flag("DEEPLORE_MATCH_WHOLE_WORDS", "false")
    recursive_scan: bool = _env_flag("DEEPLORE_RECURSIVE_SCAN", "false")
    max_recursion_steps: int = int(os.getenv("DEEPLORE_MAX_RECURSION_STEPS", "3"))
    cache_ttl: int = int(os.getenv("DEEPLORE_CACHE_TTL", "300"))
    injection_template: str = os.getenv("DEEPLORE_INJECTION_TEMPLATE", DEFAULT_TEMPLATE)
    review_response_tokens: int = int(os.getenv("DEEPLORE_REVIEW_RESPONSE_TOKENS", "0"))
    default_response_tokens: int = int(os.getenv("DEEPLORE_DEFAULT_RESPONSE_TOKENS", "512"))
    token_estimator: str = os.getenv("DEEPLORE_TOKEN_ESTIMATOR", "tiktoken")
    tiktoken_encoding: str = os.getenv("DEEPLORE_TIKTOKEN_ENCODING", "cl100k_base")
    disable_tiktoken: bool = _env_flag("DEEPLORE_DISABLE_TIKTOKEN", "false")
    log_level: str = os.getenv("DEEPLORE_LOG_LEVEL", "INFO")
    metrics_enabled: bool = _env_flag("DEEPLORE_METRICS_ENABLED", "true")
    debug: bool = _env_flag("DEEPLORE_DEBUG", "false")

    @property
    def token_estimator_kind(self) -> str:
        if self.disable_tiktoken:
            return "length"
        return self.token_estimator

    def obsidian_config(self) -> ObsidianConfig:
        return ObsidianConfig(
            host=self.obsidian_host,
            port=max(1, min(65535, self.obsidian_port)),
            api_key=self.obsidian_api_key,
            timeout=self.obsidian_timeout,
            batch_size=self.fetch_batch_size,
        )

    def lore_config(self) -> LoreConfig:
        """Engine options from the environment, clamped to their valid ranges."""
        return LoreConfig(
            lorebook_tag=self.lorebook_tag,
            constant_tag=self.constant_tag,
            never_insert_tag=self.never_insert_tag,
            scan_depth=self.scan_depth,
            max_entries=self.max_entries,
            unlimited_entries=self.unlimited_entries,
            max_tokens_budget=self.max_tokens_budget,
            unlimited_budget=self.unlimited_budget,
            case_sensitive=self.case_sensitive,
            match_whole_words=self.match_whole_words,
            recursive_scan=self.recursive_scan,
            max_recursion_steps=self.max_recursion_steps,
            cache_ttl=self.cache_ttl,
            injection_template=self.injection_template,
            review_response_tokens=self.review_response_tokens,
            debug=self.debug,
        ).clamped()


settings = Settings()
