from __future__ import annotations

from functools import lru_cache

from deeplore.app.settings import settings
from deeplore.loaders.obsidian import ObsidianVaultSource
from deeplore.loaders.tokens import TokenEstimator, build_token_estimator
from deeplore.rag.indexer import VaultIndexer
from deeplore.rag.pipeline import LorePipeline


@lru_cache
def get_vault_source() -> ObsidianVaultSource:
    return ObsidianVaultSource(settings.obsidian_config())


@lru_cache
def get_pipeline() -> LorePipeline:
    source = get_vault_source()
    indexer = VaultIndexer(
        fetch_all=source.fetch_all,
        estimator=build_estimator(),
    )
    return LorePipeline(indexer=indexer)


def reset_pipeline_cache() -> None:
    get_pipeline.cache_clear()
    get_vault_source.cache_clear()


def build_estimator() -> TokenEstimator:
    return build_token_estimator(
        settings.token_estimator_kind,
        encoding_name=settings.tiktoken_encoding,
    )
