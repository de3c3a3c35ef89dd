"""Wires the block runtime together from settings.

``get_block_runtime()`` is the process-wide accessor used by the API layer;
``build_block_runtime()`` builds an independent instance (tests build their
own with explicit collaborators).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from config.settings import Settings, get_settings
from runtime.cache_tags import CacheTagDeriver, PlaceholderTagRegistry, default_placeholder_tags
from runtime.cached import CachedBlockResolver, PageResolver
from runtime.config import PipelineConfig
from runtime.pipeline import BlockPipeline
from runtime.registry import BlockRegistry, get_block_registry
from services import mock_data
from services.content_source import ContentSource, get_content_source
from services.fetcher_loader import ModuleFetcherLoader
from services.interpolators import InterpolatorPlaceholderProvider, build_default_interpolators
from services.media import InMemoryMediaLookup, MediaLookup, MediaResolver
from services.tag_cache import TagCacheStore, get_tag_cache_store

logger = logging.getLogger(__name__)


@dataclass
class BlockRuntime:
    """Everything needed to resolve pages of blocks."""

    config: PipelineConfig
    registry: BlockRegistry
    placeholder_tags: PlaceholderTagRegistry
    pipeline: BlockPipeline
    deriver: CacheTagDeriver
    store: TagCacheStore
    resolver: CachedBlockResolver
    pages: PageResolver


def build_block_runtime(
    settings: Settings | None = None,
    registry: BlockRegistry | None = None,
    store: TagCacheStore | None = None,
    content_source: ContentSource | None = None,
    media_lookup: MediaLookup | None = None,
) -> BlockRuntime:
    """Assemble a runtime and validate placeholder tag coverage.

    Raises:
        UnmappedPlaceholderError: an interpolator serves a placeholder that
            has no cache tag mapping.
    """
    settings = settings or get_settings()
    config = PipelineConfig.from_settings(settings)
    registry = registry or get_block_registry()
    store = store or get_tag_cache_store()

    interpolators = build_default_interpolators(content_source or get_content_source())
    placeholder_tags = default_placeholder_tags()
    placeholder_tags.validate(interpolators.placeholder_names())

    pipeline = BlockPipeline(
        registry=registry,
        placeholder_provider=InterpolatorPlaceholderProvider(interpolators),
        media_provider=MediaResolver(media_lookup or InMemoryMediaLookup(mock_data.MEDIA_FILES)),
        fetcher_loader=ModuleFetcherLoader(settings.fetcher_package),
        config=config,
    )
    deriver = CacheTagDeriver(registry, placeholder_tags)
    resolver = CachedBlockResolver(pipeline, deriver, store, config)

    logger.info(
        "Block runtime ready (strict=%s, stage_timeout=%s, max_concurrency=%s, types=%d)",
        config.strict,
        config.stage_timeout,
        config.max_concurrency,
        len(registry),
    )
    return BlockRuntime(
        config=config,
        registry=registry,
        placeholder_tags=placeholder_tags,
        pipeline=pipeline,
        deriver=deriver,
        store=store,
        resolver=resolver,
        pages=PageResolver(resolver, config),
    )


# ── Module-level Singleton ───────────────────────────────────

_runtime: BlockRuntime | None = None


def get_block_runtime() -> BlockRuntime:
    """Get the singleton block runtime instance."""
    global _runtime
    if _runtime is None:
        _runtime = build_block_runtime()
    return _runtime
