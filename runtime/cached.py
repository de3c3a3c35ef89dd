"""Cached block resolution and page-level aggregation.

``CachedBlockResolver`` wraps the pipeline in a tag-addressed cache entry
whose lifetime lasts until one of its tags is invalidated.  Preview
rendering (``disable_cache``) and blocks without a page identity always
resolve fresh.

``PageResolver`` fans a page's blocks out through the cached resolver and
computes the page-level tag set.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Sequence

from models.block import BlockMode, PageResolution, ResolvedBlock, RuntimeBlockInput
from runtime.cache_tags import CacheTagDeriver
from runtime.config import PipelineConfig
from runtime.pipeline import BlockPipeline
from services.concurrency import gather_bounded
from services.tag_cache import TagCacheStore

logger = logging.getLogger(__name__)


def block_cache_key(
    block: RuntimeBlockInput,
    page_id: str,
    page_context: dict[str, Any] | None,
    mode: BlockMode,
) -> str:
    """Stable key derived from the block identity, its content and its inputs."""
    payload = json.dumps(
        {
            "pageId": page_id,
            "block": block.model_dump(mode="json", by_alias=True),
            "pageContext": page_context or {},
            "mode": mode,
        },
        sort_keys=True,
        ensure_ascii=False,
        default=str,
    )
    digest = hashlib.sha256(payload.encode()).hexdigest()
    return f"block:{page_id}:{block.id}:{digest[:32]}"


class CachedBlockResolver:
    """Resolves a block through the pipeline, memoized by cache tags."""

    def __init__(
        self,
        pipeline: BlockPipeline,
        deriver: CacheTagDeriver,
        store: TagCacheStore,
        config: PipelineConfig | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.deriver = deriver
        self.store = store
        self.config = config or pipeline.config

    async def resolve(
        self,
        block: RuntimeBlockInput,
        page_id: str | None = None,
        page_context: dict[str, Any] | None = None,
        disable_cache: bool = False,
        mode: BlockMode = "page",
    ) -> ResolvedBlock:
        if disable_cache or not page_id or not self.config.cache_enabled:
            return await self.pipeline.resolve_block(block, page_context, mode)

        tags = self.deriver.block_tags(block, page_id, page_context)
        key = block_cache_key(block, page_id, page_context, mode)

        async def _compute() -> dict[str, Any]:
            resolved = await self.pipeline.resolve_block(block, page_context, mode)
            return resolved.model_dump(mode="json", by_alias=True)

        data = await self.store.compute_with_tags(
            key,
            tags,
            _compute,
            ttl_seconds=self.config.cache_ttl,
            cacheable=self._is_cacheable,
        )
        return ResolvedBlock.model_validate(data)

    def _is_cacheable(self, data: dict[str, Any]) -> bool:
        if self.config.cache_error_results:
            return True
        return data.get("runtime", {}).get("meta", {}).get("status") != "error"


class PageResolver:
    """Resolves every block of a page and the page-level cache tags."""

    def __init__(
        self,
        resolver: CachedBlockResolver,
        config: PipelineConfig | None = None,
    ) -> None:
        self.resolver = resolver
        self.deriver = resolver.deriver
        self.config = config or resolver.config

    async def resolve_page(
        self,
        blocks: Sequence[RuntimeBlockInput],
        page_id: str | None = None,
        page_context: dict[str, Any] | None = None,
        disable_cache: bool = False,
        mode: BlockMode = "page",
    ) -> PageResolution:
        resolved = await gather_bounded(
            [
                lambda b=block: self.resolver.resolve(
                    b, page_id, page_context, disable_cache, mode
                )
                for block in blocks
            ],
            limit=self.config.max_concurrency,
        )
        tags = self.deriver.page_tags(page_id, blocks, page_context) if page_id else []
        logger.debug("Resolved page %s: %d block(s)", page_id or "<preview>", len(resolved))
        return PageResolution(blocks=resolved, tags=tags)
