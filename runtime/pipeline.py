"""Block resolution pipeline — resolves the dynamic needs of one block.

Stages run strictly in order for a block, each isolated by the
:class:`StageRunner`:

1. Definition lookup:  find the block type (``"default"`` when unset).
2. Content:            ``normalize_content`` hook, fallback = raw content.
3. Placeholders:       placeholder provider, if the type enables placeholders.
4. Media:              media provider, if the type declares media slots.
5. Business:           attached ``fetch_business`` or a dynamically loaded fetcher.

Later stages see the normalized content but never another stage's failure.
Blocks of one page are resolved concurrently with no shared mutable state.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Protocol, Sequence

from errors.exceptions import BlockDefinitionNotFoundError
from models.block import (
    DEFAULT_BLOCK_TYPE,
    BlockMode,
    BlockRuntimeErrorItem,
    MediaSlot,
    ResolvedBlock,
    RuntimeBlockInput,
    RuntimeEnvelope,
    RuntimeMeta,
)
from models.errors import BlockRuntimeStage
from runtime.config import PipelineConfig
from runtime.registry import BlockDefinition, BlockRegistry, BusinessFetchInput
from runtime.stages import StageRunner, maybe_await
from services.concurrency import gather_bounded

logger = logging.getLogger(__name__)


# ── Collaborator interfaces ─────────────────────────────────


class PlaceholderProvider(Protocol):
    async def resolve(
        self,
        content: Any,
        context: dict[str, Any],
        enabled: bool,
        with_context: bool,
    ) -> dict[str, Any]: ...


class MediaProvider(Protocol):
    async def resolve(self, content: Any, slots: Sequence[MediaSlot]) -> dict[str, Any]: ...


class FetcherLoader(Protocol):
    def load(self, block_type: str) -> Callable[[dict[str, Any]], Any] | None: ...


# ── Helpers ─────────────────────────────────────────────────


def normalize_runtime_context(page_context: dict[str, Any] | None) -> dict[str, Any]:
    """Return a private copy of the page context (``{}`` when absent)."""
    return dict(page_context or {})


def _safe_content(content: Any) -> Any:
    return {} if content is None else content


def _as_map(value: Any) -> dict[str, Any]:
    return {} if value is None else dict(value)


# ── Pipeline ────────────────────────────────────────────────


class BlockPipeline:
    """Resolves blocks against a registry and a set of external providers."""

    def __init__(
        self,
        registry: BlockRegistry,
        placeholder_provider: PlaceholderProvider | None = None,
        media_provider: MediaProvider | None = None,
        fetcher_loader: FetcherLoader | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self.registry = registry
        self.placeholder_provider = placeholder_provider
        self.media_provider = media_provider
        self.fetcher_loader = fetcher_loader
        self.config = config or PipelineConfig()
        self.runner = StageRunner(self.config)

    async def resolve_block(
        self,
        block: RuntimeBlockInput,
        page_context: dict[str, Any] | None = None,
        mode: BlockMode = "page",
    ) -> ResolvedBlock:
        """Run all stages for one block and assemble its envelope."""
        block_type = block.block_type or DEFAULT_BLOCK_TYPE
        definition = self.registry.get(block_type)

        if definition is None:
            return self._unresolvable(block, block_type, page_context)

        context = (
            {}
            if definition.capabilities.context == "none"
            else normalize_runtime_context(page_context)
        )
        errors: list[BlockRuntimeErrorItem] = []

        async def _stage(
            stage: BlockRuntimeStage,
            task: Callable[[], Awaitable[Any]],
            fallback: Any,
        ) -> Any:
            return await self.runner.run(stage, block_type, block.id, task, fallback, errors)

        content = await _stage(
            BlockRuntimeStage.CONTENT,
            lambda: self._normalize_content(definition, block.content),
            _safe_content(block.content),
        )
        placeholders = await _stage(
            BlockRuntimeStage.PLACEHOLDERS,
            lambda: self._resolve_placeholders(definition, content, context),
            {},
        )
        media = await _stage(
            BlockRuntimeStage.MEDIA,
            lambda: self._resolve_media(definition, content),
            {},
        )
        business = await _stage(
            BlockRuntimeStage.BUSINESS,
            lambda: self._fetch_business(definition, block, content, context, mode),
            {},
        )

        if errors:
            logger.info(
                "Block %s (%s) resolved with %d stage error(s)",
                block_type, block.id, len(errors),
            )

        return ResolvedBlock(
            id=block.id,
            block_type=block_type,
            description=block.description,
            content=content,
            runtime=RuntimeEnvelope(
                placeholders=placeholders,
                media=media,
                business=business,
                context=context,
                meta=RuntimeMeta(errors=errors),
            ),
        )

    async def resolve_blocks(
        self,
        blocks: Sequence[RuntimeBlockInput],
        page_context: dict[str, Any] | None = None,
        mode: BlockMode = "page",
    ) -> list[ResolvedBlock]:
        """Resolve every block concurrently; output order matches input order."""
        return await gather_bounded(
            [
                lambda b=block: self.resolve_block(b, page_context, mode)
                for block in blocks
            ],
            limit=self.config.max_concurrency,
        )

    # ── Stages ──────────────────────────────────────────────

    def _unresolvable(
        self,
        block: RuntimeBlockInput,
        block_type: str,
        page_context: dict[str, Any] | None,
    ) -> ResolvedBlock:
        error = BlockDefinitionNotFoundError(block_type, block.id)
        if self.config.strict:
            raise error

        logger.warning("%s", error.message)
        return ResolvedBlock(
            id=block.id,
            block_type=block_type,
            description=block.description,
            content=block.content,
            runtime=RuntimeEnvelope(
                context=normalize_runtime_context(page_context),
                meta=RuntimeMeta(errors=[error.to_error_item()]),
            ),
        )

    async def _normalize_content(self, definition: BlockDefinition, raw: Any) -> Any:
        if definition.normalize_content is None:
            return _safe_content(raw)
        return await maybe_await(definition.normalize_content(raw))

    async def _resolve_placeholders(
        self,
        definition: BlockDefinition,
        content: Any,
        context: dict[str, Any],
    ) -> dict[str, Any]:
        caps = definition.capabilities.placeholders
        if not caps.enabled or self.placeholder_provider is None:
            return {}
        return _as_map(
            await self.placeholder_provider.resolve(
                content, context, caps.enabled, caps.with_context
            )
        )

    async def _resolve_media(self, definition: BlockDefinition, content: Any) -> dict[str, Any]:
        slots = definition.capabilities.media
        if not slots or self.media_provider is None:
            return {}
        return _as_map(await self.media_provider.resolve(content, slots))

    async def _fetch_business(
        self,
        definition: BlockDefinition,
        block: RuntimeBlockInput,
        content: Any,
        context: dict[str, Any],
        mode: BlockMode,
    ) -> dict[str, Any]:
        if definition.fetch_business is not None:
            result = definition.fetch_business(
                BusinessFetchInput(
                    block=block.model_copy(update={"content": content}),
                    content=content,
                    context=context,
                    mode=mode,
                )
            )
            return _as_map(await maybe_await(result))

        if self.fetcher_loader is None:
            return {}
        fetcher = await maybe_await(self.fetcher_loader.load(definition.block_type))
        if fetcher is None:
            return {}

        # Dynamically loaded fetchers take the legacy flat shape.
        legacy_input = {
            **block.model_dump(by_alias=True),
            "content": content,
            "data": context,
        }
        return _as_map(await maybe_await(fetcher(legacy_input)))
