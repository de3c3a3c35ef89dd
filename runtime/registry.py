"""Block definition registry.

Each block type registers a :class:`BlockDefinition` descriptor at startup:
its capabilities plus optional hooks.  New block types are added by
registering a descriptor, never by subclassing.

Usage::

    registry = BlockRegistry()
    registry.register(BlockDefinition(
        block_type="quote",
        capabilities=BlockCapabilities(placeholders={"enabled": True}, context="none"),
    ))
    registry.get("quote")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence, Union

from models.block import BlockCapabilities, BlockMode, RuntimeBlockInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusinessFetchInput:
    """Argument handed to a definition's ``fetch_business`` hook."""

    block: RuntimeBlockInput
    content: Any
    context: dict[str, Any]
    mode: BlockMode = "page"


@dataclass(frozen=True)
class CacheTagInput:
    """Argument handed to a definition's ``cache_tags`` resolver."""

    block: RuntimeBlockInput
    content: Any
    context: dict[str, Any]


ContentNormalizer = Callable[[Any], Union[Any, Awaitable[Any]]]
BusinessFetcher = Callable[[BusinessFetchInput], Union[dict, Awaitable[dict]]]
CacheTagResolver = Union[Callable[[CacheTagInput], Sequence[str]], Sequence[str]]


@dataclass(frozen=True)
class BlockDefinition:
    """Static capability descriptor for one block type."""

    block_type: str
    capabilities: BlockCapabilities = field(default_factory=BlockCapabilities)
    normalize_content: ContentNormalizer | None = None
    fetch_business: BusinessFetcher | None = None
    cache_tags: CacheTagResolver | None = None
    description: str = ""


class BlockRegistry:
    """Maps block-type strings to definitions.  Read-only after startup."""

    def __init__(self) -> None:
        self._definitions: dict[str, BlockDefinition] = {}

    def register(self, definition: BlockDefinition) -> BlockDefinition:
        if definition.block_type in self._definitions:
            raise ValueError(f"Block type already registered: {definition.block_type!r}")
        self._definitions[definition.block_type] = definition
        logger.debug("Registered block type %s", definition.block_type)
        return definition

    def get(self, block_type: str) -> BlockDefinition | None:
        return self._definitions.get(block_type)

    def has(self, block_type: str) -> bool:
        return block_type in self._definitions

    def block_types(self) -> list[str]:
        return list(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)


# ── Module-level Singleton ───────────────────────────────────

_registry: BlockRegistry | None = None


def get_block_registry() -> BlockRegistry:
    """Get the process-wide registry, populated with the built-in catalog."""
    global _registry
    if _registry is None:
        from blocks.catalog import register_builtin_blocks

        _registry = BlockRegistry()
        register_builtin_blocks(_registry)
        logger.info("Block registry initialized (%d types)", len(_registry))
    return _registry
