"""Cache tag derivation for resolved blocks.

A cached block result is tagged with every key whose invalidation should
force it to recompute:

- page / block identity:   ``pages/{pageId}``, ``block/{pageId}/{blockId}``
- definition tags:         the block type's ``cache_tags`` resolver
- placeholder tags:        domain tags for each placeholder in the content,
                           e.g. ``{postsList}`` → ``posts``
- scoped tags:             ``categories/{slug}`` / ``tags/{slug}`` when a
                           category or tag placeholder is bound to a slug
- media:                   ``photos`` when the type declares media slots

Placeholder → tag mappings are declared in a :class:`PlaceholderTagRegistry`
and checked at startup against the placeholders the service can resolve.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from errors.exceptions import UnmappedPlaceholderError
from models.block import DEFAULT_BLOCK_TYPE, RuntimeBlockInput
from runtime.pipeline import normalize_runtime_context
from runtime.placeholders import extract_parsed_placeholders_from_value
from runtime.registry import BlockDefinition, BlockRegistry, CacheTagInput

logger = logging.getLogger(__name__)

PHOTOS_TAG = "photos"

_CATEGORY_SCOPED = frozenset({
    "categoryPosts",
    "category",
    "categoryName",
    "categoryDescription",
    "categorySubcategoryCount",
    "categoryPostCount",
    "categoryPage",
    "categoryTotalPage",
    "categoryFirstPage",
    "categoryLastPage",
})

_TAG_SCOPED = frozenset({
    "tagPosts",
    "tag",
    "tagName",
    "tagDescription",
    "tagPostCount",
    "tagPage",
    "tagTotalPage",
    "tagFirstPage",
    "tagLastPage",
})


def page_tag(page_id: str) -> str:
    return f"pages/{page_id}"


def block_tag(page_id: str, block_id: Any) -> str:
    return f"block/{page_id}/{block_id}"


def normalize_tag_list(value: Iterable[Any] | None) -> list[str]:
    """Keep non-empty trimmed strings, deduplicated in first-seen order."""
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    tags: dict[str, None] = {}
    for item in value:
        if not isinstance(item, str):
            continue
        trimmed = item.strip()
        if trimmed:
            tags[trimmed] = None
    return list(tags)


def normalize_slug(value: Any) -> str | None:
    """Trim a slug and collapse empty path segments (``" /a//b/ "`` → ``"a/b"``)."""
    if not isinstance(value, str):
        return None
    segments = [segment.strip() for segment in value.strip().split("/")]
    normalized = "/".join(segment for segment in segments if segment)
    return normalized or None


# ── Placeholder → tag registry ──────────────────────────────


class PlaceholderTagRegistry:
    """Declared mapping of placeholder names to the domain tags they read."""

    def __init__(self) -> None:
        self._tags: dict[str, tuple[str, ...]] = {}

    def register(self, name: str, *tags: str) -> None:
        normalized = normalize_tag_list(tags)
        if not normalized:
            raise ValueError(f"Placeholder {name!r} must map to at least one tag")
        self._tags[name] = tuple(normalized)

    def tags_for(self, name: str) -> tuple[str, ...]:
        return self._tags.get(name, ())

    def validate(self, placeholder_names: Iterable[str]) -> None:
        """Raise if any resolvable placeholder has no tag mapping."""
        missing = [name for name in placeholder_names if name not in self._tags]
        if missing:
            raise UnmappedPlaceholderError(missing)


def default_placeholder_tags() -> PlaceholderTagRegistry:
    """Tag mappings for every built-in placeholder."""
    registry = PlaceholderTagRegistry()
    for name in (
        "posts",
        "postsList",
        "postsListPage",
        "postsListTotalPage",
        "postsListFirstPage",
        "postsListLastPage",
        "firstPublishAt",
        "lastPublishDays",
    ):
        registry.register(name, "posts")
    for name in ("categories", "rootCategories", "childCategories", "categoriesList"):
        registry.register(name, "categories")
    for name in _CATEGORY_SCOPED:
        registry.register(name, "categories", "posts")
    for name in ("tags", "tagsList"):
        registry.register(name, "tags")
    for name in _TAG_SCOPED:
        registry.register(name, "tags", "posts")
    for name in ("projects", "projectsList"):
        registry.register(name, "projects")
    for name in ("friends", "friendsList"):
        registry.register(name, "friend-links")
    registry.register("pageInfo", "categories", "tags")
    # Derived from the newest post date, shown alongside category stats.
    registry.register("lastUpdatedDays", "categories", "tags", "posts")
    return registry


def _scoped_tags(
    name: str,
    params: dict[str, str],
    page_context: dict[str, Any] | None,
) -> list[str]:
    context = page_context or {}
    raw_slug = params.get("slug")
    # "{key}" values reference the runtime context, as in the interpolators.
    if raw_slug and raw_slug.startswith("{") and raw_slug.endswith("}"):
        raw_slug = context.get(raw_slug[1:-1])
    slug = normalize_slug(raw_slug) or normalize_slug(context.get("slug"))
    if name in _CATEGORY_SCOPED:
        return [f"categories/{slug}"] if slug else []
    if name in _TAG_SCOPED:
        return [f"tags/{slug}"] if slug else []
    if name == "pageInfo":
        page_type = params.get("page", "")
        if page_type == "category-detail" and slug:
            return [f"categories/{slug}"]
        if page_type == "tag-detail" and slug:
            return [f"tags/{slug}"]
        # Index pages list every item, so they also depend on the whole domain.
        if page_type == "category-index":
            return ["categories/list", "categories"]
        if page_type == "tag-index":
            return ["tags/list", "tags"]
        if page_type == "posts-index":
            return ["posts/list", "posts"]
    return []


# ── Deriver ─────────────────────────────────────────────────


class CacheTagDeriver:
    """Computes invalidation tags for blocks and pages."""

    def __init__(
        self,
        registry: BlockRegistry,
        placeholder_tags: PlaceholderTagRegistry | None = None,
    ) -> None:
        self.registry = registry
        self.placeholder_tags = placeholder_tags or default_placeholder_tags()

    def block_tags(
        self,
        block: RuntimeBlockInput,
        page_id: str | None = None,
        page_context: dict[str, Any] | None = None,
    ) -> list[str]:
        """Tags for one block's cached resolution."""
        tags: dict[str, None] = {}
        if page_id:
            tags[page_tag(page_id)] = None
            tags[block_tag(page_id, block.id)] = None
        tags.update(dict.fromkeys(self.dependency_tags(block, page_context)))
        return list(tags)

    def page_tags(
        self,
        page_id: str,
        blocks: Sequence[RuntimeBlockInput],
        page_context: dict[str, Any] | None = None,
    ) -> list[str]:
        """Union of every block's dependency tags, seeded with the page tag."""
        tags: dict[str, None] = {page_tag(page_id): None}
        for block in blocks:
            tags.update(dict.fromkeys(self.dependency_tags(block, page_context)))
        return list(tags)

    def dependency_tags(
        self,
        block: RuntimeBlockInput,
        page_context: dict[str, Any] | None = None,
    ) -> list[str]:
        """Data-domain tags a block depends on, excluding identity tags."""
        definition = self.registry.get(block.block_type or DEFAULT_BLOCK_TYPE)
        tags: dict[str, None] = {}
        if definition is not None:
            tags.update(dict.fromkeys(self._definition_tags(definition, block, page_context)))
        tags.update(dict.fromkeys(self._placeholder_tags(block.content, page_context)))
        if definition is not None and definition.capabilities.media:
            tags[PHOTOS_TAG] = None
        return list(tags)

    def _definition_tags(
        self,
        definition: BlockDefinition,
        block: RuntimeBlockInput,
        page_context: dict[str, Any] | None,
    ) -> list[str]:
        resolver = definition.cache_tags
        if resolver is None:
            return []
        try:
            if callable(resolver):
                resolved = resolver(
                    CacheTagInput(
                        block=block,
                        content=block.content,
                        context=normalize_runtime_context(page_context),
                    )
                )
            else:
                resolved = resolver
            return normalize_tag_list(resolved)
        except Exception:
            logger.exception(
                "Failed to resolve cache tags for block type %s", definition.block_type
            )
            return []

    def _placeholder_tags(self, content: Any, page_context: dict[str, Any] | None) -> list[str]:
        tags: dict[str, None] = {}
        for placeholder in extract_parsed_placeholders_from_value(content):
            tags.update(dict.fromkeys(self.placeholder_tags.tags_for(placeholder.name)))
            tags.update(
                dict.fromkeys(_scoped_tags(placeholder.name, placeholder.params, page_context))
            )
        return list(tags)
