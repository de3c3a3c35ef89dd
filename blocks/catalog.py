"""Built-in block catalog — definitions registered at startup.

Adding a new block type requires:
  1. Renderer: implement the block's view (outside this service)
  2. Backend: add a ``BlockDefinition`` here; give it ``fetch_business`` or
     ship ``blocks/collection/<type>/fetcher.py``
  3. Any new placeholder it introduces needs a cache tag mapping
     (checked at startup)
"""

from __future__ import annotations

from typing import Any

from models.block import BlockCapabilities
from runtime.registry import BlockDefinition, BlockRegistry, BusinessFetchInput, CacheTagInput
from services.content_source import get_content_source

MAX_LIST_LIMIT = 50


def _clamp_limit(value: Any, default: int) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return min(max(limit, 1), MAX_LIST_LIMIT)


# ── recent-posts ────────────────────────────────────────────


def normalize_recent_posts(content: Any) -> dict[str, Any]:
    data = dict(content or {})
    data["title"] = str(data.get("title") or "")
    data["limit"] = _clamp_limit(data.get("limit"), 5)
    return data


# ── friend-links ────────────────────────────────────────────


async def fetch_friend_links(payload: BusinessFetchInput) -> dict[str, Any]:
    links = await get_content_source().list_friend_links()
    if payload.content.get("shuffle") is False:
        links = sorted(links, key=lambda link: link.get("name", ""))
    return {"links": links}


# ── projects-list ───────────────────────────────────────────


def normalize_projects_list(content: Any) -> dict[str, Any]:
    data = dict(content or {})
    data["limit"] = _clamp_limit(data.get("limit"), 6)
    data["featured"] = [s for s in data.get("featured") or [] if isinstance(s, str)]
    return data


async def fetch_projects(payload: BusinessFetchInput) -> dict[str, Any]:
    projects = await get_content_source().list_projects()
    featured = payload.content.get("featured") or []
    if featured:
        projects = [p for p in projects if p.get("slug") in featured]
    return {"projects": projects[: payload.content.get("limit", 6)]}


def projects_cache_tags(payload: CacheTagInput) -> list[str]:
    featured = (payload.content or {}).get("featured") or []
    return ["projects", *(f"projects/{slug}" for slug in featured)]


# ── Registration ────────────────────────────────────────────

BUILTIN_BLOCKS: tuple[BlockDefinition, ...] = (
    BlockDefinition(
        block_type="default",
        capabilities=BlockCapabilities(placeholders={"enabled": True, "with_context": True}),
        description="Free-form text block with placeholders",
    ),
    BlockDefinition(
        block_type="quote",
        capabilities=BlockCapabilities(placeholders={"enabled": True}, context="none"),
        description="Quotation with attribution",
    ),
    BlockDefinition(
        block_type="hero-gallery",
        capabilities=BlockCapabilities(
            placeholders={"enabled": True, "with_context": True},
            media=["background", {"path": "images", "multiple": True}],
        ),
        description="Hero banner with a background image and a gallery strip",
    ),
    BlockDefinition(
        block_type="recent-posts",
        capabilities=BlockCapabilities(placeholders={"enabled": True}),
        normalize_content=normalize_recent_posts,
        cache_tags=("posts",),
        description="Latest posts (business data loaded from blocks.collection)",
    ),
    BlockDefinition(
        block_type="friend-links",
        capabilities=BlockCapabilities(context="none"),
        fetch_business=fetch_friend_links,
        cache_tags=("friend-links",),
        description="Friend link grid",
    ),
    BlockDefinition(
        block_type="projects-list",
        capabilities=BlockCapabilities(placeholders={"enabled": True}),
        normalize_content=normalize_projects_list,
        fetch_business=fetch_projects,
        cache_tags=projects_cache_tags,
        description="Project cards, optionally limited to featured slugs",
    ),
)


def register_builtin_blocks(registry: BlockRegistry) -> BlockRegistry:
    for definition in BUILTIN_BLOCKS:
        registry.register(definition)
    return registry
