"""Placeholder interpolators — live values for ``{placeholder}`` tokens.

Each interpolator is an async function ``(params) -> dict`` that serves one
primary placeholder plus any sub-field placeholders it fills in, e.g. the
``categories`` interpolator also answers ``{rootCategories}`` and
``{childCategories}``.

``InterpolatorPlaceholderProvider`` is the placeholder-value provider used by
the pipeline:

1. Parse every placeholder in the block content.
2. Group them by interpolator; parameter values written as ``{key}`` are
   taken from the runtime context.
3. With ``with_context``, merge ``slug`` / ``page`` / ``pageSize`` / ``url``
   from the context into params the author did not set.
4. Run the interpolators concurrently and merge their results.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable

from runtime.placeholders import extract_parsed_placeholders_from_value
from services.content_source import ContentSource, post_summary

logger = logging.getLogger(__name__)

Interpolator = Callable[[dict[str, str]], Awaitable[dict[str, Any]]]

# Context keys appended to placeholder params when the block asks for context.
CONTEXT_PARAM_KEYS = ("slug", "page", "pageSize", "url")

DEFAULT_PAGE_SIZE = 10


class InterpolatorRegistry:
    """Maps placeholder names to the interpolator that serves them."""

    def __init__(self) -> None:
        self._interpolators: dict[str, Interpolator] = {}
        self._owners: dict[str, str] = {}

    def register(self, name: str, interpolator: Interpolator, fields: Iterable[str] = ()) -> None:
        self._interpolators[name] = interpolator
        for placeholder in (name, *fields):
            self._owners[placeholder] = name

    def owner_of(self, placeholder: str) -> str | None:
        return self._owners.get(placeholder)

    def get(self, name: str) -> Interpolator | None:
        return self._interpolators.get(name)

    def placeholder_names(self) -> list[str]:
        """Every placeholder name some interpolator can fill in."""
        return list(self._owners)


class InterpolatorPlaceholderProvider:
    """Placeholder-value provider backed by an :class:`InterpolatorRegistry`."""

    def __init__(self, registry: InterpolatorRegistry) -> None:
        self.registry = registry

    async def resolve(
        self,
        content: Any,
        context: dict[str, Any],
        enabled: bool,
        with_context: bool,
    ) -> dict[str, Any]:
        if not enabled or not content:
            return {}

        groups: dict[str, dict[str, str]] = {}
        for placeholder in extract_parsed_placeholders_from_value(content):
            owner = self.registry.owner_of(placeholder.name)
            if owner is None:
                continue
            params = _resolve_param_refs(placeholder.params, context)
            # First parameterized occurrence wins for a shared interpolator.
            if not groups.get(owner):
                groups[owner] = params

        if not groups:
            return {}

        if with_context:
            for params in groups.values():
                _merge_context_params(params, context)

        results = await asyncio.gather(
            *(self._run(name, params) for name, params in groups.items())
        )
        merged: dict[str, Any] = {}
        for result in results:
            merged.update(result)
        return merged

    async def _run(self, name: str, params: dict[str, str]) -> dict[str, Any]:
        interpolator = self.registry.get(name)
        if interpolator is None:
            return {}
        try:
            return dict(await interpolator(params) or {})
        except Exception:
            logger.exception("Interpolator failed for placeholder {%s}", name)
            return {}


def _resolve_param_refs(params: dict[str, str], context: dict[str, Any]) -> dict[str, str]:
    resolved: dict[str, str] = {}
    for key, value in params.items():
        if value.startswith("{") and value.endswith("}"):
            actual = context.get(value[1:-1])
            if actual is not None:
                resolved[key] = str(actual)
        else:
            resolved[key] = value
    return resolved


def _merge_context_params(params: dict[str, str], context: dict[str, Any]) -> None:
    for key in CONTEXT_PARAM_KEYS:
        value = context.get(key)
        if value is not None and value != "" and not params.get(key):
            params[key] = str(value)


# ── Built-in interpolators ───────────────────────────────────


def _int_param(params: dict[str, str], key: str, default: int) -> int:
    try:
        return max(1, int(params.get(key, default)))
    except (TypeError, ValueError):
        return default


def _paginate(items: list[dict], params: dict[str, str]) -> dict[str, Any]:
    page_size = _int_param(params, "pageSize", DEFAULT_PAGE_SIZE)
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(_int_param(params, "page", 1), total_pages)
    start = (page - 1) * page_size
    window = items[start:start + page_size]
    return {
        "items": window,
        "page": page,
        "total_pages": total_pages,
        "first": start + 1 if window else 0,
        "last": start + len(window),
    }


def _days_since(iso_timestamp: str | None) -> int | None:
    if not iso_timestamp:
        return None
    then = datetime.fromisoformat(iso_timestamp)
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    return (datetime.now(timezone.utc) - then).days


def _in_category(post: dict[str, Any], slug: str) -> bool:
    category = post.get("category") or ""
    return category == slug or category.startswith(f"{slug}/")


def build_default_interpolators(source: ContentSource) -> InterpolatorRegistry:
    """Register the built-in interpolators over *source*."""
    registry = InterpolatorRegistry()

    async def posts(params: dict[str, str]) -> dict[str, Any]:
        return {"posts": len(await source.list_posts())}

    async def posts_list(params: dict[str, str]) -> dict[str, Any]:
        all_posts = await source.list_posts()
        window = _paginate(all_posts, params)
        dates = [p["published_at"] for p in all_posts if p.get("published_at")]
        return {
            "postsList": [post_summary(p) for p in window["items"]],
            "postsListPage": window["page"],
            "postsListTotalPage": window["total_pages"],
            "postsListFirstPage": window["first"],
            "postsListLastPage": window["last"],
            "firstPublishAt": min(dates)[:10] if dates else None,
            "lastPublishDays": _days_since(max(dates)) if dates else None,
        }

    async def categories(params: dict[str, str]) -> dict[str, Any]:
        items = await source.list_categories()
        roots = [c for c in items if not c.get("parent")]
        dates = [p["published_at"] for p in await source.list_posts() if p.get("published_at")]
        return {
            "categories": len(items),
            "rootCategories": len(roots),
            "childCategories": len(items) - len(roots),
            "categoriesList": [{"name": c["name"], "slug": c["slug"]} for c in items],
            "lastUpdatedDays": _days_since(max(dates)) if dates else None,
        }

    async def category_posts(params: dict[str, str]) -> dict[str, Any]:
        slug = params.get("slug")
        category = next(
            (c for c in await source.list_categories() if c["slug"] == slug), None
        )
        if category is None:
            return {}
        subcategories = [
            c for c in await source.list_categories() if c.get("parent") == category["slug"]
        ]
        matched = [p for p in await source.list_posts() if _in_category(p, category["slug"])]
        window = _paginate(matched, params)
        return {
            "category": category["name"],
            "categoryName": category["name"],
            "categoryDescription": category.get("description"),
            "categorySubcategoryCount": len(subcategories),
            "categoryPostCount": len(matched),
            "categoryPage": window["page"],
            "categoryTotalPage": window["total_pages"],
            "categoryFirstPage": window["first"],
            "categoryLastPage": window["last"],
            "categoryPosts": [post_summary(p) for p in window["items"]],
        }

    async def tags(params: dict[str, str]) -> dict[str, Any]:
        items = await source.list_tags()
        return {
            "tags": len(items),
            "tagsList": [{"name": t["name"], "slug": t["slug"]} for t in items],
        }

    async def tag_posts(params: dict[str, str]) -> dict[str, Any]:
        slug = params.get("slug")
        tag = next((t for t in await source.list_tags() if t["slug"] == slug), None)
        if tag is None:
            return {}
        matched = [p for p in await source.list_posts() if slug in (p.get("tags") or [])]
        window = _paginate(matched, params)
        return {
            "tag": tag["name"],
            "tagName": tag["name"],
            "tagDescription": tag.get("description"),
            "tagPostCount": len(matched),
            "tagPage": window["page"],
            "tagTotalPage": window["total_pages"],
            "tagFirstPage": window["first"],
            "tagLastPage": window["last"],
            "tagPosts": [post_summary(p) for p in window["items"]],
        }

    async def projects(params: dict[str, str]) -> dict[str, Any]:
        items = await source.list_projects()
        return {"projects": len(items), "projectsList": items}

    async def friends(params: dict[str, str]) -> dict[str, Any]:
        items = await source.list_friend_links()
        return {"friends": len(items), "friendsList": items}

    registry.register("posts", posts)
    registry.register(
        "postsList",
        posts_list,
        fields=(
            "postsListPage",
            "postsListTotalPage",
            "postsListFirstPage",
            "postsListLastPage",
            "firstPublishAt",
            "lastPublishDays",
        ),
    )
    registry.register(
        "categories",
        categories,
        fields=("rootCategories", "childCategories", "categoriesList", "lastUpdatedDays"),
    )
    registry.register(
        "categoryPosts",
        category_posts,
        fields=(
            "category",
            "categoryName",
            "categoryDescription",
            "categorySubcategoryCount",
            "categoryPostCount",
            "categoryPage",
            "categoryTotalPage",
            "categoryFirstPage",
            "categoryLastPage",
        ),
    )
    registry.register("tags", tags, fields=("tagsList",))
    registry.register(
        "tagPosts",
        tag_posts,
        fields=(
            "tag",
            "tagName",
            "tagDescription",
            "tagPostCount",
            "tagPage",
            "tagTotalPage",
            "tagFirstPage",
            "tagLastPage",
        ),
    )
    registry.register("projects", projects, fields=("projectsList",))
    registry.register("friends", friends, fields=("friendsList",))
    return registry
