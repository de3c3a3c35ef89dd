"""Business fetcher for the ``recent-posts`` block (loaded by block type)."""

from __future__ import annotations

from typing import Any

from services.content_source import get_content_source, post_summary


async def fetch(block: dict[str, Any]) -> dict[str, Any]:
    """Latest posts, optionally restricted to one category.

    ``block`` is the flat legacy shape: the block fields plus the normalized
    ``content`` and the runtime context under ``data``.
    """
    content = block.get("content") or {}
    limit = content.get("limit", 5)
    category = content.get("category")

    posts = await get_content_source().list_posts()
    if category:
        posts = [p for p in posts if p.get("category") == category]
    return {"posts": [post_summary(p) for p in posts[:limit]], "total": len(posts)}
