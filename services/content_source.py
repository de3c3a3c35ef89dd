"""Content source — read access to the site data that blocks depend on.

Interpolators and business fetchers read posts, categories, tags, projects
and friend links through this interface, so the block runtime never talks
to a database directly.  ``InMemoryContentSource`` serves mock data.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

from services import mock_data

logger = logging.getLogger(__name__)


def post_summary(post: dict[str, Any]) -> dict[str, Any]:
    """Public (camelCase) view of a post for block payloads."""
    return {
        "title": post.get("title"),
        "slug": post.get("slug"),
        "excerpt": post.get("excerpt"),
        "publishedAt": post.get("published_at"),
        "category": post.get("category"),
        "tags": list(post.get("tags") or []),
    }


class ContentSource(ABC):
    """Abstract content source — implement for different backends."""

    @abstractmethod
    async def list_posts(self) -> list[dict[str, Any]]:
        """All published posts, newest first."""
        ...

    @abstractmethod
    async def list_categories(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def list_tags(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def list_projects(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def list_friend_links(self) -> list[dict[str, Any]]:
        ...


class InMemoryContentSource(ContentSource):
    """Content source backed by plain lists (mock data by default)."""

    def __init__(
        self,
        posts: list[dict[str, Any]] | None = None,
        categories: list[dict[str, Any]] | None = None,
        tags: list[dict[str, Any]] | None = None,
        projects: list[dict[str, Any]] | None = None,
        friend_links: list[dict[str, Any]] | None = None,
    ) -> None:
        self._posts = posts if posts is not None else copy.deepcopy(mock_data.POSTS)
        self._categories = (
            categories if categories is not None else copy.deepcopy(mock_data.CATEGORIES)
        )
        self._tags = tags if tags is not None else copy.deepcopy(mock_data.TAGS)
        self._projects = projects if projects is not None else copy.deepcopy(mock_data.PROJECTS)
        self._friend_links = (
            friend_links if friend_links is not None else copy.deepcopy(mock_data.FRIEND_LINKS)
        )

    async def list_posts(self) -> list[dict[str, Any]]:
        return sorted(self._posts, key=lambda p: p.get("published_at") or "", reverse=True)

    async def list_categories(self) -> list[dict[str, Any]]:
        return list(self._categories)

    async def list_tags(self) -> list[dict[str, Any]]:
        return list(self._tags)

    async def list_projects(self) -> list[dict[str, Any]]:
        return list(self._projects)

    async def list_friend_links(self) -> list[dict[str, Any]]:
        return list(self._friend_links)


# ── Module-level Singleton ───────────────────────────────────

_source: ContentSource | None = None


def get_content_source() -> ContentSource:
    """Get the singleton content source instance."""
    global _source
    if _source is None:
        _source = InMemoryContentSource()
        logger.info("Initialized InMemoryContentSource")
    return _source


def set_content_source(source: ContentSource) -> None:
    """Replace the process-wide content source (startup wiring and tests)."""
    global _source
    _source = source
