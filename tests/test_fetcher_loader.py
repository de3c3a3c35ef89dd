"""Tests for the dynamic business-fetcher loader and built-in fetchers."""

from __future__ import annotations

import pytest

from blocks.catalog import (
    fetch_friend_links,
    fetch_projects,
    normalize_projects_list,
    normalize_recent_posts,
    projects_cache_tags,
)
from models.block import RuntimeBlockInput
from runtime.registry import BusinessFetchInput, CacheTagInput
from services.fetcher_loader import ModuleFetcherLoader, block_type_to_module


class TestBlockTypeToModule:
    @pytest.mark.parametrize(
        "block_type, expected",
        [
            ("recent-posts", "recent_posts"),
            ("RecentPosts", "recent_posts"),
            ("recent_posts", "recent_posts"),
            (" hero gallery ", "hero_gallery"),
        ],
    )
    def test_conversion(self, block_type, expected):
        assert block_type_to_module(block_type) == expected


class TestModuleFetcherLoader:
    def test_loads_collection_fetcher(self):
        loader = ModuleFetcherLoader()
        fetcher = loader.load("recent-posts")
        assert callable(fetcher)
        assert loader.load("RecentPosts") is fetcher

    def test_missing_module_is_none(self):
        loader = ModuleFetcherLoader()
        assert loader.load("no-such-block") is None
        assert loader.load("no-such-block") is None

    def test_missing_package_is_none(self):
        assert ModuleFetcherLoader("not_a_package.blocks").load("recent-posts") is None

    @pytest.mark.asyncio
    async def test_recent_posts_fetcher(self, content_source):
        fetcher = ModuleFetcherLoader().load("recent-posts")
        result = await fetcher({"id": 1, "content": {"limit": 2}, "data": {}})
        assert result["total"] == 4
        assert [p["slug"] for p in result["posts"]] == ["photo-walk", "cache-tags"]

    @pytest.mark.asyncio
    async def test_recent_posts_category_filter(self, content_source):
        fetcher = ModuleFetcherLoader().load("recent-posts")
        result = await fetcher({"id": 1, "content": {"limit": 5, "category": "life"}})
        assert [p["slug"] for p in result["posts"]] == ["photo-walk"]


class TestCatalogHooks:
    def test_normalize_recent_posts_clamps(self):
        assert normalize_recent_posts({"limit": "500"})["limit"] == 50
        assert normalize_recent_posts(None) == {"title": "", "limit": 5}

    def test_normalize_projects_list(self):
        data = normalize_projects_list({"featured": ["atlas", 3, None]})
        assert data == {"featured": ["atlas"], "limit": 6}

    def test_projects_cache_tags(self):
        block = RuntimeBlockInput(id=1, block_type="projects-list")
        tags = projects_cache_tags(CacheTagInput(block=block, content={"featured": ["a"]}, context={}))
        assert tags == ["projects", "projects/a"]

    @pytest.mark.asyncio
    async def test_fetch_projects_featured(self, content_source):
        block = RuntimeBlockInput(id=1, block_type="projects-list")
        content = normalize_projects_list({"featured": ["photo-archive"]})
        result = await fetch_projects(BusinessFetchInput(block=block, content=content, context={}))
        assert [p["slug"] for p in result["projects"]] == ["photo-archive"]

    @pytest.mark.asyncio
    async def test_fetch_friend_links_sorted(self, content_source):
        block = RuntimeBlockInput(id=1, block_type="friend-links")
        result = await fetch_friend_links(
            BusinessFetchInput(block=block, content={"shuffle": False}, context={})
        )
        assert [link["name"] for link in result["links"]] == ["Another Site", "Example Blog"]
