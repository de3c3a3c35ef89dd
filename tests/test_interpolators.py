"""Tests for the built-in placeholder interpolators."""

from __future__ import annotations

import pytest

from services.content_source import InMemoryContentSource
from services.interpolators import (
    InterpolatorPlaceholderProvider,
    InterpolatorRegistry,
    build_default_interpolators,
)


@pytest.fixture
def provider() -> InterpolatorPlaceholderProvider:
    return InterpolatorPlaceholderProvider(build_default_interpolators(InMemoryContentSource()))


class TestInterpolatorRegistry:
    def test_fields_owned_by_primary(self):
        registry = build_default_interpolators(InMemoryContentSource())
        assert registry.owner_of("rootCategories") == "categories"
        assert registry.owner_of("tagName") == "tagPosts"
        assert registry.owner_of("weather") is None

    def test_placeholder_names_include_fields(self):
        names = build_default_interpolators(InMemoryContentSource()).placeholder_names()
        assert {"posts", "postsList", "postsListPage", "friendsList"} <= set(names)


class TestProvider:
    @pytest.mark.asyncio
    async def test_disabled_returns_empty(self, provider):
        assert await provider.resolve("{posts}", {}, enabled=False, with_context=False) == {}

    @pytest.mark.asyncio
    async def test_counts(self, provider):
        values = await provider.resolve(
            {"title": "{posts} posts, {categories} categories, {tags} tags"},
            {},
            enabled=True,
            with_context=False,
        )
        assert values["posts"] == 4
        assert values["categories"] == 4
        assert values["rootCategories"] == 3
        assert values["childCategories"] == 1
        assert values["tags"] == 5

    @pytest.mark.asyncio
    async def test_unknown_placeholder_ignored(self, provider):
        assert await provider.resolve("{weather}", {}, enabled=True, with_context=False) == {}

    @pytest.mark.asyncio
    async def test_posts_list_pagination(self, provider):
        values = await provider.resolve(
            ["{postsList|page=2&pageSize=2}", "{postsListTotalPage}"],
            {},
            enabled=True,
            with_context=False,
        )
        assert [p["slug"] for p in values["postsList"]] == ["async-python", "hello-world"]
        assert values["postsListPage"] == 2
        assert values["postsListTotalPage"] == 2
        assert values["postsListFirstPage"] == 3
        assert values["postsListLastPage"] == 4
        assert values["firstPublishAt"] == "2024-01-05"

    @pytest.mark.asyncio
    async def test_context_merged_when_requested(self, provider):
        values = await provider.resolve(
            "{categoryPosts}", {"slug": "tech"}, enabled=True, with_context=True
        )
        assert values["categoryName"] == "Tech"
        assert values["categoryPostCount"] == 2
        assert values["categorySubcategoryCount"] == 1

    @pytest.mark.asyncio
    async def test_context_not_merged_without_flag(self, provider):
        values = await provider.resolve(
            "{categoryPosts}", {"slug": "tech"}, enabled=True, with_context=False
        )
        assert values == {}

    @pytest.mark.asyncio
    async def test_param_reference_from_context(self, provider):
        values = await provider.resolve(
            "{tagPosts|slug={slug}}", {"slug": "python"}, enabled=True, with_context=False
        )
        assert values["tagName"] == "Python"
        assert {p["slug"] for p in values["tagPosts"]} == {"async-python", "cache-tags"}

    @pytest.mark.asyncio
    async def test_failing_interpolator_yields_nothing(self):
        async def broken(params):
            raise RuntimeError("db down")

        async def fine(params):
            return {"fine": 1}

        registry = InterpolatorRegistry()
        registry.register("broken", broken)
        registry.register("fine", fine)
        provider = InterpolatorPlaceholderProvider(registry)

        values = await provider.resolve("{broken} {fine}", {}, enabled=True, with_context=False)
        assert values == {"fine": 1}
