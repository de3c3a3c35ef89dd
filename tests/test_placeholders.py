"""Tests for the placeholder parser."""

from __future__ import annotations

import pytest

from runtime.placeholders import (
    ParsedPlaceholder,
    extract_parsed_placeholders_from_value,
    extract_placeholder_names_from_value,
    extract_placeholders,
    parse_placeholder,
)


class TestParsePlaceholder:
    def test_bare_name(self):
        parsed = parse_placeholder("posts")
        assert parsed == ParsedPlaceholder(name="posts", params={}, raw="{posts}")

    def test_with_params(self):
        parsed = parse_placeholder("tagPosts|slug=foo&page=2")
        assert parsed.name == "tagPosts"
        assert parsed.params == {"slug": "foo", "page": "2"}
        assert parsed.raw == "{tagPosts|slug=foo&page=2}"

    def test_whitespace_trimmed(self):
        parsed = parse_placeholder(" postsList | page = 2 ")
        assert parsed.name == "postsList"
        assert parsed.params == {"page": "2"}

    def test_empty_name_rejected(self):
        assert parse_placeholder("") is None
        assert parse_placeholder("  |page=2") is None

    def test_malformed_pairs_dropped(self):
        parsed = parse_placeholder("postsList|page&size=&=3&pageSize=5")
        assert parsed.params == {"pageSize": "5"}

    def test_context_reference_value(self):
        parsed = parse_placeholder("tagPosts|slug={slug}")
        assert parsed.params == {"slug": "{slug}"}


class TestExtractPlaceholders:
    @pytest.mark.parametrize(
        "name, params",
        [
            ("posts", {}),
            ("postsList", {"page": "2"}),
            ("categoryPosts", {"slug": "tech", "pageSize": "5"}),
        ],
    )
    def test_serialized_token_round_trips(self, name, params):
        param_string = "&".join(f"{k}={v}" for k, v in params.items())
        token = f"{{{name}|{param_string}}}" if params else f"{{{name}}}"
        [parsed] = extract_placeholders(f"before {token} after")
        assert parsed.name == name
        assert parsed.params == params

    def test_multiple_in_order(self):
        found = extract_placeholders("{posts} posts in {categories} categories")
        assert [p.name for p in found] == ["posts", "categories"]

    def test_plain_text(self):
        assert extract_placeholders("no tokens here") == []
        assert extract_placeholders("") == []

    def test_unbalanced_braces_ignored(self):
        assert extract_placeholders("{posts") == []
        assert [p.name for p in extract_placeholders("{{posts}")] == ["posts"]

    def test_nested_reference_is_one_token(self):
        [parsed] = extract_placeholders("{tagPosts|slug={slug}&page=1}")
        assert parsed.name == "tagPosts"
        assert parsed.params == {"slug": "{slug}", "page": "1"}


class TestExtractFromValue:
    def test_recurses_into_maps_and_lists(self):
        content = {
            "title": "{posts} posts",
            "items": ["{tags}", {"nested": "{projects}"}],
            "count": 3,
            "flag": None,
        }
        names = extract_placeholder_names_from_value(content)
        assert names == ["posts", "tags", "projects"]

    def test_duplicates_kept_in_parsed(self):
        content = ["{posts}", "{posts|page=2}"]
        parsed = extract_parsed_placeholders_from_value(content)
        assert len(parsed) == 2
        assert parsed[1].params == {"page": "2"}
        assert extract_placeholder_names_from_value(content) == ["posts"]

    def test_scalars(self):
        assert extract_placeholder_names_from_value(None) == []
        assert extract_placeholder_names_from_value(42) == []
        assert extract_placeholder_names_from_value("{friends}") == ["friends"]
