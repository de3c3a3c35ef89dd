"""Placeholder parser for block content.

Placeholders are ``{name}`` or ``{name|key1=value1&key2=value2}`` tokens
embedded anywhere in a block's (nested) content.  A parameter value may
itself reference a context value, e.g. ``{tagPosts|slug={slug}}``.

Examples::

    parse_placeholder("tagPosts|slug=foo&page=2")
    # → ParsedPlaceholder(name="tagPosts", params={"slug": "foo", "page": "2"},
    #                     raw="{tagPosts|slug=foo&page=2}")

    extract_placeholder_names_from_value({"title": "{posts} posts", "items": ["{tags}"]})
    # → ["posts", "tags"]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

_NAME_RE = re.compile(r"[^{}|&=]+")

# Outer token: a name, optionally followed by "|" and a parameter string.
# Parameter values may contain one level of "{ref}" context references.
_TOKEN_RE = re.compile(r"\{([^{}|&=]+(?:\|(?:[^{}]|\{[^{}|&=]+\})*)?)\}")


@dataclass(frozen=True)
class ParsedPlaceholder:
    """One ``{name|params}`` occurrence."""

    name: str
    params: dict[str, str] = field(default_factory=dict)
    raw: str = ""


def _parse_params(param_string: str) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in param_string.split("&"):
        key, sep, value = pair.partition("=")
        key = key.strip()
        value = value.strip()
        if not sep or not value or not _NAME_RE.fullmatch(key):
            continue
        params[key] = value
    return params


def parse_placeholder(token: str) -> ParsedPlaceholder | None:
    """Parse the inside of one placeholder token (without the braces).

    Returns ``None`` when the name is malformed.  Unparsable parameter pairs
    are dropped rather than reported.
    """
    name, sep, param_string = token.partition("|")
    name = name.strip()
    if not _NAME_RE.fullmatch(name):
        return None
    params = _parse_params(param_string) if sep else {}
    return ParsedPlaceholder(name=name, params=params, raw=f"{{{token}}}")


def extract_placeholders(text: str) -> list[ParsedPlaceholder]:
    """Return every placeholder occurrence in *text*, in order."""
    if not text or "{" not in text:
        return []
    found: list[ParsedPlaceholder] = []
    for match in _TOKEN_RE.finditer(text):
        parsed = parse_placeholder(match.group(1))
        if parsed is not None:
            found.append(parsed)
    return found


def extract_parsed_placeholders_from_value(value: Any) -> list[ParsedPlaceholder]:
    """Recursively collect placeholders from any string leaf of *value*.

    Every occurrence is returned, duplicates included.
    """
    found: list[ParsedPlaceholder] = []
    _collect(value, found)
    return found


def extract_placeholder_names_from_value(value: Any) -> list[str]:
    """Recursively collect distinct placeholder names (first-seen order)."""
    names = dict.fromkeys(p.name for p in extract_parsed_placeholders_from_value(value))
    return list(names)


def _collect(value: Any, found: list[ParsedPlaceholder]) -> None:
    if isinstance(value, str):
        found.extend(extract_placeholders(value))
    elif isinstance(value, dict):
        for item in value.values():
            _collect(item, found)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect(item, found)
