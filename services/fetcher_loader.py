"""Dynamic business-fetcher loader.

Block types without an attached ``fetch_business`` hook may ship a fetcher
module instead::

    blocks/collection/<block_type_in_snake_case>/fetcher.py   → async def fetch(block): ...

``ModuleFetcherLoader.load("recent-posts")`` imports
``blocks.collection.recent_posts.fetcher`` and returns its ``fetch``.
"""

from __future__ import annotations

import importlib
import logging
import re
from typing import Any, Callable

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATOR_RE = re.compile(r"[^a-zA-Z0-9]+")

_MISSING = object()


def block_type_to_module(block_type: str) -> str:
    """``"recent-posts"`` / ``"RecentPosts"`` → ``"recent_posts"``."""
    name = _CAMEL_BOUNDARY_RE.sub("_", block_type.strip())
    name = _SEPARATOR_RE.sub("_", name).strip("_")
    return name.lower()


class ModuleFetcherLoader:
    """Loads ``fetch`` callables from ``<package>.<block_type>.fetcher`` modules."""

    def __init__(self, package: str = "blocks.collection") -> None:
        self.package = package
        self._cache: dict[str, Any] = {}

    def load(self, block_type: str) -> Callable[[dict[str, Any]], Any] | None:
        cached = self._cache.get(block_type, _MISSING)
        if cached is not _MISSING:
            return cached

        module_name = block_type_to_module(block_type)
        fetcher = None
        if module_name:
            module_path = f"{self.package}.{module_name}.fetcher"
            try:
                module = importlib.import_module(module_path)
            except ModuleNotFoundError as exc:
                # Only "this block has no fetcher module" is expected; a
                # missing import inside an existing fetcher must surface.
                if exc.name is None or not (
                    module_path == exc.name or module_path.startswith(f"{exc.name}.")
                ):
                    raise
                logger.debug("No business fetcher for block type %s", block_type)
            else:
                fetcher = getattr(module, "fetch", None)
                if fetcher is not None and not callable(fetcher):
                    logger.warning("%s.fetch is not callable; ignoring", module_path)
                    fetcher = None

        self._cache[block_type] = fetcher
        return fetcher
