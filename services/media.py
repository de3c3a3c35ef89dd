"""Media metadata resolution for block media slots.

A block type declares media slots (content paths holding image URLs); the
resolver batch-queries metadata for every URL found in those slots::

    resolver = MediaResolver(InMemoryMediaLookup(mock_data.MEDIA_FILES))
    await resolver.resolve({"image": "/p/a1b2c3"}, [MediaSlot(path="image")])
    # → {"image": {"url": "/p/a1b2c3", "width": 1600, "height": 900, "blur": "..."}}

URLs unknown to the lookup keep their ``url`` with ``None`` metadata.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

from models.block import MediaSlot

logger = logging.getLogger(__name__)


class MediaLookup(ABC):
    """Batch metadata query against the media store."""

    @abstractmethod
    async def batch_query(self, urls: Sequence[str]) -> dict[str, dict[str, Any]]:
        """Return ``{url: {"width", "height", "blur"}}`` for the URLs it knows."""
        ...


class InMemoryMediaLookup(MediaLookup):
    def __init__(self, files: dict[str, dict[str, Any]] | None = None) -> None:
        self._files = dict(files or {})

    async def batch_query(self, urls: Sequence[str]) -> dict[str, dict[str, Any]]:
        return {url: self._files[url] for url in urls if url in self._files}


def _get_path(content: Any, path: str) -> Any:
    """Walk a dot-separated path into nested dicts; ``None`` when missing."""
    current = content
    for segment in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(segment)
        if current is None:
            return None
    return current


def _image(url: str, files: dict[str, dict[str, Any]]) -> dict[str, Any]:
    meta = files.get(url, {})
    return {
        "url": url,
        "width": meta.get("width"),
        "height": meta.get("height"),
        "blur": meta.get("blur"),
    }


class MediaResolver:
    """Media-metadata provider used by the pipeline's media stage."""

    def __init__(self, lookup: MediaLookup) -> None:
        self.lookup = lookup

    async def resolve(self, content: Any, slots: Sequence[MediaSlot]) -> dict[str, Any]:
        if not isinstance(content, dict) or not slots:
            return {}

        wanted: dict[str, list[str]] = {}
        for slot in slots:
            value = _get_path(content, slot.path)
            candidates = value if slot.multiple and isinstance(value, list) else [value]
            urls = [url for url in candidates if isinstance(url, str) and url]
            if not slot.multiple:
                urls = urls[:1]
            if urls:
                wanted[slot.path] = urls

        if not wanted:
            return {}

        all_urls = list(dict.fromkeys(url for urls in wanted.values() for url in urls))
        files = await self.lookup.batch_query(all_urls)
        logger.debug("Media lookup: %d url(s), %d known", len(all_urls), len(files))

        multiple = {slot.path for slot in slots if slot.multiple}
        result: dict[str, Any] = {}
        for path, urls in wanted.items():
            images = [_image(url, files) for url in urls]
            result[path] = images if path in multiple else images[0]
        return result
