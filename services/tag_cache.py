"""Tag-addressed cache store for resolved blocks.

Entries are JSON-compatible values stored under a key together with a set of
tags.  Invalidating any tag drops every entry carrying it, so the next
``compute_with_tags`` call recomputes.  Concurrent writes for the same key
are idempotent: the later write simply overwrites the earlier one.

Every tag also carries an invalidation generation.  ``compute_with_tags``
snapshots the generations of the entry's tags before computing and only
stores the result if none of them advanced meanwhile, so a value computed
from data that was invalidated mid-flight is returned but never cached.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Sequence

logger = logging.getLogger(__name__)

TagGenerations = tuple[int, ...]


# ── Abstract Interface ───────────────────────────────────────


class TagCacheStore(ABC):
    """Abstract tagged cache — implement for different backends."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing / expired / invalidated."""
        ...

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        tags: Iterable[str],
        ttl_seconds: int | None = None,
        generations: TagGenerations | None = None,
    ) -> bool:
        """Store *value*; ``ttl_seconds=None`` keeps it until a tag is invalidated.

        With *generations* (a snapshot from :meth:`tag_generations` for the
        same tags) the write is skipped if any tag was invalidated since.
        Returns whether the value was stored.
        """
        ...

    @abstractmethod
    async def tag_generations(self, tags: Sequence[str]) -> TagGenerations:
        """Current invalidation generations for *tags* (plus a store-wide epoch)."""
        ...

    @abstractmethod
    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Drop every entry carrying any of *tags*.  Returns count removed."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    async def compute_with_tags(
        self,
        key: str,
        tags: Iterable[str],
        fn: Callable[[], Awaitable[Any]],
        ttl_seconds: int | None = None,
        cacheable: Callable[[Any], bool] | None = None,
    ) -> Any:
        """Return the cached value for *key*, computing and storing it on a miss.

        Args:
            key: Cache key.
            tags: Tags the stored entry is addressed by.
            fn: Async computation producing a JSON-compatible value.
            ttl_seconds: Entry lifetime; None = until explicitly invalidated.
            cacheable: Optional predicate; values it rejects are returned
                but not stored.
        """
        tags = list(tags)
        cached = await self.get(key)
        if cached is not None:
            logger.debug("Tag cache hit: %s", key)
            return cached

        generations = await self.tag_generations(tags)
        value = await fn()
        if cacheable is None or cacheable(value):
            stored = await self.set(key, value, tags, ttl_seconds, generations=generations)
            if not stored:
                logger.debug("Tags invalidated while computing %s; result not cached", key)
        return value


# ── In-Memory Implementation ────────────────────────────────


@dataclass
class _MemoryEntry:
    value: Any
    tags: frozenset[str]
    expires_at: float | None


class InMemoryTagCacheStore(TagCacheStore):
    """Single-process store with tag index, optional TTL and LRU size cap.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the cache or with each other.
    """

    def __init__(self, max_entries: int = 5000):
        self._entries: OrderedDict[str, _MemoryEntry] = OrderedDict()
        self._tag_index: dict[str, set[str]] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._max_entries = max_entries

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= time.time():
            self._remove(key)
            logger.debug("Tag cache entry expired: %s", key)
            return None
        self._entries.move_to_end(key)
        return copy.deepcopy(entry.value)

    async def set(
        self,
        key: str,
        value: Any,
        tags: Iterable[str],
        ttl_seconds: int | None = None,
        generations: TagGenerations | None = None,
    ) -> bool:
        tags = frozenset(tags)
        # No await between the check and the write: atomic on the event loop.
        if generations is not None and self._current_generations(sorted(tags)) != generations:
            return False

        self._remove(key)
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        entry = _MemoryEntry(value=copy.deepcopy(value), tags=tags, expires_at=expires_at)
        self._entries[key] = entry
        for tag in entry.tags:
            self._tag_index.setdefault(tag, set()).add(key)
        while len(self._entries) > self._max_entries:
            oldest = next(iter(self._entries))
            self._remove(oldest)
        return True

    async def tag_generations(self, tags: Sequence[str]) -> TagGenerations:
        return self._current_generations(sorted(set(tags)))

    def _current_generations(self, tags: Sequence[str]) -> TagGenerations:
        return (self._epoch, *(self._generations.get(tag, 0) for tag in tags))

    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        keys: set[str] = set()
        for tag in tags:
            self._generations[tag] = self._generations.get(tag, 0) + 1
            keys |= self._tag_index.pop(tag, set())
        for key in keys:
            self._remove(key)
        if keys:
            logger.info("Invalidated %d cached block(s)", len(keys))
        return len(keys)

    async def clear(self) -> None:
        self._entries.clear()
        self._tag_index.clear()
        self._epoch += 1

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tag_index[tag]

    @property
    def size(self) -> int:
        """Number of entries currently stored (may include expired)."""
        return len(self._entries)


# ── Redis Implementation ─────────────────────────────────────


class RedisTagCacheStore(TagCacheStore):
    """Redis-backed store for multi-worker deployments.

    Key layout under ``prefix``:

    - ``entry:{key}``  JSON ``{"value": ..., "tags": [...]}`` (Redis TTL = entry TTL)
    - ``tag:{tag}``    sorted set of entry keys scored by expiry (``+inf`` = none);
                       expired members are pruned whenever the tag is written
    - ``gen:{tag}``    invalidation generation (``INCR`` on invalidate)
    - ``epoch``        bumped by :meth:`clear`

    Conditional writes ``WATCH`` the generation keys, so an invalidation
    racing a write aborts the write.
    """

    def __init__(self, redis_url: str, prefix: str = "block-cache:"):
        import redis.asyncio as aioredis

        self._redis = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=10,
            socket_timeout=10,
        )
        self._prefix = prefix

    def _entry_key(self, key: str) -> str:
        return f"{self._prefix}entry:{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._prefix}tag:{tag}"

    def _generation_keys(self, tags: Sequence[str]) -> list[str]:
        return [f"{self._prefix}epoch", *(f"{self._prefix}gen:{tag}" for tag in tags)]

    async def get(self, key: str) -> Any | None:
        data = await self._redis.get(self._entry_key(key))
        if data is None:
            return None
        try:
            return json.loads(data)["value"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Failed to deserialize cache entry: %s", key)
            return None

    async def set(
        self,
        key: str,
        value: Any,
        tags: Iterable[str],
        ttl_seconds: int | None = None,
        generations: TagGenerations | None = None,
    ) -> bool:
        from redis.exceptions import WatchError

        tags = sorted(set(tags))
        entry_key = self._entry_key(key)
        payload = json.dumps({"value": value, "tags": tags}, ensure_ascii=False)
        now = time.time()
        score = now + ttl_seconds if ttl_seconds else math.inf

        async with self._redis.pipeline(transaction=True) as pipe:
            if generations is not None:
                generation_keys = self._generation_keys(tags)
                await pipe.watch(*generation_keys)
                current = tuple(int(v or 0) for v in await pipe.mget(generation_keys))
                if current != generations:
                    return False
                pipe.multi()
            pipe.set(entry_key, payload, ex=ttl_seconds)
            for tag in tags:
                tag_key = self._tag_key(tag)
                pipe.zremrangebyscore(tag_key, "-inf", now)
                pipe.zadd(tag_key, {entry_key: score})
            try:
                await pipe.execute()
            except WatchError:
                return False
        return True

    async def tag_generations(self, tags: Sequence[str]) -> TagGenerations:
        values = await self._redis.mget(self._generation_keys(sorted(set(tags))))
        return tuple(int(v or 0) for v in values)

    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        tags = list(dict.fromkeys(tags))
        if not tags:
            return 0

        entry_keys: set[str] = set()
        for tag in tags:
            entry_keys.update(await self._redis.zrange(self._tag_key(tag), 0, -1))
        entry_keys_list = sorted(entry_keys)

        # Each removed entry is also dropped from the index of its other tags.
        stale_index: dict[str, list[str]] = {}
        if entry_keys_list:
            for entry_key, data in zip(entry_keys_list, await self._redis.mget(entry_keys_list)):
                try:
                    entry_tags = json.loads(data)["tags"] if data else []
                except (ValueError, KeyError, TypeError):
                    entry_tags = []
                for entry_tag in entry_tags:
                    if entry_tag not in tags:
                        stale_index.setdefault(entry_tag, []).append(entry_key)

        async with self._redis.pipeline(transaction=True) as pipe:
            if entry_keys_list:
                pipe.delete(*entry_keys_list)
            for entry_tag, keys in stale_index.items():
                pipe.zrem(self._tag_key(entry_tag), *keys)
            pipe.delete(*(self._tag_key(tag) for tag in tags))
            for generation_key in self._generation_keys(tags)[1:]:
                pipe.incr(generation_key)
            results = await pipe.execute()

        removed = results[0] if entry_keys_list else 0
        if removed:
            logger.info("Invalidated %d cached block(s)", removed)
        return removed

    async def clear(self) -> None:
        for pattern in ("entry:*", "tag:*"):
            async for key in self._redis.scan_iter(match=f"{self._prefix}{pattern}"):
                await self._redis.delete(key)
        await self._redis.incr(f"{self._prefix}epoch")

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return await self._redis.ping()
        except Exception:
            return False


# ── Module-level Singleton ───────────────────────────────────

_store: TagCacheStore | None = None


def get_tag_cache_store() -> TagCacheStore:
    """Get the singleton tag cache store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()

        if settings.cache_store_type == "redis" and settings.redis_url:
            _store = RedisTagCacheStore(
                redis_url=settings.redis_url,
                prefix=settings.cache_key_prefix,
            )
            logger.info("Initialized RedisTagCacheStore (prefix=%s)", settings.cache_key_prefix)
        else:
            _store = InMemoryTagCacheStore(max_entries=settings.cache_max_entries)
            logger.info(
                "Initialized InMemoryTagCacheStore (max_entries=%d)",
                settings.cache_max_entries,
            )
    return _store
