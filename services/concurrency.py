"""Bounded concurrency for block fan-out.

Resolving a page dispatches every block at once; an ``asyncio.Semaphore``
caps how many of them may be talking to the external providers at the same
time.  Results keep the input order regardless of completion order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_bounded(
    factories: Sequence[Callable[[], Awaitable[T]]],
    limit: int | None = None,
) -> list[T]:
    """Run every coroutine factory concurrently, at most *limit* at a time.

    Usage::

        results = await gather_bounded([lambda: fetch(a), lambda: fetch(b)], limit=8)

    A ``None`` or non-positive *limit* means unbounded.  The semaphore is
    created per call so it is always bound to the running event loop.
    """
    if not factories:
        return []
    if not limit or limit <= 0 or limit >= len(factories):
        return list(await asyncio.gather(*(factory() for factory in factories)))

    sem = asyncio.Semaphore(limit)
    logger.debug("Bounded fan-out: %d tasks, max=%d", len(factories), limit)

    async def _run(factory: Callable[[], Awaitable[T]]) -> T:
        async with sem:
            return await factory()

    return list(await asyncio.gather(*(_run(factory) for factory in factories)))
