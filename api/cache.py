"""Cache API — tag revalidation hook for content-change events."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from models.request import CacheRevalidateRequest, CacheRevalidateResponse
from runtime.factory import get_block_runtime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.post("/revalidate", response_model=CacheRevalidateResponse, response_model_by_alias=True)
async def cache_revalidate(req: CacheRevalidateRequest) -> CacheRevalidateResponse:
    """Invalidate every cached block carrying any of the given tags.

    Called by whatever writes the underlying data, e.g. ``["posts"]`` after a
    post is published or ``["tags", "tags/python"]`` after a tag is renamed.
    """
    invalidated = await get_block_runtime().store.invalidate_tags(req.tags)
    logger.info("Revalidated tags %s (%d entries)", req.tags, invalidated)
    return CacheRevalidateResponse(tags=req.tags, invalidated=invalidated)
