"""Page API — resolve a page's blocks into runtime envelopes."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from models.request import PageResolveRequest, PageResolveResponse
from runtime.factory import get_block_runtime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/page", tags=["page"])


@router.post("/resolve", response_model=PageResolveResponse, response_model_by_alias=True)
async def page_resolve(req: PageResolveRequest) -> PageResolveResponse:
    """Resolve every block of a page.

    Blocks are resolved concurrently.  With a ``pageId`` (and without
    ``disableCache``) results are served from the tag cache and the
    response carries the page-level cache tags; preview requests omit
    ``pageId`` and always resolve fresh.
    """
    logger.info(
        "Resolving page %s (%d blocks, mode=%s, cache=%s)",
        req.page_id or "<preview>",
        len(req.blocks),
        req.mode,
        "off" if req.disable_cache else "on",
    )
    resolution = await get_block_runtime().pages.resolve_page(
        req.blocks,
        page_id=req.page_id,
        page_context=req.page_context,
        disable_cache=req.disable_cache,
        mode=req.mode,
    )
    return PageResolveResponse(blocks=resolution.blocks, tags=resolution.tags)
