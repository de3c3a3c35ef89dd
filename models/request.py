"""API request / response models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from models.base import CamelModel
from models.block import BlockMode, ResolvedBlock, RuntimeBlockInput


class PageResolveRequest(CamelModel):
    """POST /api/page/resolve — request body."""

    blocks: list[RuntimeBlockInput] = Field(default_factory=list)
    page_id: str | None = None
    page_context: dict[str, Any] | None = None
    mode: BlockMode = "page"
    disable_cache: bool = False


class PageResolveResponse(CamelModel):
    """POST /api/page/resolve — response body."""

    blocks: list[ResolvedBlock]
    tags: list[str] = Field(default_factory=list)


class CacheRevalidateRequest(CamelModel):
    """POST /api/cache/revalidate — request body."""

    tags: list[str] = Field(min_length=1)


class CacheRevalidateResponse(CamelModel):
    tags: list[str]
    invalidated: int
