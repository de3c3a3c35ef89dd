"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from runtime.factory import get_block_runtime

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    runtime = get_block_runtime()
    return {
        "status": "healthy",
        "blockTypes": len(runtime.registry),
        "strict": runtime.config.strict,
    }
