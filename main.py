"""FastAPI entry point for the block runtime service."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from errors.exceptions import BlockRuntimeError
from runtime.factory import get_block_runtime
from services.middleware import RequestIdLogFilter, RequestIdMiddleware
from services.tag_cache import RedisTagCacheStore

settings = get_settings()

_log_handler = logging.StreamHandler()
_log_handler.addFilter(RequestIdLogFilter())
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
    handlers=[_log_handler],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the block runtime up front so misconfiguration fails at startup."""
    runtime = get_block_runtime()

    if isinstance(runtime.store, RedisTagCacheStore):
        if await runtime.store.ping():
            logger.info("Redis connection verified")
        else:
            logger.warning("Redis connection failed; block cache reads will error")

    yield

    if isinstance(runtime.store, RedisTagCacheStore):
        await runtime.store.close()


app = FastAPI(
    title="Block Runtime",
    description="Resolves page content blocks: placeholders, media, business data and cache tags",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(BlockRuntimeError)
async def block_runtime_error_handler(request: Request, exc: BlockRuntimeError) -> JSONResponse:
    """Strict mode: a failing block fails the request loudly."""
    logger.error("Block runtime error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "code": exc.code.value,
            "stage": exc.stage.value,
            "blockType": exc.block_type,
            "blockId": exc.block_id,
            "message": exc.message,
        },
    )


# ── Register routers ────────────────────────────────────────
from api.cache import router as cache_router  # noqa: E402
from api.health import router as health_router  # noqa: E402
from api.page import router as page_router  # noqa: E402

app.include_router(health_router)
app.include_router(page_router)
app.include_router(cache_router)


if __name__ == "__main__":
    # Production: gunicorn main:app -c deploy/gunicorn.conf.py
    uvicorn.run("main:app", host="0.0.0.0", port=settings.service_port, reload=settings.debug)
