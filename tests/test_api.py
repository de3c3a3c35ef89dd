"""FastAPI endpoint tests using httpx.AsyncClient."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import runtime.factory as factory
from blocks.catalog import register_builtin_blocks
from config.settings import Settings
from main import app
from runtime.registry import BlockRegistry
from services.tag_cache import InMemoryTagCacheStore


@pytest.fixture
def block_runtime(monkeypatch, content_source):
    """Strict runtime with its own registry and cache, installed as the singleton."""
    runtime = factory.build_block_runtime(
        settings=Settings(block_runtime_strict=True),
        registry=register_builtin_blocks(BlockRegistry()),
        store=InMemoryTagCacheStore(),
        content_source=content_source,
    )
    monkeypatch.setattr(factory, "_runtime", runtime)
    return runtime


@pytest.fixture
async def client(block_runtime):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["blockTypes"] == 6
    assert data["strict"] is True


@pytest.mark.asyncio
async def test_request_id_echoed(client):
    resp = await client.get("/api/health", headers={"X-Request-ID": "req-42"})
    assert resp.headers["x-request-id"] == "req-42"


# ── Page resolution ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_resolve_preview(client):
    resp = await client.post(
        "/api/page/resolve",
        json={"blocks": [{"id": 1, "content": {"title": "{posts} posts"}}]},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["tags"] == []
    [block] = data["blocks"]
    assert block["blockType"] == "default"
    assert block["runtime"]["placeholders"]["posts"] == 4
    assert block["runtime"]["meta"] == {"errors": [], "status": "ok"}


@pytest.mark.asyncio
async def test_resolve_page_with_tags(client):
    resp = await client.post(
        "/api/page/resolve",
        json={
            "pageId": "home",
            "pageContext": {"slug": "home"},
            "blocks": [
                {"id": 1, "blockType": "recent-posts", "content": {"limit": 2}},
                {"id": 2, "blockType": "friend-links"},
                {"id": 3, "blockType": "hero-gallery", "content": {"background": "/p/a1b2c3"}},
            ],
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["tags"][0] == "pages/home"
    assert set(data["tags"]) == {"pages/home", "posts", "friend-links", "photos"}

    recent, links, hero = data["blocks"]
    assert len(recent["runtime"]["business"]["posts"]) == 2
    assert recent["content"]["limit"] == 2
    assert len(links["runtime"]["business"]["links"]) == 2
    assert links["runtime"]["context"] == {}
    assert hero["runtime"]["media"]["background"]["width"] == 1600


@pytest.mark.asyncio
async def test_unknown_block_type_strict_500(client):
    resp = await client.post(
        "/api/page/resolve",
        json={"blocks": [{"id": "x9", "blockType": "nope"}]},
    )
    assert resp.status_code == 500
    data = resp.json()
    assert data["code"] == "BLOCK_DEFINITION_NOT_FOUND"
    assert data["stage"] == "definition"
    assert data["blockType"] == "nope"
    assert data["blockId"] == "x9"


@pytest.mark.asyncio
async def test_missing_block_id_rejected(client):
    resp = await client.post("/api/page/resolve", json={"blocks": [{"content": {}}]})
    assert resp.status_code == 422


# ── Revalidation ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_revalidate_drops_cached_blocks(client, block_runtime):
    body = {"pageId": "blog", "blocks": [{"id": 1, "content": "{postsList}"}]}
    assert (await client.post("/api/page/resolve", json=body)).status_code == 200
    assert block_runtime.store.size == 1

    resp = await client.post("/api/cache/revalidate", json={"tags": ["posts"]})
    assert resp.status_code == 200
    assert resp.json() == {"tags": ["posts"], "invalidated": 1}
    assert block_runtime.store.size == 0


@pytest.mark.asyncio
async def test_revalidate_requires_tags(client):
    resp = await client.post("/api/cache/revalidate", json={"tags": []})
    assert resp.status_code == 422
