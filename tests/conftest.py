"""Shared pytest fixtures for block runtime tests.

Provides:
- ``registry``: BlockRegistry with the built-in catalog
- ``tag_store``: fresh InMemoryTagCacheStore per test
- ``lenient_config`` / ``strict_config``: PipelineConfig variants
- ``content_source``: InMemoryContentSource over mock data, installed as
  the process-wide source for the duration of the test
"""

from __future__ import annotations

import pytest

from blocks.catalog import register_builtin_blocks
from runtime.config import PipelineConfig
from runtime.registry import BlockRegistry
from services.content_source import (
    InMemoryContentSource,
    get_content_source,
    set_content_source,
)
from services.tag_cache import InMemoryTagCacheStore


@pytest.fixture
def registry() -> BlockRegistry:
    """Registry populated with the built-in block catalog."""
    return register_builtin_blocks(BlockRegistry())


@pytest.fixture
def tag_store() -> InMemoryTagCacheStore:
    """Fresh tag cache — isolated per test."""
    return InMemoryTagCacheStore()


@pytest.fixture
def lenient_config() -> PipelineConfig:
    return PipelineConfig(strict=False, stage_timeout=2.0, max_concurrency=None)


@pytest.fixture
def strict_config() -> PipelineConfig:
    return PipelineConfig(strict=True, stage_timeout=2.0, max_concurrency=None)


@pytest.fixture
def content_source():
    previous = get_content_source()
    source = InMemoryContentSource()
    set_content_source(source)
    yield source
    set_content_source(previous)
