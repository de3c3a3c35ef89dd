"""Tests for the per-stage failure policy."""

from __future__ import annotations

import asyncio

import pytest

from errors.exceptions import BlockRuntimeError
from models.errors import BlockErrorCode, BlockRuntimeStage
from runtime.config import PipelineConfig
from runtime.stages import StageRunner, maybe_await


async def _ok():
    return {"value": 1}


async def _boom():
    raise RuntimeError("provider down")


class TestStageRunner:
    @pytest.mark.asyncio
    async def test_success_returns_value(self):
        runner = StageRunner(PipelineConfig(strict=False))
        errors = []
        result = await runner.run(BlockRuntimeStage.MEDIA, "hero", 1, _ok, {}, errors)
        assert result == {"value": 1}
        assert errors == []

    @pytest.mark.asyncio
    async def test_lenient_records_and_falls_back(self):
        runner = StageRunner(PipelineConfig(strict=False))
        errors = []
        result = await runner.run(BlockRuntimeStage.MEDIA, "hero", 7, _boom, {}, errors)
        assert result == {}
        assert len(errors) == 1
        item = errors[0]
        assert item.stage == BlockRuntimeStage.MEDIA
        assert item.code == BlockErrorCode.BLOCK_MEDIA_FAILED
        assert item.block_type == "hero"
        assert item.block_id == 7
        assert "provider down" in item.message

    @pytest.mark.asyncio
    async def test_strict_raises_with_cause(self):
        runner = StageRunner(PipelineConfig(strict=True))
        errors = []
        with pytest.raises(BlockRuntimeError) as exc_info:
            await runner.run(BlockRuntimeStage.BUSINESS, "hero", "b1", _boom, {}, errors)
        assert exc_info.value.code == BlockErrorCode.BLOCK_BUSINESS_FAILED
        assert exc_info.value.stage == BlockRuntimeStage.BUSINESS
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert errors == []

    @pytest.mark.asyncio
    async def test_timeout_is_stage_failure(self):
        runner = StageRunner(PipelineConfig(strict=False, stage_timeout=0.05))

        async def _hang():
            await asyncio.sleep(5)

        errors = []
        result = await runner.run(
            BlockRuntimeStage.PLACEHOLDERS, "default", 1, _hang, {}, errors
        )
        assert result == {}
        assert errors[0].code == BlockErrorCode.BLOCK_PLACEHOLDERS_FAILED
        assert "timed out" in errors[0].message

    @pytest.mark.asyncio
    async def test_no_timeout_when_disabled(self):
        runner = StageRunner(PipelineConfig(stage_timeout=None))
        errors = []
        assert await runner.run(BlockRuntimeStage.CONTENT, "x", 1, _ok, None, errors) == {
            "value": 1
        }


class TestMaybeAwait:
    @pytest.mark.asyncio
    async def test_plain_and_awaitable(self):
        assert await maybe_await(3) == 3
        assert await maybe_await(_ok()) == {"value": 1}
