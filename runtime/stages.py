"""Stage runner — isolates each pipeline stage of each block.

A stage either returns its value or, on failure:

- strict mode: raises :class:`BlockRuntimeError` chained to the cause;
- lenient mode: records a ``BlockRuntimeErrorItem`` and returns the
  stage's fallback, so only that block's field degrades.

Every stage runs under ``PipelineConfig.stage_timeout``; an expired deadline
cancels the stage coroutine and counts as a stage failure.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, TypeVar

from errors.exceptions import BlockRuntimeError
from models.block import BlockId, BlockRuntimeErrorItem
from models.errors import BlockRuntimeStage, error_code_for_stage
from runtime.config import PipelineConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def maybe_await(value: Any) -> Any:
    """Await *value* if it is awaitable; hooks may be sync or async."""
    if inspect.isawaitable(value):
        return await value
    return value


class StageRunner:
    """Runs one named stage for one block under the configured failure policy."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    async def run(
        self,
        stage: BlockRuntimeStage,
        block_type: str,
        block_id: BlockId,
        task: Callable[[], Awaitable[T]],
        fallback: T,
        errors: list[BlockRuntimeErrorItem],
    ) -> T:
        try:
            if self.config.stage_timeout:
                return await asyncio.wait_for(task(), timeout=self.config.stage_timeout)
            return await task()
        except Exception as exc:
            if isinstance(exc, asyncio.TimeoutError):
                detail = f"timed out after {self.config.stage_timeout}s"
            else:
                detail = f"{type(exc).__name__}: {exc}"
            runtime_error = BlockRuntimeError(
                code=error_code_for_stage(stage),
                stage=stage,
                block_type=block_type,
                block_id=block_id,
                message=f"Block {block_type} ({block_id}) failed in {stage.value} stage: {detail}",
            )
            if self.config.strict:
                raise runtime_error from exc

            logger.warning("%s", runtime_error.message)
            errors.append(runtime_error.to_error_item())
            return fallback
