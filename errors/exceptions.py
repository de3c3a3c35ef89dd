"""Domain-specific exceptions for the block runtime.

``BlockRuntimeError`` is what strict mode raises out of the pipeline; in
lenient mode the same information is recorded as a
``BlockRuntimeErrorItem`` on the block's envelope instead.
"""

from __future__ import annotations

from typing import Iterable

from models.block import BlockId, BlockRuntimeErrorItem
from models.errors import BlockErrorCode, BlockRuntimeStage


class BlockRuntimeError(Exception):
    """A pipeline stage failed for one block."""

    def __init__(
        self,
        code: BlockErrorCode,
        stage: BlockRuntimeStage,
        block_type: str,
        block_id: BlockId,
        message: str,
    ) -> None:
        self.code = code
        self.stage = stage
        self.block_type = block_type
        self.block_id = block_id
        self.message = message
        super().__init__(f"{code.value}: {message}")

    def to_error_item(self) -> BlockRuntimeErrorItem:
        """Convert into the envelope representation used in lenient mode."""
        return BlockRuntimeErrorItem(
            stage=self.stage,
            code=self.code,
            block_type=self.block_type,
            block_id=self.block_id,
            message=self.message,
        )


class BlockDefinitionNotFoundError(BlockRuntimeError):
    """No definition is registered for the requested block type."""

    def __init__(self, block_type: str, block_id: BlockId) -> None:
        super().__init__(
            code=BlockErrorCode.BLOCK_DEFINITION_NOT_FOUND,
            stage=BlockRuntimeStage.DEFINITION,
            block_type=block_type,
            block_id=block_id,
            message=f"No block definition registered for type '{block_type}'",
        )


class UnmappedPlaceholderError(Exception):
    """Placeholders that can be resolved but carry no cache-tag mapping.

    Raised at startup so a new placeholder cannot silently lose its cache
    dependency.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self.names = sorted(set(names))
        super().__init__(
            "Placeholders without cache tag mapping: " + ", ".join(self.names)
        )
