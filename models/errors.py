"""Stage-scoped error codes for the block runtime.

Every recorded failure carries one of these codes so renderers can decide
how to show a degraded block::

    BLOCK_{STAGE}_FAILED

The definition stage is special: a missing definition is reported as
``BLOCK_DEFINITION_NOT_FOUND`` rather than ``BLOCK_DEFINITION_FAILED``.
"""

from __future__ import annotations

from enum import Enum


class BlockRuntimeStage(str, Enum):
    """Ordered stages of the per-block resolution pipeline."""

    DEFINITION = "definition"
    CONTENT = "content"
    PLACEHOLDERS = "placeholders"
    MEDIA = "media"
    BUSINESS = "business"


class BlockErrorCode(str, Enum):
    """Frozen error codes emitted into ``runtime.meta.errors``."""

    BLOCK_DEFINITION_NOT_FOUND = "BLOCK_DEFINITION_NOT_FOUND"
    BLOCK_CONTENT_FAILED = "BLOCK_CONTENT_FAILED"
    BLOCK_PLACEHOLDERS_FAILED = "BLOCK_PLACEHOLDERS_FAILED"
    BLOCK_MEDIA_FAILED = "BLOCK_MEDIA_FAILED"
    BLOCK_BUSINESS_FAILED = "BLOCK_BUSINESS_FAILED"


def error_code_for_stage(stage: BlockRuntimeStage) -> BlockErrorCode:
    """Return the error code recorded when *stage* fails."""
    if stage is BlockRuntimeStage.DEFINITION:
        return BlockErrorCode.BLOCK_DEFINITION_NOT_FOUND
    return BlockErrorCode(f"BLOCK_{stage.value.upper()}_FAILED")
