"""Custom exception hierarchy for the block runtime."""

from errors.exceptions import (
    BlockDefinitionNotFoundError,
    BlockRuntimeError,
    UnmappedPlaceholderError,
)

__all__ = ["BlockDefinitionNotFoundError", "BlockRuntimeError", "UnmappedPlaceholderError"]
