"""Pipeline configuration passed explicitly into the block runtime.

The failure policy is decided once per process (from settings) and handed to
the pipeline at construction, so tests can run strict and lenient pipelines
side by side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config.settings import Settings


@dataclass(frozen=True)
class PipelineConfig:
    """Runtime policy for block resolution.

    Attributes:
        strict: Raise stage failures to the caller instead of recording them.
        stage_timeout: Deadline in seconds for a single stage; ``None`` disables it.
        max_concurrency: Upper bound on blocks resolved in parallel per page;
            ``None`` or ``0`` means unbounded.
        cache_enabled: Master switch for the cached resolver.
        cache_ttl: Lifetime of cache entries in seconds; ``None`` keeps them
            until one of their tags is invalidated.
        cache_error_results: Store envelopes whose status is ``"error"``.
    """

    strict: bool = False
    stage_timeout: float | None = 10.0
    max_concurrency: int | None = 16
    cache_enabled: bool = True
    cache_ttl: int | None = None
    cache_error_results: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            strict=settings.strict_runtime,
            stage_timeout=settings.block_stage_timeout,
            max_concurrency=settings.block_max_concurrency,
            cache_enabled=settings.block_cache_enabled,
            cache_ttl=settings.block_cache_ttl,
            cache_error_results=settings.block_cache_error_results,
        )
