"""Block runtime data model.

RuntimeBlockInput  — one authored block instance, as supplied by the page loader
BlockCapabilities  — the dynamic needs a block type declares
RuntimeEnvelope    — per-block resolution result (placeholders / media / business)
ResolvedBlock      — final per-block output handed to the renderer
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ConfigDict, Field, computed_field, field_validator

from models.base import CamelModel
from models.errors import BlockErrorCode, BlockRuntimeStage

BlockId = int | str
BlockMode = str

DEFAULT_BLOCK_TYPE = "default"


# ── Input ───────────────────────────────────────────────────


class RuntimeBlockInput(CamelModel):
    """One authored block on a page.  Immutable input to the pipeline."""

    model_config = ConfigDict(frozen=True)

    id: BlockId
    block_type: str | None = None
    content: Any = None
    description: str | None = None


# ── Capabilities ────────────────────────────────────────────


class PlaceholderCapability(CamelModel):
    enabled: bool = False
    with_context: bool = False


class MediaSlot(CamelModel):
    """A content field holding image URL(s) whose metadata must be resolved."""

    path: str
    multiple: bool = False


class BlockCapabilities(CamelModel):
    """Declared dynamic-resolution needs of a block type."""

    placeholders: PlaceholderCapability = Field(default_factory=PlaceholderCapability)
    media: list[MediaSlot] = Field(default_factory=list)
    context: Literal["none", "page"] = "page"

    @field_validator("media", mode="before")
    @classmethod
    def _coerce_slot_names(cls, value: Any) -> Any:
        # A bare slot name means a single-image field at that path.
        if isinstance(value, (list, tuple)):
            return [{"path": item} if isinstance(item, str) else item for item in value]
        return value


# ── Runtime envelope ────────────────────────────────────────


class BlockRuntimeErrorItem(CamelModel):
    """One recorded stage failure."""

    stage: BlockRuntimeStage
    code: BlockErrorCode
    block_type: str
    block_id: BlockId
    message: str


class RuntimeMeta(CamelModel):
    errors: list[BlockRuntimeErrorItem] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> Literal["ok", "error"]:
        """``"error"`` exactly when at least one stage failure was recorded."""
        return "error" if self.errors else "ok"


class RuntimeEnvelope(CamelModel):
    """Dynamic data resolved for one block.

    Each map is always present (possibly empty) so renderers never need to
    null-check.
    """

    placeholders: dict[str, Any] = Field(default_factory=dict)
    media: dict[str, Any] = Field(default_factory=dict)
    business: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)
    meta: RuntimeMeta = Field(default_factory=RuntimeMeta)


# ── Output ──────────────────────────────────────────────────


class ResolvedBlock(CamelModel):
    id: BlockId
    block_type: str
    description: str | None = None
    content: Any = None
    runtime: RuntimeEnvelope


class PageResolution(CamelModel):
    """All resolved blocks of a page plus the page-level cache tags."""

    blocks: list[ResolvedBlock] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
