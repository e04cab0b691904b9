"""Streaming schemas for incremental reply assembly.

Defines the StreamDelta unit delivered by a chat transport, the
CitationRecord attached to grounded text, and the AggregatedState
built up over one assistant turn.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from soldiom.schemas.render import RenderNode


class CitationRecord(BaseModel):
    """A web source reference attached to generated text.

    Identity is the ``uri``: two records with the same uri are the same
    citation regardless of title.
    """

    model_config = ConfigDict(frozen=True)

    uri: str = Field(default="", description="Source URI (empty = not citable)")
    title: str | None = Field(default=None, description="Optional page title")


class StreamDelta(BaseModel):
    """One incremental unit of streamed text and citation data."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="New text in this delta (may be empty)")
    citations: list[CitationRecord] = Field(
        default_factory=list, description="Citations carried by this delta"
    )


class TurnStatus(StrEnum):
    """Lifecycle state of an assistant turn."""

    STREAMING = "streaming"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AggregatedState(BaseModel):
    """Running text and citations for one in-flight or finished message.

    ``text`` only ever grows by appending fragments, and ``citations`` is
    unique by uri in first-seen order. Once ``status`` leaves STREAMING
    the state is frozen and accepts no further deltas.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Full text accumulated so far")
    citations: list[CitationRecord] = Field(
        default_factory=list, description="Deduplicated citations in first-seen order"
    )
    delta_count: int = Field(default=0, ge=0, description="Number of deltas applied")
    status: TurnStatus = Field(
        default=TurnStatus.STREAMING, description="Turn lifecycle state"
    )
    error: str | None = Field(
        default=None, description="Human-readable transport error, if the turn failed"
    )

    @property
    def is_complete(self) -> bool:
        """True once the stream has ended, failed, or been cancelled."""
        return self.status != TurnStatus.STREAMING


class TurnUpdate(BaseModel):
    """What the presentation layer receives after every processed delta."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Accumulated text")
    citations: list[CitationRecord] = Field(
        default_factory=list, description="Citations in first-seen order"
    )
    nodes: list[RenderNode] = Field(
        default_factory=list, description="Render nodes derived from the text"
    )
    status: TurnStatus = Field(default=TurnStatus.STREAMING)
    error: str | None = Field(default=None)

    @property
    def is_complete(self) -> bool:
        return self.status != TurnStatus.STREAMING
