"""Streaming schemas for real-time token delivery.

Defines the per-frame classification produced by the SSE decoder and the
StreamChunk model handed to observers as deltas arrive.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class FrameKind(StrEnum):
    """How a single SSE frame was classified by the decoder."""

    DELTA = "delta"
    EMPTY = "empty"
    SKIP = "skip"
    DONE = "done"


class FrameResult(BaseModel):
    """Outcome of parsing one complete SSE frame.

    Only DELTA results carry text. EMPTY frames parsed cleanly but had no
    content (e.g. role-only events), SKIP frames were not data frames or
    held malformed payloads, and DONE marks the end-of-stream sentinel.
    """

    kind: FrameKind = Field(description="Classification of the frame")
    delta: str = Field(default="", description="Text delta for DELTA frames")


class StreamChunk(BaseModel):
    """A single chunk of streaming output from a model."""

    delta: str = Field(description="New text in this chunk")
    accumulated: str = Field(description="Full text accumulated so far")
    token_count: int = Field(ge=0, description="Running output token count")
    is_complete: bool = Field(
        default=False, description="True on final chunk"
    )
