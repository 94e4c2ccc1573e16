"""Coding Partner schema definitions.

All Pydantic v2 models used by the client, session, and terminal host.
"""

from partner.schemas.config import ContextOverflow, PartnerConfig
from partner.schemas.messages import (
    ChatMessage,
    OutcomeStatus,
    RequestOutcome,
    Role,
)
from partner.schemas.streaming import FrameKind, FrameResult, StreamChunk

__all__ = [
    "ChatMessage",
    "ContextOverflow",
    "FrameKind",
    "FrameResult",
    "OutcomeStatus",
    "PartnerConfig",
    "RequestOutcome",
    "Role",
    "StreamChunk",
]
