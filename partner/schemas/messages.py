"""Message and outcome schemas for a single chat request.

Defines the OpenAI-format chat message and the structured outcome marker
a ChatSession returns instead of raising.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class Role(StrEnum):
    """Chat message author roles accepted by the completions endpoint."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One message in OpenAI chat format."""

    role: Role = Field(description="Author of the message")
    content: str = Field(description="Message text")


class OutcomeStatus(StrEnum):
    """Terminal state of a chat request."""

    OK = "ok"
    NO_KEY = "no-key"
    REQUEST_ERROR = "request-error"


class RequestOutcome(BaseModel):
    """Structured result of ChatSession.handle().

    Failures are reported here rather than raised: the caller has already
    been shown a message through its output sink.
    """

    status: OutcomeStatus = Field(description="How the request ended")
    intent: str = Field(default="freeform", description="Slash command the request used")
    content: str = Field(default="", description="Accumulated reply text")
    code_block: str | None = Field(
        default=None, description="Last fenced code block extracted from the reply"
    )
    cancelled: bool = Field(
        default=False, description="True when the stream was stopped by the caller"
    )
    error: str = Field(default="", description="Error text for failed requests")

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK
