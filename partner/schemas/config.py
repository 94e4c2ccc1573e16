"""Configuration schema for the completions client.

Loaded from defaults.toml (shipped with the package) and an optional
user-level config.toml.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class ContextOverflow(StrEnum):
    """What to do with an active document longer than max_context_chars."""

    OMIT = "omit"
    TRUNCATE = "truncate"


class PartnerConfig(BaseModel):
    """Settings for talking to an OpenAI-compatible completions endpoint."""

    model: str = Field(default="gpt-4o-mini", description="Model identifier sent in the request body")
    api_base: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL; /chat/completions is appended",
    )
    temperature: float = Field(
        default=0.2, ge=0.0, le=2.0, description="Sampling temperature"
    )
    api_key_env: str = Field(
        default="OPENAI_API_KEY", description="Environment variable name holding the API key"
    )
    max_context_chars: int = Field(
        default=60_000, gt=0, description="Largest active document included as context"
    )
    context_overflow: ContextOverflow = Field(
        default=ContextOverflow.OMIT,
        description="Policy for documents longer than max_context_chars",
    )
    timeout: float | None = Field(
        default=None, gt=0, description="HTTP timeout in seconds (None = wait indefinitely)"
    )
