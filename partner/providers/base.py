"""Abstract base class for streaming chat providers.

Defines the ModelProvider interface a ChatSession streams through. The
session never talks HTTP directly; swapping the provider is how tests and
alternative backends plug in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from partner.cancellation import CancellationToken
from partner.schemas.config import PartnerConfig
from partner.schemas.messages import ChatMessage


class ModelProvider(ABC):
    """Abstract interface for any chat backend that streams text deltas.

    Initialized from a PartnerConfig. Exposes the request settings and a
    single stream() method that all providers must implement.
    """

    def __init__(self, config: PartnerConfig) -> None:
        self._config = config

    # ── Identity ──────────────────────────────────────────────

    @property
    def model_id(self) -> str:
        """Default model identifier sent with each request."""
        return self._config.model

    @property
    def api_base(self) -> str:
        """Base URL of the completions endpoint."""
        return self._config.api_base

    @property
    def temperature(self) -> float:
        return self._config.temperature

    @property
    def config(self) -> PartnerConfig:
        """The full PartnerConfig backing this provider."""
        return self._config

    # ── Core interface ────────────────────────────────────────

    @abstractmethod
    def stream(
        self,
        messages: list[ChatMessage],
        *,
        api_key: str,
        model: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Stream a completion as a lazy sequence of text deltas.

        Args:
            messages: Conversation messages, system prompt first.
            api_key: Bearer token for the endpoint.
            model: Model override for this request; defaults to model_id.
            cancel: Token checked once per received chunk.

        Returns:
            An async iterator of deltas in arrival order.

        Raises:
            RequestError: If the endpoint rejects the request or the
                          connection fails.
        """
