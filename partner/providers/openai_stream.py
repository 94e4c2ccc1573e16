"""Streaming client for OpenAI-compatible chat completion endpoints.

Opens a single ``POST {api_base}/chat/completions`` request with
``stream: true`` and feeds the response body through a StreamDecoder.
There is no retry: a failed request surfaces as a RequestError.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from partner.cancellation import CancellationToken
from partner.errors import RequestError
from partner.providers.base import ModelProvider
from partner.providers.sse import StreamDecoder
from partner.schemas.config import PartnerConfig
from partner.schemas.messages import ChatMessage

logger = logging.getLogger(__name__)


def completions_url(api_base: str) -> str:
    """Join the API base and the chat completions path."""
    return api_base.rstrip("/") + "/chat/completions"


def build_request_body(
    model: str,
    messages: list[ChatMessage],
    temperature: float,
) -> dict:
    """Build the JSON body for a streaming completion request."""
    return {
        "model": model,
        "stream": True,
        "temperature": temperature,
        "messages": [m.model_dump(mode="json") for m in messages],
    }


async def _read_error_text(response: httpx.Response) -> str:
    """Best-effort read of an error response body."""
    try:
        await response.aread()
        return response.text.strip()
    except httpx.HTTPError:
        return ""


async def stream_chat_completion(
    api_key: str,
    model: str,
    api_base: str,
    messages: list[ChatMessage],
    temperature: float,
    cancel: CancellationToken | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> AsyncIterator[str]:
    """Stream a chat completion as text deltas.

    Args:
        api_key: Bearer token for the Authorization header.
        model: Model identifier for the request body.
        api_base: Endpoint base URL (a trailing slash is ignored).
        messages: Conversation messages, system prompt first.
        temperature: Sampling temperature.
        cancel: Token checked once per received chunk.
        client: Optional shared AsyncClient. It is left open; when omitted
                a client is created and closed for this request.
        timeout: HTTP timeout in seconds. None waits indefinitely.

    Yields:
        Text deltas in arrival order.

    Raises:
        RequestError: On a non-success status (before any delta is
                      yielded) or a transport failure.
    """
    url = completions_url(api_base)
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    body = build_request_body(model, messages, temperature)

    owns_client = client is None
    http = client or httpx.AsyncClient()
    try:
        logger.debug("POST %s (model=%s, %d messages)", url, model, len(messages))
        async with http.stream(
            "POST", url, headers=headers, json=body, timeout=timeout,
        ) as response:
            if not response.is_success:
                detail = await _read_error_text(response)
                logger.debug("Request failed with status %d", response.status_code)
                raise RequestError(response.status_code, detail)

            decoder = StreamDecoder(cancel)
            async for delta in decoder.deltas(response.aiter_bytes()):
                yield delta
    except httpx.HTTPError as e:
        raise RequestError(0, str(e) or type(e).__name__) from e
    finally:
        if owns_client:
            await http.aclose()


class OpenAIStreamProvider(ModelProvider):
    """ModelProvider that talks to an OpenAI-compatible endpoint over httpx."""

    def __init__(
        self,
        config: PartnerConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config)
        self._client = client

    def stream(
        self,
        messages: list[ChatMessage],
        *,
        api_key: str,
        model: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        return stream_chat_completion(
            api_key,
            model or self.model_id,
            self.api_base,
            messages,
            self.temperature,
            cancel,
            client=self._client,
            timeout=self._config.timeout,
        )
