"""Tests for partner.providers.openai_stream — the HTTP streaming client."""

from __future__ import annotations

import json

import httpx
import pytest

from partner.cancellation import CancellationToken
from partner.errors import RequestError
from partner.providers.openai_stream import (
    OpenAIStreamProvider,
    build_request_body,
    completions_url,
    stream_chat_completion,
)
from partner.schemas.config import PartnerConfig
from partner.schemas.messages import ChatMessage, Role

_MESSAGES = [
    ChatMessage(role=Role.SYSTEM, content="You are Coding Partner."),
    ChatMessage(role=Role.USER, content="User request\n\nSay hello"),
]

_HELLO_CHUNKS = [
    b'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\n',
    b'data: {"choices":[{"delta":{"content":" world"}}]}\n\ndata: [DONE]\n\n',
]


# ── Helpers ───────────────────────────────────────────────────


def _streaming_client(chunks: list[bytes], status: int = 200, seen: list | None = None):
    """AsyncClient whose transport answers every request with ``chunks``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)

        async def body():
            for chunk in chunks:
                yield chunk

        return httpx.Response(
            status, headers={"content-type": "text/event-stream"}, content=body(),
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def _collect(stream) -> list[str]:
    return [delta async for delta in stream]


# ── Request building ──────────────────────────────────────────


class TestRequestBuilding:
    def test_completions_url(self):
        assert completions_url("https://api.openai.com/v1") == "https://api.openai.com/v1/chat/completions"

    def test_completions_url_trailing_slash(self):
        assert completions_url("http://localhost:8080/v1/") == "http://localhost:8080/v1/chat/completions"

    def test_request_body(self):
        body = build_request_body("gpt-4o-mini", _MESSAGES, 0.2)
        assert body == {
            "model": "gpt-4o-mini",
            "stream": True,
            "temperature": 0.2,
            "messages": [
                {"role": "system", "content": "You are Coding Partner."},
                {"role": "user", "content": "User request\n\nSay hello"},
            ],
        }


# ── Streaming ─────────────────────────────────────────────────


class TestStreamChatCompletion:
    @pytest.mark.asyncio
    async def test_end_to_end_hello_world(self):
        seen: list[httpx.Request] = []
        async with _streaming_client(_HELLO_CHUNKS, seen=seen) as client:
            deltas = await _collect(stream_chat_completion(
                "sk-test", "gpt-4o-mini", "https://api.example.com/v1/",
                _MESSAGES, 0.2, client=client,
            ))

        assert deltas == ["Hello", " world"]
        assert "".join(deltas) == "Hello world"

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.example.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert request.headers["content-type"] == "application/json"
        body = json.loads(request.content)
        assert body["stream"] is True
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.2
        assert body["messages"][1]["role"] == "user"

    @pytest.mark.asyncio
    async def test_error_status_raises_before_any_delta(self):
        error_body = [b'{"error":{"message":"Incorrect API key provided"}}']
        async with _streaming_client(error_body, status=401) as client:
            stream = stream_chat_completion(
                "bad", "gpt-4o-mini", "https://api.example.com/v1", _MESSAGES, 0.2,
                client=client,
            )
            with pytest.raises(RequestError) as exc_info:
                await stream.__anext__()

        assert exc_info.value.status_code == 401
        assert "Incorrect API key" in exc_info.value.detail
        assert str(exc_info.value).startswith("OpenAI error 401")

    @pytest.mark.asyncio
    async def test_server_error_with_empty_body(self):
        async with _streaming_client([], status=503) as client:
            with pytest.raises(RequestError) as exc_info:
                await _collect(stream_chat_completion(
                    "k", "m", "https://api.example.com/v1", _MESSAGES, 0.2, client=client,
                ))
        assert exc_info.value.status_code == 503
        assert exc_info.value.detail == ""

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_request_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(RequestError) as exc_info:
                await _collect(stream_chat_completion(
                    "k", "m", "https://api.example.com/v1", _MESSAGES, 0.2, client=client,
                ))
        assert exc_info.value.status_code == 0
        assert "connection refused" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_cancellation_stops_stream(self):
        token = CancellationToken()
        chunks = [
            b'data: {"choices":[{"delta":{"content":"first"}}]}\n\n',
            b'data: {"choices":[{"delta":{"content":"second"}}]}\n\n',
        ]
        deltas: list[str] = []
        async with _streaming_client(chunks) as client:
            async for delta in stream_chat_completion(
                "k", "m", "https://api.example.com/v1", _MESSAGES, 0.2, token,
                client=client,
            ):
                deltas.append(delta)
                token.cancel()
        assert deltas == ["first"]

    @pytest.mark.asyncio
    async def test_shared_client_left_open(self):
        client = _streaming_client(_HELLO_CHUNKS)
        await _collect(stream_chat_completion(
            "k", "m", "https://api.example.com/v1", _MESSAGES, 0.2, client=client,
        ))
        assert client.is_closed is False
        await client.aclose()


class TestOpenAIStreamProvider:
    @pytest.mark.asyncio
    async def test_uses_config_and_model_override(self):
        seen: list[httpx.Request] = []
        config = PartnerConfig(api_base="https://proxy.local/v1", temperature=0.7)
        async with _streaming_client(_HELLO_CHUNKS, seen=seen) as client:
            provider = OpenAIStreamProvider(config, client=client)
            deltas = await _collect(provider.stream(_MESSAGES, api_key="sk-x", model="gpt-4o"))

        assert deltas == ["Hello", " world"]
        body = json.loads(seen[0].content)
        assert body["model"] == "gpt-4o"
        assert body["temperature"] == 0.7
        assert str(seen[0].url) == "https://proxy.local/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_defaults_to_config_model(self):
        seen: list[httpx.Request] = []
        async with _streaming_client(_HELLO_CHUNKS, seen=seen) as client:
            provider = OpenAIStreamProvider(PartnerConfig(), client=client)
            await _collect(provider.stream(_MESSAGES, api_key="sk-x"))
        assert json.loads(seen[0].content)["model"] == "gpt-4o-mini"
