"""Chat request handler.

A ChatSession turns one user prompt into one streamed completion. It
resolves the API key, assembles the prompt, forwards every delta to the
host's output sink in order, and keeps the last fenced code block of the
most recent reply for the host's apply command.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from partner.cancellation import CancellationToken
from partner.context.builder import DocumentContext, build_context_block
from partner.errors import PartnerError
from partner.keys import KeySource
from partner.providers.base import ModelProvider
from partner.providers.code_blocks import extract_last_code_block
from partner.providers.openai_stream import OpenAIStreamProvider
from partner.schemas.config import PartnerConfig
from partner.schemas.messages import (
    ChatMessage,
    OutcomeStatus,
    RequestOutcome,
    Role,
)
from partner.schemas.streaming import StreamChunk

logger = logging.getLogger(__name__)

FREEFORM = "freeform"

SYSTEM_PROMPT = "\n".join([
    "You are Coding Partner.",
    "Be direct, clear, practical.",
    "Prefer minimal explanations.",
    "When editing code, return a fenced code block containing the full updated file or snippet.",
    "When giving tests, include runnable examples.",
])

NO_KEY_MESSAGE = (
    "No OpenAI key set. Export **OPENAI_API_KEY** or add it to "
    "`~/.partner/keys.env`, then retry."
)
THINKING_MESSAGE = "Partner is thinking"
APPLY_HINT = "\n\n_Run **apply** to apply the last code block._"
FAILURE_PREFIX = "OpenAI request failed. "


class OutputSink(Protocol):
    """Where streamed text goes. append() is called once per delta, in order."""

    def append(self, text: str) -> None: ...

    def progress(self, message: str) -> None: ...


def build_user_prompt(prompt: str, intent: str = FREEFORM, context_block: str = "") -> str:
    """Join the intent line, the prompt, and the context block.

    Empty parts are dropped; the rest are separated by blank lines.
    """
    header = f"User called /{intent}" if intent != FREEFORM else "User request"
    return "\n\n".join(part for part in (header, prompt, context_block) if part)


def build_messages(
    prompt: str,
    intent: str = FREEFORM,
    context_block: str = "",
) -> list[ChatMessage]:
    """Build the system + user message pair for one request."""
    return [
        ChatMessage(role=Role.SYSTEM, content=SYSTEM_PROMPT),
        ChatMessage(role=Role.USER, content=build_user_prompt(prompt, intent, context_block)),
    ]


class ChatSession:
    """Owns request settings and the last extracted code block.

    ``last_code_block`` is written by every request that completes its
    stream (normally or by cancellation) and read by the host's apply
    command. Failed requests leave it untouched.
    """

    def __init__(
        self,
        config: PartnerConfig,
        keys: KeySource,
        *,
        provider: ModelProvider | None = None,
    ) -> None:
        self.config = config
        self.keys = keys
        self.provider = provider or OpenAIStreamProvider(config)
        self.last_code_block: str | None = None

    def _resolve_key(self) -> str | None:
        key = self.keys.get_stored_key()
        if not key:
            key = self.keys.prompt_and_store_key()
        return key or None

    async def handle(
        self,
        prompt: str,
        sink: OutputSink,
        *,
        intent: str | None = None,
        context: DocumentContext | None = None,
        cancel: CancellationToken | None = None,
        model: str | None = None,
        on_chunk: Callable[[StreamChunk], Any] | None = None,
    ) -> RequestOutcome:
        """Run one chat request end to end.

        Args:
            prompt: The user's request text.
            sink: Receives every delta plus status and error messages.
            intent: Slash command name (without the slash), or None.
            context: Optional selection / active document provider.
            cancel: Token the host sets to stop streaming early.
            model: Model override for this request.
            on_chunk: Optional callback (sync or async) invoked with a
                      StreamChunk per delta and once more on completion.

        Returns:
            A RequestOutcome describing how the request ended.
        """
        intent = intent or FREEFORM
        cancel = cancel or CancellationToken()

        api_key = self._resolve_key()
        if not api_key:
            sink.append(NO_KEY_MESSAGE)
            return RequestOutcome(status=OutcomeStatus.NO_KEY, intent=intent)

        sink.progress(THINKING_MESSAGE)

        context_block = build_context_block(
            context,
            max_chars=self.config.max_context_chars,
            overflow=self.config.context_overflow,
        )
        messages = build_messages(prompt, intent, context_block)

        accumulated = ""
        token_count = 0
        try:
            async for delta in self.provider.stream(
                messages, api_key=api_key, model=model, cancel=cancel,
            ):
                accumulated += delta
                token_count += 1  # approximate, 1 delta ~= 1 token
                sink.append(delta)
                await _notify(on_chunk, StreamChunk(
                    delta=delta,
                    accumulated=accumulated,
                    token_count=token_count,
                ))
        except PartnerError as e:
            logger.debug("Request failed after %d deltas: %s", token_count, e)
            sink.append(FAILURE_PREFIX + str(e))
            return RequestOutcome(
                status=OutcomeStatus.REQUEST_ERROR,
                intent=intent,
                content=accumulated,
                error=str(e),
            )

        await _notify(on_chunk, StreamChunk(
            delta="",
            accumulated=accumulated,
            token_count=token_count,
            is_complete=True,
        ))

        self.last_code_block = extract_last_code_block(accumulated)
        if self.last_code_block:
            sink.append(APPLY_HINT)

        return RequestOutcome(
            status=OutcomeStatus.OK,
            intent=intent,
            content=accumulated,
            code_block=self.last_code_block,
            cancelled=cancel.is_cancellation_requested,
        )


async def _notify(callback: Callable[[StreamChunk], Any] | None, chunk: StreamChunk) -> None:
    if callback is None:
        return
    result = callback(chunk)
    if asyncio.iscoroutine(result):
        await result
