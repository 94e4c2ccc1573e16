"""Incremental decoder for OpenAI-style server-sent event streams.

Reassembles ``data:`` frames that arrive split across arbitrary network
chunks and turns each frame's JSON payload into a text delta. Malformed
frames are classified and dropped; they never abort the stream.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from partner.cancellation import CancellationToken
from partner.schemas.streaming import FrameKind, FrameResult

logger = logging.getLogger(__name__)

FRAME_SEPARATOR = "\n\n"
DONE_SENTINEL = "[DONE]"
_DATA_PREFIX = "data:"


def parse_frame(frame: str) -> FrameResult:
    """Classify a single complete SSE frame.

    Args:
        frame: Raw frame text without its trailing blank-line separator.

    Returns:
        A FrameResult. Only DELTA results carry text.
    """
    line = frame.strip()
    if not line.startswith(_DATA_PREFIX):
        # Comments, ids, event names and keep-alives
        return FrameResult(kind=FrameKind.SKIP)

    payload = line[len(_DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return FrameResult(kind=FrameKind.DONE)

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed frame: %.80s", payload)
        return FrameResult(kind=FrameKind.SKIP)

    return _delta_from_payload(data)


def _delta_from_payload(data: object) -> FrameResult:
    """Pull ``choices[0].delta.content`` out of a decoded payload.

    Missing keys mean the frame carries no text (EMPTY); keys holding the
    wrong type mean the payload has an unexpected shape (SKIP).
    """
    if not isinstance(data, dict):
        return FrameResult(kind=FrameKind.SKIP)

    choices = data.get("choices")
    if not choices:
        return FrameResult(kind=FrameKind.EMPTY)
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        return FrameResult(kind=FrameKind.SKIP)

    delta = choices[0].get("delta")
    if delta is None:
        return FrameResult(kind=FrameKind.EMPTY)
    if not isinstance(delta, dict):
        return FrameResult(kind=FrameKind.SKIP)

    content = delta.get("content")
    if content is None or content == "":
        return FrameResult(kind=FrameKind.EMPTY)
    if not isinstance(content, str):
        return FrameResult(kind=FrameKind.SKIP)

    return FrameResult(kind=FrameKind.DELTA, delta=content)


class StreamDecoder:
    """Turns a chunked SSE response body into a lazy sequence of deltas.

    One instance serves exactly one response stream. The decoder owns a
    text buffer holding whatever trailing data has not yet been confirmed
    as a complete frame; that data is discarded if the stream ends or is
    cancelled before the frame is terminated.

    Usage:
        decoder = StreamDecoder(cancel)
        async for delta in decoder.deltas(response.aiter_bytes()):
            sink.append(delta)
    """

    def __init__(self, cancel: CancellationToken | None = None) -> None:
        self._cancel = cancel or CancellationToken()
        # Replacement characters keep a bad byte sequence from failing the stream
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._done = False
        self._started = False

    @property
    def done(self) -> bool:
        """True once the ``[DONE]`` sentinel has been seen."""
        return self._done

    @property
    def pending(self) -> str:
        """Buffered text not yet terminated by a frame separator."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[FrameResult]:
        """Append a raw chunk and classify every frame it completes.

        Frames are returned in stream order. Processing stops at the
        ``[DONE]`` sentinel: frames after it are neither parsed nor
        returned, and later calls return nothing.

        Args:
            chunk: Raw bytes from the response body (may be empty or end
                   in the middle of a multi-byte character).

        Returns:
            FrameResults for the frames completed by this chunk.
        """
        if self._done:
            return []

        self._buffer += self._decoder.decode(chunk)
        *frames, self._buffer = self._buffer.split(FRAME_SEPARATOR)

        results: list[FrameResult] = []
        for frame in frames:
            result = parse_frame(frame)
            results.append(result)
            if result.kind == FrameKind.DONE:
                self._done = True
                self._buffer = ""
                break
        return results

    async def deltas(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
        """Yield text deltas from an async source of raw chunks.

        Terminates when the source is exhausted, the ``[DONE]`` sentinel
        arrives, or the cancellation token is set. Cancellation is checked
        once per chunk, before the chunk is decoded.

        Raises:
            RuntimeError: If this decoder has already consumed a stream.
        """
        if self._started:
            raise RuntimeError("StreamDecoder instances serve exactly one stream")
        self._started = True

        async for chunk in chunks:
            if self._cancel.is_cancellation_requested:
                logger.debug(
                    "Stream cancelled, discarding %d buffered chars", len(self._buffer)
                )
                return

            for result in self.feed(chunk):
                if result.kind == FrameKind.DELTA:
                    yield result.delta
                elif result.kind == FrameKind.DONE:
                    logger.debug("Received %s sentinel", DONE_SENTINEL)
                    return

        if self._buffer.strip():
            logger.debug("Stream ended with %d unterminated chars", len(self._buffer))
