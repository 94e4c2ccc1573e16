"""Cooperative cancellation signal shared between a host and a request."""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class CancellationToken:
    """A one-way flag a host sets to stop an in-flight stream.

    The stream decoder polls ``is_cancellation_requested`` once per chunk
    boundary. Once set, the flag cannot be cleared; create a new token
    for the next request.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if not self._cancelled:
            logger.debug("Cancellation requested")
        self._cancelled = True


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[CancellationToken]:
    """Route the first Ctrl+C to ``token`` while the block runs.

    Must be entered from inside a running event loop. The handler removes
    itself after the first interrupt, so a second Ctrl+C raises
    KeyboardInterrupt as usual. On loops without signal support (Windows)
    this is a no-op.
    """
    loop = asyncio.get_running_loop()

    def _on_sigint() -> None:
        token.cancel()
        loop.remove_signal_handler(signal.SIGINT)

    try:
        loop.add_signal_handler(signal.SIGINT, _on_sigint)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        installed = False

    try:
        yield token
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)
