"""Coding Partner — streaming chat completions for the terminal."""

__version__ = "0.1.0"

from partner.cancellation import CancellationToken
from partner.providers.code_blocks import extract_code_blocks, extract_last_code_block
from partner.providers.sse import StreamDecoder, parse_frame
from partner.session import ChatSession

__all__ = [
    "CancellationToken",
    "ChatSession",
    "StreamDecoder",
    "extract_code_blocks",
    "extract_last_code_block",
    "parse_frame",
]
