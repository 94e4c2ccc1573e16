"""Coding Partner provider layer.

Every completion request goes through a ModelProvider. The HTTP-backed
OpenAIStreamProvider decodes the SSE response body with StreamDecoder.
"""

from partner.providers.base import ModelProvider
from partner.providers.code_blocks import extract_code_blocks, extract_last_code_block
from partner.providers.openai_stream import OpenAIStreamProvider, stream_chat_completion
from partner.providers.sse import StreamDecoder, parse_frame

__all__ = [
    "ModelProvider",
    "OpenAIStreamProvider",
    "StreamDecoder",
    "extract_code_blocks",
    "extract_last_code_block",
    "parse_frame",
    "stream_chat_completion",
]
