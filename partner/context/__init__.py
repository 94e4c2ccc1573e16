"""Context injection for editor-aware chat requests.

Reads the selection or active document from a DocumentContext and
formats it as a fenced block for the user prompt.
"""

from partner.context.builder import (
    DocumentContext,
    FileContext,
    LineRange,
    build_context_block,
)

__all__ = [
    "DocumentContext",
    "FileContext",
    "LineRange",
    "build_context_block",
]
