"""Editor context for a chat request.

A DocumentContext supplies the selected text and the active document.
The builder turns it into the fenced context block appended to the user
prompt: the selection when there is one, otherwise the whole document if
it fits within the character limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from partner.schemas.config import ContextOverflow

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTEXT_CHARS = 60_000


class DocumentContext(Protocol):
    """Context collaborator provided by the host."""

    def get_selected_text(self) -> str | None: ...

    def get_active_document_text(self) -> str | None: ...


@dataclass(frozen=True)
class LineRange:
    """A 1-based, inclusive range of lines acting as the selection."""

    start: int
    end: int

    @classmethod
    def parse(cls, value: str) -> LineRange:
        """Parse ``"START:END"`` or a single line number ``"N"``.

        Raises:
            ValueError: If the value is malformed or the range is empty.
        """
        head, sep, tail = value.partition(":")
        try:
            start = int(head)
            end = int(tail) if sep else start
        except ValueError:
            raise ValueError(f"Invalid line range: {value!r} (expected START:END)") from None
        if start < 1 or end < start:
            raise ValueError(f"Invalid line range: {value!r}")
        return cls(start, end)

    def __str__(self) -> str:
        return f"{self.start}:{self.end}"


class FileContext:
    """DocumentContext backed by a file on disk.

    The file plays the active document; an optional line range plays the
    editor selection. The file is re-read on every call so edits made
    between requests are picked up.
    """

    def __init__(self, path: str | Path, line_range: LineRange | None = None) -> None:
        self.path = Path(path)
        self.line_range = line_range

    def _read(self) -> str | None:
        try:
            return self.path.read_bytes().decode("utf-8", errors="replace")
        except OSError:
            logger.debug("Could not read context file %s", self.path)
            return None

    def get_selected_text(self) -> str | None:
        if self.line_range is None:
            return None
        text = self._read()
        if text is None:
            return None
        lines = text.splitlines()
        selected = lines[self.line_range.start - 1:self.line_range.end]
        return "\n".join(selected) or None

    def get_active_document_text(self) -> str | None:
        return self._read()

    def check_line_range(self) -> None:
        """Verify the line range lies within the file.

        Raises:
            ValueError: If the file cannot be read or the range ends
                        after its last line.
        """
        if self.line_range is None:
            return
        text = self._read()
        if text is None:
            raise ValueError(f"Could not read {self.path}")
        line_count = len(text.splitlines())
        if self.line_range.end > line_count:
            raise ValueError(
                f"Line range {self.line_range} is outside {self.path} ({line_count} lines)"
            )


def build_context_block(
    context: DocumentContext | None,
    max_chars: int = DEFAULT_MAX_CONTEXT_CHARS,
    overflow: ContextOverflow = ContextOverflow.OMIT,
) -> str:
    """Assemble the fenced context block for the user prompt.

    Args:
        context: The host's document context, or None.
        max_chars: Largest active document included as context.
        overflow: OMIT drops an oversized document entirely; TRUNCATE keeps
                  its first max_chars characters. Selections are never capped.

    Returns:
        The context block, or an empty string when there is nothing to add.
    """
    if context is None:
        return ""

    selected = context.get_selected_text()
    if selected:
        return "\n".join(["Selected code follows", "```", selected, "```"])

    text = context.get_active_document_text()
    if not text:
        return ""
    if len(text) > max_chars:
        if overflow == ContextOverflow.OMIT:
            logger.debug("Active document omitted (%d chars > %d)", len(text), max_chars)
            return ""
        text = text[:max_chars]
    return "\n".join(["Active file content follows", "```", text, "```"])
