"""Fenced code block extraction from markdown replies."""

from __future__ import annotations

import re

# Opening fence with an optional language tag, a non-greedy body, and a
# closing fence on its own line. An unterminated fence never matches.
_CODE_BLOCK_RE = re.compile(
    r"```[\w+-]*\n"          # opening fence with optional language
    r"(.*?)"                 # code content (non-greedy)
    r"\n```",                # closing fence
    re.DOTALL,
)


def extract_code_blocks(content: str) -> list[str]:
    """Return the body of every fenced code block, in order of appearance.

    Matches are non-overlapping and scanned left to right. The language
    tag is ignored and the body is returned verbatim.
    """
    if not content:
        return []
    return [match.group(1) for match in _CODE_BLOCK_RE.finditer(content)]


def extract_last_code_block(content: str) -> str | None:
    """Return the body of the last fenced code block, or None if there is none.

    "Last" means last by start position. The content is not validated
    against its language tag.

    Args:
        content: The full accumulated reply text.

    Returns:
        The inner text of the last well-formed block, or None.
    """
    blocks = extract_code_blocks(content)
    return blocks[-1] if blocks else None
