"""Write a captured code block back into a file.

With a line range the block replaces exactly those lines (the editor
"selection"); without one it replaces the whole file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from partner.context.builder import LineRange

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of applying a code block to a file."""

    success: bool
    path: str
    lines_replaced: int = 0
    error: str = ""


def apply_code_block(
    path: str | Path,
    code: str,
    line_range: LineRange | None = None,
) -> ApplyResult:
    """Replace a line range, or the whole file, with ``code``.

    Args:
        path: Target file. Must exist when a line range is given; for a
              whole-file replacement it is created if missing.
        code: The code block body.
        line_range: 1-based inclusive lines to replace, or None.

    Returns:
        ApplyResult with success status; errors are reported, not raised.
    """
    target = Path(path)

    if line_range is None:
        try:
            # Line count only; the old content need not be UTF-8
            previous = target.read_bytes() if target.exists() else b""
            body = code if code.endswith("\n") else code + "\n"
            target.write_text(body, encoding="utf-8")
        except OSError as e:
            return ApplyResult(success=False, path=str(target), error=str(e))
        logger.debug("Replaced %s (%d chars)", target, len(code))
        return ApplyResult(
            success=True,
            path=str(target),
            lines_replaced=len(previous.splitlines()),
        )

    if not target.is_file():
        return ApplyResult(success=False, path=str(target), error=f"File not found: {target}")

    try:
        content = target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return ApplyResult(success=False, path=str(target), error=str(e))

    lines = content.splitlines(keepends=True)
    if line_range.end > len(lines):
        return ApplyResult(
            success=False,
            path=str(target),
            error=f"Line range {line_range} is outside {target} ({len(lines)} lines)",
        )

    replacement = code if code.endswith("\n") else code + "\n"
    new_lines = (
        lines[:line_range.start - 1]
        + replacement.splitlines(keepends=True)
        + lines[line_range.end:]
    )

    try:
        target.write_text("".join(new_lines), encoding="utf-8")
    except OSError as e:
        return ApplyResult(success=False, path=str(target), error=str(e))

    replaced = line_range.end - line_range.start + 1
    logger.debug("Replaced lines %s of %s", line_range, target)
    return ApplyResult(success=True, path=str(target), lines_replaced=replaced)
