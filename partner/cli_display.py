"""Terminal display components for Coding Partner.

Provides the Rich-backed output sink that streams deltas as they arrive,
plus small renderers for banners, code blocks, and outcome messages.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from partner.schemas.messages import OutcomeStatus, RequestOutcome

# ── Brand Colors ──────────────────────────────────────────────────

BRAND = {
    "mint": "#00ffbb",
    "green": "#00ff88",
    "gold": "#D4A843",
    "dim": "#6a8a6a",
    "amber": "#ffaa00",
    "red": "#ff4444",
}


class ConsoleSink:
    """OutputSink that writes streamed text straight to a Rich console.

    Deltas are printed verbatim (no markup, no highlighting, no wrapping)
    so fenced code and markdown come through exactly as the model sent
    them.
    """

    def __init__(self, console: Console) -> None:
        self._console = console
        self._wrote_text = False

    def append(self, text: str) -> None:
        self._console.print(
            text, end="", markup=False, highlight=False, soft_wrap=True,
        )
        self._wrote_text = True

    def progress(self, message: str) -> None:
        self._console.print(Text(f"{message}…", style=BRAND["dim"]))

    def finish(self) -> None:
        """Terminate the streamed reply with a newline if anything was written."""
        if self._wrote_text:
            self._console.print()
            self._wrote_text = False


def render_banner(console: Console, version: str, model: str) -> None:
    """Print the REPL welcome line."""
    text = Text()
    text.append("◆ ", style=BRAND["mint"])
    text.append("Coding Partner", style=f"bold {BRAND['green']}")
    text.append(f" v{version}", style=BRAND["dim"])
    text.append(f"  ·  {model}", style=BRAND["gold"])
    console.print(text)
    console.print(
        Text("Type a request, /<command> <request>, or 'help'.", style=BRAND["dim"])
    )


def render_code_block(console: Console, code: str, language: str = "text") -> None:
    """Show a captured code block in a panel."""
    console.print(Panel(
        Syntax(code, language, line_numbers=True, word_wrap=True),
        title="Last code block",
        border_style=BRAND["gold"],
    ))


def render_outcome(console: Console, outcome: RequestOutcome) -> None:
    """Print a one-line footer describing how a request ended."""
    if outcome.status == OutcomeStatus.OK:
        if outcome.cancelled:
            console.print(f"[{BRAND['amber']}]⊘ Cancelled[/]")
        return
    if outcome.status == OutcomeStatus.NO_KEY:
        console.print(f"[{BRAND['red']}]✗ No API key[/]")
    else:
        console.print(f"[{BRAND['red']}]✗ Request failed[/]")
