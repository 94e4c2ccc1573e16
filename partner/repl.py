"""Interactive REPL for Coding Partner.

Keeps one ChatSession alive across requests so the last captured code
block can be shown and applied. Launch with `partner` (no subcommand).
"""

from __future__ import annotations

import asyncio
import logging
import shlex

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from partner import __version__
from partner.apply import apply_code_block
from partner.cancellation import CancellationToken, cancel_on_interrupt
from partner.cli_display import (
    BRAND,
    ConsoleSink,
    render_banner,
    render_code_block,
    render_outcome,
)
from partner.context.builder import FileContext, LineRange
from partner.schemas.messages import RequestOutcome
from partner.session import ChatSession

logger = logging.getLogger(__name__)

# Words that are only commands when typed on their own
_BARE_COMMANDS = {"help", "exit", "quit", "show", "clear"}

# Words that are commands when followed by at most this many arguments
_ARG_COMMANDS = {"file": 2, "model": 1, "apply": 1}

_HELP_ROWS = [
    ("<request>", "Ask a free-form question"),
    ("/<command> <request>", "Ask with an intent, e.g. /fix, /explain, /tests"),
    ("file <path> [start:end]", "Use a file (and optional line range) as context"),
    ("clear", "Stop sending file context"),
    ("model <name>", "Switch model for subsequent requests"),
    ("show", "Show the last captured code block"),
    ("apply [path]", "Write the last code block to the context file or path"),
    ("exit", "Leave the REPL"),
]


class PartnerREPL:
    """Interactive loop around a single ChatSession.

    Tracks the context file, its selection, and the active model.
    Ctrl+C while a reply streams cancels that reply; Ctrl+C at the
    prompt exits.
    """

    def __init__(
        self,
        session: ChatSession,
        console: Console | None = None,
        model: str | None = None,
    ) -> None:
        self.session = session
        self.console = console or Console()
        self.model = model or session.config.model
        self.context: FileContext | None = None
        self.running = True

    def run(self) -> None:
        render_banner(self.console, __version__, self.model)
        while self.running:
            try:
                line = self.console.input(f"[bold {BRAND['green']}]partner›[/] ")
            except (EOFError, KeyboardInterrupt):
                self.console.print()
                break
            self.dispatch(line)

    # ── Dispatch ─────────────────────────────────────────────────

    def dispatch(self, line: str) -> None:
        """Route one input line to a command or a chat request."""
        line = line.strip()
        if not line:
            return

        if line.startswith("/"):
            intent, _, prompt = line[1:].partition(" ")
            self._ask(prompt.strip(), intent=intent or None)
            return

        try:
            words = shlex.split(line)
        except ValueError:
            words = line.split()
        command, args = words[0].lower(), words[1:]

        if command in _BARE_COMMANDS and not args:
            self._run_command(command, args)
        elif command in _ARG_COMMANDS and len(args) <= _ARG_COMMANDS[command]:
            self._run_command(command, args)
        else:
            self._ask(line)

    def _run_command(self, command: str, args: list[str]) -> None:
        if command in ("exit", "quit"):
            self.running = False
        elif command == "help":
            self._show_help()
        elif command == "show":
            self._show_last_block()
        elif command == "clear":
            self.context = None
            self.console.print("[dim]File context cleared.[/dim]")
        elif command == "file":
            self._set_file(args)
        elif command == "model":
            self._set_model(args)
        elif command == "apply":
            self._apply(args)

    # ── Commands ─────────────────────────────────────────────────

    def _show_help(self) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2))
        for usage, description in _HELP_ROWS:
            table.add_row(f"[bold]{escape(usage)}[/bold]", f"[dim]{description}[/dim]")
        self.console.print(table)

    def _set_file(self, args: list[str]) -> None:
        if not args:
            if self.context is None:
                self.console.print("[dim]No file context.[/dim]")
            else:
                selection = f" lines {self.context.line_range}" if self.context.line_range else ""
                self.console.print(f"Context: [bold]{self.context.path}[/bold]{selection}")
            return

        line_range = None
        if len(args) > 1:
            try:
                line_range = LineRange.parse(args[1])
            except ValueError as e:
                self.console.print(f"[red]{e}[/red]")
                return

        context = FileContext(args[0], line_range)
        if not context.path.is_file():
            self.console.print(f"[red]File not found:[/red] {context.path}")
            return
        try:
            context.check_line_range()
        except ValueError as e:
            self.console.print(f"[red]{e}[/red]")
            return
        self.context = context
        self.console.print(f"Context: [bold]{context.path}[/bold]")

    def _set_model(self, args: list[str]) -> None:
        if not args:
            self.console.print(f"Model: [bold]{self.model}[/bold]")
            return
        self.model = args[0]
        self.console.print(f"Model set to [bold]{self.model}[/bold]")

    def _show_last_block(self) -> None:
        if not self.session.last_code_block:
            self.console.print(
                f"[{BRAND['amber']}]No code block captured from the last reply[/]"
            )
            return
        render_code_block(self.console, self.session.last_code_block)

    def _apply(self, args: list[str]) -> None:
        code = self.session.last_code_block
        if not code:
            self.console.print(
                f"[{BRAND['amber']}]No code block captured from the last reply[/]"
            )
            return

        if args:
            result = apply_code_block(args[0], code)
        elif self.context is not None:
            result = apply_code_block(self.context.path, code, self.context.line_range)
        else:
            self.console.print(
                f"[{BRAND['amber']}]Open a file first (file <path>) or pass a path[/]"
            )
            return

        if result.success:
            self.console.print(f"[green]✓ Applied code block to {result.path}[/green]")
        else:
            self.console.print(f"[red]✗ {result.error}[/red]")

    # ── Requests ─────────────────────────────────────────────────

    def _ask(self, prompt: str, intent: str | None = None) -> RequestOutcome:
        outcome = asyncio.run(self._ask_async(prompt, intent))
        render_outcome(self.console, outcome)
        return outcome

    async def _ask_async(self, prompt: str, intent: str | None) -> RequestOutcome:
        sink = ConsoleSink(self.console)
        with cancel_on_interrupt(CancellationToken()) as cancel:
            outcome = await self.session.handle(
                prompt,
                sink,
                intent=intent,
                context=self.context,
                cancel=cancel,
                model=self.model,
            )
        sink.finish()
        return outcome
