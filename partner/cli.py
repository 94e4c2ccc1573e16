"""Coding Partner CLI — Typer + Rich terminal interface.

Commands: ask, config show, config path. Running `partner` with no
subcommand starts the interactive REPL.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from partner import __version__
from partner.apply import apply_code_block
from partner.cancellation import CancellationToken, cancel_on_interrupt
from partner.cli_display import ConsoleSink, render_outcome
from partner.config_loader import DEFAULTS_FILE, USER_CONFIG_FILE, load_config
from partner.context.builder import FileContext, LineRange
from partner.errors import ConfigError
from partner.keys import KEYS_FILE, EnvKeySource
from partner.schemas.config import PartnerConfig
from partner.schemas.messages import RequestOutcome
from partner.session import ChatSession

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="partner",
    help="Stream coding help from an OpenAI-compatible chat endpoint.",
    no_args_is_help=False,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"partner {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(
    config_file: Path | None = None,
    *,
    api_base: str | None = None,
    temperature: float | None = None,
) -> PartnerConfig:
    """Load config and apply command-line overrides, exit on error."""
    try:
        config = load_config(config_file)
        overrides = {}
        if api_base is not None:
            overrides["api_base"] = api_base
        if temperature is not None:
            overrides["temperature"] = temperature
        if overrides:
            config = PartnerConfig(**{**config.model_dump(), **overrides})
        return config
    except ConfigError as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None
    except ValidationError as e:
        console.print(f"[red]Invalid option:[/red] {e.errors()[0]['msg']}")
        raise typer.Exit(1) from None


def _build_session(config: PartnerConfig) -> ChatSession:
    return ChatSession(config, EnvKeySource(config.api_key_env))


async def _stream_once(
    session: ChatSession,
    prompt: str,
    *,
    intent: str | None,
    context: FileContext | None,
    model: str | None,
) -> RequestOutcome:
    sink = ConsoleSink(console)
    with cancel_on_interrupt(CancellationToken()) as cancel:
        outcome = await session.handle(
            prompt, sink, intent=intent, context=context, cancel=cancel, model=model,
        )
    sink.finish()
    return outcome


# ── App Callback ────────────────────────────────────────────────


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log debug output to stderr.",
    ),
    config_file: Path = typer.Option(
        None, "--config",
        help="Config file to use instead of ~/.partner/config.toml.",
    ),
) -> None:
    """Coding Partner — streaming coding help in your terminal."""
    _configure_logging(verbose)
    ctx.obj = {"config_file": config_file}
    if ctx.invoked_subcommand is None:
        from partner.repl import PartnerREPL

        config = _load_config(config_file)
        PartnerREPL(_build_session(config), console=console).run()


# ── partner ask ─────────────────────────────────────────────────


@app.command()
def ask(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="What to ask."),
    file: Path = typer.Option(
        None, "--file", "-f",
        help="File sent as context (the active document).",
    ),
    lines: str = typer.Option(
        None, "--lines", "-l",
        help="Line range START:END of --file sent as the selection.",
    ),
    intent: str = typer.Option(
        None, "--intent", "-i",
        help="Slash command to send with the request, e.g. fix, explain, tests.",
    ),
    model: str = typer.Option(None, "--model", "-m", help="Model override."),
    api_base: str = typer.Option(None, "--api-base", help="API base URL override."),
    temperature: float = typer.Option(None, "--temperature", "-t", help="Sampling temperature."),
    apply: bool = typer.Option(
        False, "--apply",
        help="Write the reply's last code block into --file (or its --lines).",
    ),
) -> None:
    """Send one request and stream the reply."""
    config_file = (ctx.obj or {}).get("config_file")
    config = _load_config(config_file, api_base=api_base, temperature=temperature)

    line_range = None
    if lines is not None:
        if file is None:
            console.print("[red]--lines requires --file[/red]")
            raise typer.Exit(1)
        try:
            line_range = LineRange.parse(lines)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1) from None

    if apply and file is None:
        console.print("[red]--apply requires --file[/red]")
        raise typer.Exit(1)

    context = FileContext(file, line_range) if file is not None else None
    if context is not None:
        try:
            context.check_line_range()
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1) from None

    session = _build_session(config)

    outcome = asyncio.run(
        _stream_once(session, prompt, intent=intent, context=context, model=model)
    )
    render_outcome(console, outcome)
    if not outcome.ok:
        raise typer.Exit(1)

    if apply:
        if not session.last_code_block:
            console.print("[yellow]No code block captured from the last reply[/yellow]")
            raise typer.Exit(1)
        result = apply_code_block(file, session.last_code_block, line_range)
        if not result.success:
            console.print(f"[red]✗ {result.error}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]✓ Applied code block to {result.path}[/green]")


# ── partner config ──────────────────────────────────────────────


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    config = _load_config((ctx.obj or {}).get("config_file"))

    table = Table(title="Configuration", show_header=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name, value in config.model_dump(mode="json").items():
        table.add_row(name, "—" if value is None else str(value))
    console.print(table)


@config_app.command("path")
def config_path() -> None:
    """Show where configuration and keys are read from."""
    for label, path in (
        ("Defaults", DEFAULTS_FILE),
        ("User config", USER_CONFIG_FILE),
        ("Keys", KEYS_FILE),
    ):
        state = "[green]found[/green]" if path.is_file() else "[dim]not found[/dim]"
        console.print(f"{label:<12} {path}  {state}")
