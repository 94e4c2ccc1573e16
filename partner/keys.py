"""API key lookup for Coding Partner.

Keys come from the process environment, then ~/.partner/keys.env, then
a project .env file. Nothing is ever written back to disk.

A key entered at the interactive prompt is kept in os.environ for the
lifetime of the process only.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Directory for user-level Coding Partner configuration
PARTNER_HOME = Path.home() / ".partner"
KEYS_FILE = PARTNER_HOME / "keys.env"

DEFAULT_KEY_ENV = "OPENAI_API_KEY"


class KeySource(Protocol):
    """Credential collaborator consulted before every request.

    The session calls get_stored_key() first and only falls back to
    prompt_and_store_key() when it returns nothing.
    """

    def get_stored_key(self) -> str | None: ...

    def prompt_and_store_key(self) -> str | None: ...


def _parse_env_file(path: Path) -> dict[str, str]:
    """Read ``NAME=value`` pairs from a keys file.

    Blank lines, ``#`` comments and lines without ``=`` are ignored.
    Surrounding quotes are stripped from values.
    """
    entries: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        name, sep, value = raw.strip().partition("=")
        if not sep or name.startswith("#"):
            continue
        name = name.strip()
        if name:
            entries[name] = value.strip().strip("'\"")
    return entries


def load_keys_env() -> None:
    """Copy keys from the key files into os.environ without overriding.

    ``KEYS_FILE`` (``~/.partner/keys.env``) is read before ``./.env``, and
    a variable that already holds a value is never replaced, so the shell
    wins over the user file and the user file wins over the project file.
    """
    for env_file in (KEYS_FILE, Path.cwd() / ".env"):
        if not env_file.is_file():
            continue
        try:
            entries = _parse_env_file(env_file)
        except (OSError, UnicodeDecodeError):
            logger.debug("Could not read %s", env_file)
            continue
        for name, value in entries.items():
            if not os.environ.get(name):
                os.environ[name] = value
                logger.debug("Loaded %s from %s", name, env_file)


def _ask_for_key(env_var: str) -> str:
    from rich.prompt import Prompt

    return Prompt.ask(f"Enter OpenAI API Key ({env_var})", password=True, default="", show_default=False)


class EnvKeySource:
    """KeySource backed by environment variables and keys.env files.

    Args:
        env_var: Environment variable holding the key.
        prompt: Callable asking the user for a key; receives env_var.
                Defaults to a masked Rich prompt.
    """

    def __init__(
        self,
        env_var: str = DEFAULT_KEY_ENV,
        prompt: Callable[[str], str | None] | None = None,
    ) -> None:
        self.env_var = env_var
        self._prompt = prompt or _ask_for_key

    def get_stored_key(self) -> str | None:
        load_keys_env()
        value = os.environ.get(self.env_var, "").strip()
        return value or None

    def prompt_and_store_key(self) -> str | None:
        try:
            value = (self._prompt(self.env_var) or "").strip()
        except (EOFError, KeyboardInterrupt):
            return None
        if not value:
            return None
        os.environ[self.env_var] = value
        logger.debug("Stored %s for this session", self.env_var)
        return value
