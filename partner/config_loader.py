"""TOML configuration loader.

Loads the packaged defaults.toml and overlays the user's
~/.partner/config.toml when it exists. Both files use a single
[partner] table whose keys mirror PartnerConfig fields.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from partner.errors import ConfigError
from partner.keys import PARTNER_HOME
from partner.schemas.config import PartnerConfig

logger = logging.getLogger(__name__)

# Default config directory relative to the partner package
_CONFIG_DIR = Path(__file__).parent / "config"
DEFAULTS_FILE = _CONFIG_DIR / "defaults.toml"
USER_CONFIG_FILE = PARTNER_HOME / "config.toml"


def _read_section(path: Path) -> dict:
    """Return the [partner] table of a TOML file.

    Raises:
        ConfigError: If the file is unreadable, not valid TOML, or the
                     [partner] entry is not a table.
    """
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    section = raw.get("partner", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[partner] in {path} must be a table")
    return section


def load_config(config_path: Path | None = None) -> PartnerConfig:
    """Load the effective configuration.

    Args:
        config_path: Explicit user config file. It must exist. When
                     omitted, ~/.partner/config.toml is used if present.

    Returns:
        A validated PartnerConfig.

    Raises:
        ConfigError: If a file is missing, malformed, or holds invalid values.
    """
    values: dict = {}
    if DEFAULTS_FILE.is_file():
        values.update(_read_section(DEFAULTS_FILE))

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        values.update(_read_section(config_path))
    elif USER_CONFIG_FILE.is_file():
        logger.debug("Loading user config from %s", USER_CONFIG_FILE)
        values.update(_read_section(USER_CONFIG_FILE))

    try:
        return PartnerConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
