"""
knows configuration

Module-level defaults, optionally overridden by a YAML file at
~/.knows/config.yaml (or the path in $KNOWS_CONFIG).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError
from .utils.logging_config import get_logger

logger = get_logger('config')

APP_NAME = "knows"
APP_VERSION = "1.0.0"

# Per-user state directory (logs, config)
APP_DIR = Path.home() / ".knows"
CONFIG_FILE = APP_DIR / "config.yaml"
CONFIG_ENV_VAR = "KNOWS_CONFIG"

# Watch refresh interval in milliseconds
DEFAULT_INTERVAL_MS = 2000

# Output format used when none is given
DEFAULT_FORMAT = "text"

# External tool limits
MAX_TOOL_OUTPUT_BYTES = 1024 * 1024  # 1 MiB
TOOL_TIMEOUT_SECONDS = 15.0

# Thread pool size for pid lookups and kill fan-out
MAX_WORKERS = 8

# Bytes that stop `knows watch`
CANCEL_KEYS = {
    b"\x03": "Ctrl+C",
    b"\x11": "Ctrl+Q",
}

# Listing tool invocations
LSOF_COMMAND = ["lsof", "-iTCP", "-sTCP:LISTEN", "-P", "-n"]
NETSTAT_COMMAND = ["netstat", "-ano"]


@dataclass
class Settings:
    """Effective runtime settings."""
    interval_ms: int = DEFAULT_INTERVAL_MS
    default_format: str = DEFAULT_FORMAT
    max_output_bytes: int = MAX_TOOL_OUTPUT_BYTES
    tool_timeout: float = TOOL_TIMEOUT_SECONDS
    max_workers: int = MAX_WORKERS


def config_path() -> Path:
    """Where the user config file is looked up."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else CONFIG_FILE


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings, applying overrides from a YAML file if one exists.

    Args:
        path: Explicit config file. Defaults to config_path().

    Returns:
        Settings with file values applied over the defaults.

    Raises:
        ConfigError: If the file exists but is not a valid YAML mapping.
    """
    settings = Settings()
    path = Path(path) if path else config_path()

    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return settings

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(Settings)}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key '{key}' in {path}")
            continue
        setattr(settings, key, _coerce(key, value, path))

    logger.info(f"Loaded settings from {path}")
    return settings


def _coerce(key: str, value, path: Path):
    """Convert a YAML value to the type of the matching Settings field."""
    default = getattr(Settings(), key)
    try:
        if isinstance(default, bool) or isinstance(value, bool):
            raise TypeError("booleans are not accepted")
        converted = type(default)(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for '{key}' in {path}: {value!r}") from e
    if isinstance(converted, (int, float)) and converted <= 0:
        raise ConfigError(f"'{key}' in {path} must be positive, got {value!r}")
    return converted
