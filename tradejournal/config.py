"""Configuration loading for TradeJournal.

Settings live in ``~/.config/tradejournal/config.toml``; the directory can
be moved with the ``TRADEJOURNAL_HOME`` environment variable.  Missing keys
fall back to ``DEFAULT_CONFIG``.

Example config::

    [analytics]
    timezone = "Europe/London"
    base_risk = 25.0

    [sessions]
    Asia = 0
    London = 7
    NewYork = 13

    [limits]
    max_trades_per_day = 4
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

import toml

from tradejournal.analytics.aggregation import DEFAULT_SESSION_STARTS, TimeConvention

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"
DB_FILENAME = "tradejournal.db"

DEFAULT_CONFIG: dict[str, Any] = {
    "analytics": {
        "timezone": "UTC",
        "base_risk": 10.0,
        "starting_balance": 10000.0,
    },
    "sessions": dict(DEFAULT_SESSION_STARTS),
    "limits": {
        "max_trades_per_day": 3,
    },
    "database": {
        "path": "",
    },
}


class ConfigError(Exception):
    """Raised when the config file cannot be read or is invalid."""


def get_config_dir() -> Path:
    """Directory holding the config file and the default database."""
    override = os.environ.get("TRADEJOURNAL_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "tradejournal"


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    """Load configuration merged over the defaults.

    Args:
        path: Config file to read. Uses the default location if not provided.

    Returns:
        Config dict. Defaults only when the file does not exist.

    Raises:
        ConfigError: If the file exists but is not valid TOML, or a known
            section is not a table.
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        loaded = toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    for section, default in DEFAULT_CONFIG.items():
        if isinstance(default, dict) and section in loaded and not isinstance(loaded[section], dict):
            raise ConfigError(f"Invalid config {config_path}: [{section}] must be a table")

    config = _merge(DEFAULT_CONFIG, loaded)
    # A [sessions] table replaces the defaults rather than extending them
    if "sessions" in loaded:
        config["sessions"] = dict(loaded["sessions"])
    return config


def get_db_path(config: dict[str, Any]) -> Path:
    configured = config.get("database", {}).get("path")
    if configured:
        return Path(configured).expanduser()
    return get_config_dir() / DB_FILENAME


def time_convention(config: dict[str, Any]) -> TimeConvention:
    """Build the TimeConvention described by the config.

    Raises:
        ConfigError: If the time zone or sessions are invalid.
    """
    analytics = config.get("analytics", {})
    sessions = config.get("sessions") or dict(DEFAULT_SESSION_STARTS)
    if not isinstance(analytics, dict) or not isinstance(sessions, dict):
        raise ConfigError("Invalid analytics settings: [analytics] and [sessions] must be tables")
    tz_name = str(analytics.get("timezone", "UTC"))
    try:
        starts = sorted(((name, int(hour)) for name, hour in sessions.items()), key=lambda s: s[1])
        return TimeConvention(tz_name, starts)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid analytics settings: {e}") from e
