"""Configuration management for geocatalog catalogs.

Settings resolve with the following precedence (highest to lowest):
1. Explicit value (CLI argument or function keyword)
2. Environment variable (GEOCATALOG_<KEY>)
3. Catalog config file
4. Built-in default

Config is stored in `<catalog>/.geocatalog/config.yaml`.

Usage:
    from geocatalog.config import get_setting, set_setting, resolve_settings

    # Get a single raw setting with precedence resolution
    scope = get_setting("item_id_scope", catalog_path=catalog_path)

    # Get all settings, typed and validated
    settings = resolve_settings(catalog_path, lock_timeout=cli_timeout)

    # Persist a setting
    set_setting(catalog_path, "max_limit", 500)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from geocatalog.errors import ConfigInvalidValueError, ConfigParseError

# Config directory and file name (inside the catalog root)
CONFIG_DIRNAME = ".geocatalog"
CONFIG_FILENAME = "config.yaml"

ITEM_ID_SCOPES = ("global", "collection")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Built-in defaults; unknown keys are still allowed in the file
DEFAULTS: dict[str, Any] = {
    "store": "file",
    "item_id_scope": "global",
    "lock_timeout": None,
    "default_limit": 100,
    "max_limit": 1000,
    "log_level": "WARNING",
}

KNOWN_SETTINGS: frozenset[str] = frozenset(DEFAULTS)


@dataclass(frozen=True)
class Settings:
    """Resolved, validated settings for one catalog.

    Attributes:
        store: Store name ("file", "memory", or a plugin).
        item_id_scope: "global" or "collection".
        lock_timeout: Seconds to wait for a collection lock; None waits forever.
        default_limit: Page size when a query gives none.
        max_limit: Largest page size a query may request.
        log_level: Logging level name.
    """

    store: str = DEFAULTS["store"]
    item_id_scope: str = DEFAULTS["item_id_scope"]
    lock_timeout: float | None = DEFAULTS["lock_timeout"]
    default_limit: int = DEFAULTS["default_limit"]
    max_limit: int = DEFAULTS["max_limit"]
    log_level: str = DEFAULTS["log_level"]


def get_config_path(catalog_path: Path) -> Path:
    """Get the path to the config file for a catalog."""
    return catalog_path / CONFIG_DIRNAME / CONFIG_FILENAME


def load_config(catalog_path: Path) -> dict[str, Any]:
    """Load configuration from .geocatalog/config.yaml.

    Returns:
        Config dictionary. Returns empty dict if file doesn't exist.

    Raises:
        ConfigParseError: If the file is not valid YAML or not a mapping.
    """
    config_file = get_config_path(catalog_path)

    if not config_file.exists():
        return {}

    content = config_file.read_text()
    if not content.strip():
        return {}

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigParseError(str(config_file), str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(str(config_file), "top level must be a mapping")
    return data


def save_config(catalog_path: Path, config: dict[str, Any]) -> None:
    """Save configuration to .geocatalog/config.yaml.

    Creates the .geocatalog directory if it doesn't exist.
    """
    config_dir = catalog_path / CONFIG_DIRNAME
    config_dir.mkdir(parents=True, exist_ok=True)

    content = yaml.safe_dump(config, default_flow_style=False, sort_keys=False)
    (config_dir / CONFIG_FILENAME).write_text(content)


def _get_env_var_name(key: str) -> str:
    """Convert a setting key to environment variable name.

    Example: "lock_timeout" -> "GEOCATALOG_LOCK_TIMEOUT"
    """
    return f"GEOCATALOG_{key.upper()}"


def get_setting(
    key: str,
    cli_value: Any | None = None,
    catalog_path: Path | None = None,
) -> Any | None:
    """Resolve a setting with full precedence.

    Values are returned raw (environment values are strings); use
    :func:`resolve_settings` for typed, validated values.

    Args:
        key: Setting key (e.g., "item_id_scope")
        cli_value: Explicit value (highest precedence)
        catalog_path: Path to catalog root for loading config file

    Returns:
        Resolved value, or the built-in default (None for unknown keys).
    """
    if cli_value is not None:
        return cli_value

    env_value = os.environ.get(_get_env_var_name(key))
    if env_value is not None:
        return env_value

    if catalog_path is not None:
        config = load_config(catalog_path)
        if key in config:
            return config[key]

    return DEFAULTS.get(key)


def set_setting(catalog_path: Path, key: str, value: Any) -> None:
    """Set a configuration value.

    Known settings are validated before they are written.

    Raises:
        ConfigInvalidValueError: If a known setting gets an invalid value.
    """
    if key in KNOWN_SETTINGS:
        value = coerce_setting(key, value)
    config = load_config(catalog_path)
    config[key] = value
    save_config(catalog_path, config)


def unset_setting(catalog_path: Path, key: str) -> bool:
    """Remove a configuration value.

    Returns:
        True if the key existed and was removed, False if key didn't exist.
    """
    config = load_config(catalog_path)
    if key not in config:
        return False
    del config[key]
    save_config(catalog_path, config)
    return True


def list_settings(catalog_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """List all settings with their sources.

    Returns:
        Dict mapping setting keys to {"value": ..., "source": ...} where
        source is "env", "catalog", or "default".
    """
    config = load_config(catalog_path) if catalog_path else {}
    all_keys = set(config.keys()) | KNOWN_SETTINGS

    result: dict[str, dict[str, Any]] = {}
    for key in sorted(all_keys):
        result[key] = {
            "value": get_setting(key, catalog_path=catalog_path),
            "source": _get_setting_source(key, catalog_path),
        }
    return result


def _get_setting_source(key: str, catalog_path: Path | None) -> str:
    """Determine the source of a setting's value: "env", "catalog", or "default"."""
    if _get_env_var_name(key) in os.environ:
        return "env"
    if catalog_path is not None and key in load_config(catalog_path):
        return "catalog"
    return "default"


def coerce_setting(key: str, value: Any) -> Any:
    """Convert a raw setting value (possibly an env string) to its typed form.

    Raises:
        ConfigInvalidValueError: If the value is outside the setting's domain.
    """
    if key == "item_id_scope":
        if value not in ITEM_ID_SCOPES:
            raise ConfigInvalidValueError(key, value, f"expected one of {', '.join(ITEM_ID_SCOPES)}")
        return value
    if key == "log_level":
        level = str(value).upper()
        if level not in LOG_LEVELS:
            raise ConfigInvalidValueError(key, value, f"expected one of {', '.join(LOG_LEVELS)}")
        return level
    if key == "lock_timeout":
        if value is None or (isinstance(value, str) and value.lower() in ("", "none")):
            return None
        try:
            timeout = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigInvalidValueError(key, value, "expected a number of seconds") from e
        if timeout < 0:
            raise ConfigInvalidValueError(key, value, "must not be negative")
        return timeout
    if key in ("default_limit", "max_limit"):
        try:
            limit = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigInvalidValueError(key, value, "expected an integer") from e
        if limit < 1:
            raise ConfigInvalidValueError(key, value, "must be at least 1")
        return limit
    if key == "store":
        if not isinstance(value, str) or not value.strip():
            raise ConfigInvalidValueError(key, value, "expected a store name")
        return value
    return value


def resolve_settings(catalog_path: Path | None = None, **explicit: Any) -> Settings:
    """Resolve and validate every known setting.

    Args:
        catalog_path: Catalog root for the config file.
        **explicit: Explicit values by setting name; None means "not given".

    Raises:
        ConfigInvalidValueError: On an invalid value from any source.
        ConfigParseError: If the config file is malformed.
    """
    values = {
        key: coerce_setting(key, get_setting(key, explicit.get(key), catalog_path))
        for key in DEFAULTS
    }
    if values["default_limit"] > values["max_limit"]:
        raise ConfigInvalidValueError(
            "default_limit", values["default_limit"], f"exceeds max_limit {values['max_limit']}"
        )
    return Settings(**values)
