"""Configuration loading and validation.

Settings come from a YAML file; selected environment variables are layered
on top of it.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tradeassist.config.schema import TradeAssistConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".tradeassist" / "tradeassist.yaml"
CONFIG_PATH_ENV = "TRADEASSIST_CONFIG"

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "TRADEASSIST_API_KEY": ("inference", "api_key"),
    "TRADEASSIST_INFERENCE_URL": ("inference", "base_url"),
    "TRADEASSIST_MODEL": ("model", "name"),
    "TRADEASSIST_DB_PATH": ("memory", "storage_path"),
    "TRADEASSIST_CATALOG": ("catalog", "path"),
    "TRADEASSIST_CORS_ORIGINS": ("server", "cors_origins"),
}


class ConfigError(Exception):
    """Configuration loading or validation error."""


def resolve_config_path(path: Path | None = None) -> Path:
    """Pick the config file: explicit path, then ``TRADEASSIST_CONFIG``, then the default."""
    if path is not None:
        return path
    from_env = os.environ.get(CONFIG_PATH_ENV)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_CONFIG_PATH


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}")
    return data


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Layer ``ENV_OVERRIDES`` from ``environ`` onto raw config data.

    Args:
        data: Raw config mapping (not modified)
        environ: Environment to read

    Returns:
        New mapping with the overrides applied
    """
    merged = {
        key: dict(value) if isinstance(value, dict) else value for key, value in data.items()
    }
    for var, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        target = merged.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")
        if field == "cors_origins":
            target[field] = [origin.strip() for origin in value.split(",") if origin.strip()]
        else:
            target[field] = value
        logger.debug("Config %s.%s taken from %s", section, field, var)
    return merged


def load_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> TradeAssistConfig:
    """Load and validate TradeAssist configuration.

    Args:
        path: Path to config file. If None, ``TRADEASSIST_CONFIG`` or the
              default location is used. A missing file means all defaults.
        environ: Environment for overrides (defaults to ``os.environ``)

    Returns:
        Validated configuration object

    Raises:
        ConfigError: If the config file exists but is invalid
    """
    path = resolve_config_path(path)
    data = _read_yaml(path) if path.exists() else {}
    data = apply_env_overrides(data, os.environ if environ is None else environ)

    try:
        return TradeAssistConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e


def save_config(config: TradeAssistConfig, path: str | Path | None = None) -> None:
    """Save configuration to a YAML file.

    Args:
        config: Configuration object to save
        path: Destination path. If None, uses the default location.
    """
    path = DEFAULT_CONFIG_PATH if path is None else Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            config.model_dump(),
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )
