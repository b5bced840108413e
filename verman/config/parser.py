"""Configuration file parsing utilities."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from verman.config.schemas import ManagerSettings, default_root

CONFIG_FILENAME = "config.yaml"

# Environment variable -> ManagerSettings field
ENV_OVERRIDES = {
    "VERMAN_BUILDER": "builder",
    "VERMAN_BUILD_ROOT": "build_root",
    "VERMAN_CACHE_PATH": "cache_path",
    "VERMAN_HOOK_PATH": "hook_path",
    "VERMAN_DEBUG": "debug",
}


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def resolve_root(environ: dict[str, str] | None = None) -> Path:
    """Get the verman root directory from VERMAN_ROOT or the default."""
    if environ is None:
        environ = dict(os.environ)
    value = environ.get("VERMAN_ROOT")
    if value:
        return Path(value).expanduser()
    return default_root()


def load_settings(
    root: Path | None = None,
    environ: dict[str, str] | None = None,
) -> ManagerSettings:
    """Load manager settings.

    Reads ``<root>/config.yaml`` when present, then applies environment
    variable overrides. Empty environment values are ignored.

    Args:
        root: Verman root directory, or None to resolve from VERMAN_ROOT
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Parsed ManagerSettings

    Raises:
        ConfigError: If config.yaml is invalid
    """
    if environ is None:
        environ = dict(os.environ)
    if root is None:
        root = resolve_root(environ)

    config_path = root / CONFIG_FILENAME
    data: dict[str, Any] = {}
    if config_path.exists():
        data = load_yaml(config_path)

    for env_name, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            data[field_name] = value

    data["root"] = root

    try:
        return ManagerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}", config_path) from e
