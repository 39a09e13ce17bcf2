"""Layered TOML configuration for Frontdesk.

``default.toml`` is required and ``{FRONTDESK_ENV}.toml`` is merged over
it when present. Every layer is checked against the top-level fields of
``Settings`` before it is merged: unknown keys and sections that are not
tables are rejected with the file they came from.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from frontdesk.config.settings import Settings
from frontdesk.errors import ConfigurationError

CONFIG_DIR_ENV = "FRONTDESK_CONFIG_DIR"
ENVIRONMENT_ENV = "FRONTDESK_ENV"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_LAYER = "default.toml"

# Parent directories searched for a config/ directory
SEARCH_DEPTH = 5


def settings_sections() -> dict[str, bool]:
    """Top-level Settings keys, mapped to whether each is a nested section."""
    sections: dict[str, bool] = {}
    for name, field in Settings.model_fields.items():
        annotation = field.annotation
        sections[name] = isinstance(annotation, type) and issubclass(annotation, BaseModel)
    return sections


def get_config_dir() -> Path:
    """Locate the configuration directory.

    ``FRONTDESK_CONFIG_DIR`` wins when set. Otherwise the nearest
    ``config/`` at or above the working directory is used.

    Raises:
        ConfigurationError: If FRONTDESK_CONFIG_DIR points nowhere
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        path = Path(override)
        if not path.is_dir():
            raise ConfigurationError(f"{CONFIG_DIR_ENV} is not a directory: {override}")
        return path

    current = Path.cwd()
    for _ in range(SEARCH_DEPTH):
        candidate = current / "config"
        if candidate.is_dir():
            return candidate
        current = current.parent
    return Path("config")


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT)


def read_layer(path: Path) -> dict[str, Any]:
    """Parse one TOML layer and check it against the Settings sections.

    Raises:
        ConfigurationError: If the file is unreadable, not valid TOML,
            or has keys Settings does not define
    """
    try:
        with path.open("rb") as f:
            layer = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}", cause=e) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path.name}: {e}", cause=e) from e

    check_layer(layer, path.name)
    return layer


def check_layer(layer: dict[str, Any], origin: str) -> None:
    """Reject unknown top-level keys and sections that are not tables."""
    sections = settings_sections()

    unknown = sorted(set(layer) - set(sections))
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys in {origin}: {', '.join(unknown)}"
        )

    for key, value in layer.items():
        if sections[key] and not isinstance(value, dict):
            raise ConfigurationError(f"[{key}] in {origin} must be a table")


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested tables merge recursively."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config() -> dict[str, Any]:
    """Load and merge the default and environment layers.

    Raises:
        ConfigurationError: If default.toml is missing or any layer is invalid
    """
    config_dir = get_config_dir()

    default_path = config_dir / DEFAULT_LAYER
    if not default_path.exists():
        raise ConfigurationError(
            f"{DEFAULT_LAYER} not found in {config_dir}; create it or set {CONFIG_DIR_ENV}"
        )
    config = read_layer(default_path)

    env_path = config_dir / f"{get_environment()}.toml"
    if env_path.exists() and env_path != default_path:
        config = deep_merge(config, read_layer(env_path))

    return config
