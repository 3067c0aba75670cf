"""Layered TOML configuration.

`default.toml` is required; `<RAPPORT_ENV>.toml` is optional and overrides
it table by table. The `friendship` and `storage` tables are checked as each
layer is read, so a bad override names the file it came from.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from rapport.config.models.friendship import FriendshipConfig
from rapport.config.models.storage import StorageConfig

DEFAULT_ENVIRONMENT = "development"

# Tables validated per layer; the rest is validated once by Settings
_CHECKED_SECTIONS: dict[str, type[BaseModel]] = {
    "friendship": FriendshipConfig,
    "storage": StorageConfig,
}


def get_config_dir() -> Path:
    """Directory holding the TOML layers.

    RAPPORT_CONFIG_DIR when set, otherwise `config/` under the working
    directory.
    """
    configured = os.environ.get("RAPPORT_CONFIG_DIR")
    path = Path(configured) if configured else Path.cwd() / "config"
    if not path.is_dir():
        raise FileNotFoundError(f"Config directory not found: {path}")
    return path


def get_environment() -> str:
    return os.environ.get("RAPPORT_ENV", DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Read one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge `override` into a copy of `base`, recursing into tables."""
    result = base.copy()
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def check_sections(layer: dict[str, Any], source: Path) -> None:
    """Validate the friendship and storage tables of one layer.

    Raises:
        ValueError: If a table is malformed, naming `source`
    """
    for section, model in _CHECKED_SECTIONS.items():
        if section not in layer:
            continue
        table = layer[section]
        if not isinstance(table, dict):
            raise ValueError(f"{source.name}: [{section}] must be a table")
        try:
            model.model_validate(table)
        except ValidationError as e:
            raise ValueError(f"{source.name}: invalid [{section}] table: {e}") from e


def load_config(environment: str | None = None) -> dict[str, Any]:
    """Read and merge the TOML layers for an environment.

    Args:
        environment: Layer to apply over the defaults, RAPPORT_ENV if omitted

    Raises:
        FileNotFoundError: If default.toml is missing
        ValueError: If a friendship or storage table is invalid
    """
    config_dir = get_config_dir()
    default_path = config_dir / "default.toml"
    if not default_path.is_file():
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            "Create config/default.toml or set RAPPORT_CONFIG_DIR."
        )

    config = load_toml(default_path)
    check_sections(config, default_path)

    env_path = config_dir / f"{environment or get_environment()}.toml"
    if env_path.is_file():
        override = load_toml(env_path)
        check_sections(override, env_path)
        config = deep_merge(config, override)

    return config
