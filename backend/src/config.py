"""TOML configuration with ``${VAR}`` / ``${VAR:-default}`` environment expansion.

Relative paths in the file are resolved against the directory holding it, so
the same config works from any working directory.
"""

import os
import re
from pathlib import Path
from typing import Any

import toml

from errors import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_FILENAME = "config.toml"

DEFAULT_HANDBOOKS_DIR = "tcp handbooks"
DEFAULT_EXAMPLES_DIR = "tcp examples"
DEFAULT_INDEX_DIR = "rag_index"

ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def find_config_path(explicit_path: Path | None = None) -> Path:
    """The config file to use: ``explicit_path``, else ./config.toml, else the project's."""
    if explicit_path is not None:
        return explicit_path
    for candidate in (Path(CONFIG_FILENAME), PROJECT_ROOT / CONFIG_FILENAME):
        if candidate.exists():
            return candidate
    raise ConfigurationError(
        f"No {CONFIG_FILENAME} in the working directory or in {PROJECT_ROOT}"
    )


def load_config(config_path: Path = Path(CONFIG_FILENAME)) -> dict[str, Any]:
    """Parse a TOML config file and expand environment references in its strings.

    Raises:
        ConfigurationError: If the file is missing or is not valid TOML.
    """
    try:
        raw = toml.load(config_path)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {config_path}") from e
    except toml.TomlDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e
    return _expand(raw)


def _expand(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _expand(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand(item) for item in value]
    if isinstance(value, str):
        return ENV_REFERENCE.sub(
            lambda m: os.environ.get(m.group("name"), m.group("default") or ""), value
        )
    return value


def get_config_value(config: dict, key_path: str, default: Any = None) -> Any:
    """Look up ``"section.key"`` style paths, returning ``default`` when any part is absent."""
    node: Any = config
    for key in key_path.split("."):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def resolve_path(path: str | Path, config_path: Path) -> Path:
    """Absolute paths pass through; relative ones are taken from the config file's directory."""
    path = Path(path)
    return path if path.is_absolute() else (config_path.parent / path).resolve()


def get_project_root(config_path: Path) -> Path:
    """Directory that document paths are reported relative to."""
    return config_path.resolve().parent


def get_index_dir(config: dict, config_path: Path) -> Path:
    """Directory holding the chunk and embedding files (``[storage].directory``)."""
    return resolve_path(
        get_config_value(config, "storage.directory", DEFAULT_INDEX_DIR), config_path
    )


def get_source_dirs(config: dict, config_path: Path) -> dict[str, Path]:
    """Map each folder type ("handbook", "example") to its source directory."""
    return {
        "handbook": resolve_path(
            get_config_value(config, "sources.handbooks", DEFAULT_HANDBOOKS_DIR),
            config_path,
        ),
        "example": resolve_path(
            get_config_value(config, "sources.examples", DEFAULT_EXAMPLES_DIR),
            config_path,
        ),
    }
