"""Infrastructure: YAML configuration loading.

The configuration file lives in the project root and is parsed with
``yaml.safe_load``.  A missing file is valid and yields the defaults;
a file that exists but cannot be parsed is fatal.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from fractal_cli.core.models import LoadedConfig
from fractal_cli.exceptions import ConfigError

CONFIG_FILENAMES: tuple[str, ...] = ("fractal.yml", "fractal.yaml")


def find_config_file(root: Path, filenames: Sequence[str] = CONFIG_FILENAMES) -> Path | None:
    """Return the first existing configuration file in *root*."""
    for name in filenames:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *override* over *base*; nested mappings merge, other values replace."""
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse *path* as YAML and return its top-level mapping.

    Raises
    ------
    ConfigError
        If the file cannot be read, is not valid YAML, or its top level
        is not a mapping.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Invalid YAML in configuration file {path}.",
            hint=str(exc),
        ) from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(
            f"Configuration file {path} must contain a mapping at the top level, "
            f"not {type(data).__name__}.",
        )
    return dict(data)


def load_config(root: Path | None, defaults: Mapping[str, Any]) -> LoadedConfig:
    """Load the project configuration relative to *root*.

    When *root* is ``None`` the current working directory is searched.
    Sections that must be mappings (``app``, ``cli``) are validated
    here so later phases can rely on their shape.
    """
    directory = Path.cwd() if root is None else root
    config_path = find_config_file(directory)
    if config_path is None:
        return LoadedConfig(config_path=None, config=deep_merge(defaults, {}))

    config = deep_merge(defaults, read_config_file(config_path))
    for section in ("app", "cli"):
        if config.get(section) is None:
            config[section] = {}
        elif not isinstance(config[section], Mapping):
            raise ConfigError(f"'{section}' in {config_path} must be a mapping.")
    return LoadedConfig(config_path=config_path, config=config)
