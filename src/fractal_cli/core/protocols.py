"""Protocols (interfaces) for the collaborators consumed by bootstrap.

The bootstrap sequencer depends ONLY on these protocols; the concrete
implementations live in :mod:`fractal_cli.infra` and are injected by the
CLI layer, keeping the core free of filesystem and import machinery.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from fractal_cli.core.models import CommandDefinition, ExtensionDescriptor, LoadedConfig


class RootLocator(Protocol):
    """Finds the project root above *start*, or ``None`` if there is none."""

    def __call__(self, start: Path) -> Path | None:
        ...  # pragma: no cover


class ConfigLoader(Protocol):
    """Reads configuration relative to *root*, merged over *defaults*.

    Raises
    ------
    ConfigError
        When the configuration exists but cannot be parsed.
    """

    def __call__(self, root: Path | None, defaults: Mapping[str, Any]) -> LoadedConfig:
        ...  # pragma: no cover


class AppLoader(Protocol):
    """Builds the long-lived application object from the ``app`` settings.

    Raises
    ------
    AppLoadError
        When the application cannot be constructed.
    """

    def __call__(self, root: Path, settings: Mapping[str, Any]) -> Any:
        ...  # pragma: no cover


class ExtensionLoader(Protocol):
    """Turns configuration minus ``app``/``cli`` into extension descriptors."""

    def __call__(self, config: Mapping[str, Any]) -> Sequence[ExtensionDescriptor]:
        ...  # pragma: no cover


class CommandLoader(Protocol):
    """Turns the ``cli`` settings into user command definitions."""

    def __call__(self, settings: Mapping[str, Any]) -> Sequence[CommandDefinition]:
        ...  # pragma: no cover


class Logger(Protocol):
    """User-facing output channel handed to every command handler."""

    def log(self, message: str) -> None:
        ...  # pragma: no cover

    def warning(self, message: str) -> None:
        ...  # pragma: no cover

    def error(self, message: str | BaseException) -> None:
        ...  # pragma: no cover

    def debug(self, message: str) -> None:
        ...  # pragma: no cover
