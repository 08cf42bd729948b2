"""Core layer: command registry, bootstrap ordering and pure helpers.

Rules
-----
* No terminal output and no ``print()``.
* No imports from ``cli``, ``infra`` or ``render``.
* Collaborators are injected through :mod:`fractal_cli.core.protocols`.
"""

from fractal_cli.core.bootstrap import DEFAULT_SETTINGS, Bootstrapper, BootstrapResult
from fractal_cli.core.models import (
    CommandDefinition,
    DispatchOutcome,
    ExtensionDescriptor,
    LoadedConfig,
    StartupConfig,
)
from fractal_cli.core.registry import CommandRegistry

__all__: list[str] = [
    "DEFAULT_SETTINGS",
    "BootstrapResult",
    "Bootstrapper",
    "CommandDefinition",
    "CommandRegistry",
    "DispatchOutcome",
    "ExtensionDescriptor",
    "LoadedConfig",
    "StartupConfig",
]
