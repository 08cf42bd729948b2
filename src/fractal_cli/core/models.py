"""Domain models for fractal-cli.

Command and extension records are **frozen** dataclasses.  The only
mutable model is :class:`DispatchOutcome`, which lives for a single
invocation and is written exclusively by the dispatcher's execution
envelope.
"""

from __future__ import annotations

import argparse
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fractal_cli.core.patterns import CommandPattern, parse_pattern

CommandHandler = Callable[..., Any]
"""``handler(args, app, cli, logger)`` returning a value or an awaitable."""

ArgumentBuilder = Callable[[argparse.ArgumentParser], Any]
"""Declares the flags/arguments a command accepts on its own parser."""

RegisterCallback = Callable[[Any], Any]
"""``register(app)``: side-effecting extension setup; return ignored."""

DEBUG_FLAGS: tuple[str, ...] = ("-v", "--verbose", "--debug")
DEBUG_ENV_VARS: tuple[str, ...] = ("FRACTAL_DEBUG", "DEBUG")


def _no_arguments(parser: argparse.ArgumentParser) -> None:
    """Default builder: the command declares nothing beyond its pattern."""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CommandDefinition:
    """Declarative description of one CLI subcommand."""

    name: str
    """Unique key within a registry; later definitions shadow earlier ones."""

    handler: CommandHandler
    """Performs the command's work."""

    command: str = ""
    """Invocation pattern, e.g. ``render <path> [dest]``.  Defaults to *name*."""

    aliases: tuple[str, ...] = ()
    """Alternate invocation strings."""

    description: str = ""
    """Display text for help output."""

    builder: ArgumentBuilder = _no_arguments
    """Declares the accepted flags on the command's parser."""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("CommandDefinition.name must not be empty")
        if not self.command:
            object.__setattr__(self, "command", self.name)
        object.__setattr__(self, "aliases", tuple(self.aliases))
        parse_pattern(self.command)

    @property
    def pattern(self) -> CommandPattern:
        """The parsed invocation pattern."""
        return parse_pattern(self.command)

    @property
    def invocations(self) -> tuple[str, ...]:
        """Every string that invokes this command: its token, then its aliases."""
        return (self.pattern.token, *self.aliases)


# ---------------------------------------------------------------------------
# Extensions
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ExtensionDescriptor:
    """What a single extension contributes during bootstrap.

    ``commands`` are appended to the registry; ``register`` (when
    present) is called exactly once with the application object.
    """

    name: str
    commands: tuple[CommandDefinition, ...] = ()
    register: RegisterCallback | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "commands", tuple(self.commands))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class LoadedConfig:
    """Result of the configuration loader."""

    config_path: Path | None
    """File the configuration was read from, or ``None`` for defaults."""

    config: Mapping[str, Any]
    """Merged configuration; may contain ``app``, ``cli`` and extension keys."""

    @property
    def app_settings(self) -> Mapping[str, Any]:
        return self.config.get("app") or {}

    @property
    def cli_settings(self) -> Mapping[str, Any]:
        return self.config.get("cli") or {}

    @property
    def extension_settings(self) -> dict[str, Any]:
        """Configuration minus the ``app`` and ``cli`` keys."""
        return {key: value for key, value in self.config.items() if key not in ("app", "cli")}


@dataclass(frozen=True, slots=True)
class StartupConfig:
    """Process-wide settings fixed before any other initialisation."""

    debug: bool = False
    """Whether diagnostic output is enabled."""

    debug_namespace: str = "fractal_cli"
    """Logger namespace that receives diagnostic output when *debug* is on."""

    @classmethod
    def from_argv(cls, argv: Sequence[str], environ: Mapping[str, str]) -> StartupConfig:
        """Derive the startup settings from raw arguments and the environment.

        Debug is on when a debug flag appears anywhere in *argv* or one
        of :data:`DEBUG_ENV_VARS` is set to a non-empty value.
        """
        debug = any(arg in DEBUG_FLAGS for arg in argv) or any(
            environ.get(name) for name in DEBUG_ENV_VARS
        )
        return cls(debug=debug)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class DispatchOutcome:
    """Per-invocation record written by the execution envelope."""

    matched: bool = False
    """Set as soon as any command envelope starts executing."""

    command: str | None = None
    """Name of the definition whose envelope ran."""

    result: Any = None
    """The handler's resolved return value."""

    error: BaseException | None = None
    """Handler-local failure, already reported through the logger."""

    help_shown: bool = False
    """Help text was rendered instead of running a handler."""

    rendered: list[str] = field(default_factory=list)
    """Text blocks written to the logger for this invocation."""
