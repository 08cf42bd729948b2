"""Infrastructure: command definitions declared as plain data.

User commands (``cli.commands`` in the configuration file) and
extension-contributed commands may be given as mappings::

    name: greet
    command: greet <who>
    aliases: [hi]
    description: Say hello
    handler: mypkg.commands:greet
    builder: mypkg.commands:greet_arguments   # optional
    options:                                  # optional
      - flags: [-l, --loud]
        type: bool
        help: Shout it.

This module turns such mappings into
:class:`~fractal_cli.core.models.CommandDefinition` records.
"""

from __future__ import annotations

import argparse
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from fractal_cli.core.models import CommandDefinition
from fractal_cli.exceptions import ConfigError
from fractal_cli.infra.importing import import_callable

_OPTION_TYPES: dict[str, Callable[[str], Any]] = {
    "str": str,
    "int": int,
    "float": float,
}

_COMMAND_KEYS = frozenset({"name", "command", "aliases", "description", "handler", "builder", "options"})


# ---------------------------------------------------------------------------
# Option declarations
# ---------------------------------------------------------------------------

def _normalise_option(option: Any, *, source: str) -> dict[str, Any]:
    """Validate one ``options`` entry and return it as ``add_argument`` kwargs."""
    if not isinstance(option, Mapping):
        raise ConfigError(f"{source}: each option must be a mapping, not {type(option).__name__}.")

    flags = option.get("flags")
    if isinstance(flags, str):
        flags = [flags]
    if not flags or not all(isinstance(flag, str) and flag.startswith("-") for flag in flags):
        raise ConfigError(f"{source}: option 'flags' must list strings starting with '-'.")

    kind = option.get("type", "str")
    kwargs: dict[str, Any] = {"help": option.get("help")}
    if "dest" in option:
        kwargs["dest"] = option["dest"]

    if kind == "bool":
        kwargs["action"] = "store_true"
        kwargs["default"] = bool(option.get("default", False))
    elif kind in _OPTION_TYPES:
        kwargs["type"] = _OPTION_TYPES[kind]
        kwargs["default"] = option.get("default")
        if option.get("multiple"):
            kwargs["action"] = "append"
    else:
        raise ConfigError(
            f"{source}: unknown option type {kind!r}.",
            hint=f"Use one of: bool, {', '.join(_OPTION_TYPES)}.",
        )
    return {"flags": tuple(flags), "kwargs": kwargs}


def _make_builder(
    builder: Callable[[argparse.ArgumentParser], Any] | None,
    options: Sequence[dict[str, Any]],
) -> Callable[[argparse.ArgumentParser], None]:
    def build(parser: argparse.ArgumentParser) -> None:
        if builder is not None:
            builder(parser)
        for option in options:
            parser.add_argument(*option["flags"], **option["kwargs"])

    return build


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def command_from_mapping(data: Mapping[str, Any], *, source: str = "cli.commands") -> CommandDefinition:
    """Build a :class:`CommandDefinition` from a configuration mapping.

    ``handler`` and ``builder`` may be callables or
    ``package.module:attribute`` references.

    Raises
    ------
    ConfigError
        If required keys are missing, unknown keys are present or a
        value has the wrong shape.
    ReferenceResolutionError
        If a ``handler``/``builder`` reference cannot be imported.
    """
    if not isinstance(data, Mapping):
        raise ConfigError(f"{source}: each command must be a mapping, not {type(data).__name__}.")

    unknown = sorted(set(data) - _COMMAND_KEYS)
    if unknown:
        raise ConfigError(f"{source}: unknown command key(s): {', '.join(unknown)}.")

    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigError(f"{source}: every command needs a non-empty 'name'.")
    where = f"{source}[{name}]"

    if data.get("handler") is None:
        raise ConfigError(f"{where}: missing 'handler'.")
    handler = import_callable(data["handler"])
    builder = import_callable(data["builder"]) if data.get("builder") is not None else None

    aliases = data.get("aliases") or ()
    if isinstance(aliases, str):
        aliases = (aliases,)
    if not all(isinstance(alias, str) and alias for alias in aliases):
        raise ConfigError(f"{where}: 'aliases' must be a list of strings.")

    raw_options = data.get("options") or ()
    if not isinstance(raw_options, Sequence) or isinstance(raw_options, str):
        raise ConfigError(f"{where}: 'options' must be a list.")
    options = [_normalise_option(option, source=where) for option in raw_options]

    try:
        return CommandDefinition(
            name=name,
            handler=handler,
            command=str(data.get("command") or name),
            aliases=tuple(aliases),
            description=str(data.get("description") or ""),
            builder=_make_builder(builder, options),
        )
    except ValueError as exc:
        raise ConfigError(f"{where}: {exc}") from exc


def coerce_command(value: Any, *, source: str) -> CommandDefinition:
    """Accept a :class:`CommandDefinition` as-is or build one from a mapping."""
    if isinstance(value, CommandDefinition):
        return value
    return command_from_mapping(value, source=source)


def load_user_commands(settings: Mapping[str, Any]) -> list[CommandDefinition]:
    """Build the user command list from the ``cli`` configuration section."""
    raw = settings.get("commands") or []
    if not isinstance(raw, Sequence) or isinstance(raw, str):
        raise ConfigError("'cli.commands' must be a list of command mappings.")

    commands: list[CommandDefinition] = []
    for index, entry in enumerate(raw):
        commands.append(coerce_command(entry, source=f"cli.commands[{index}]"))
    return commands
