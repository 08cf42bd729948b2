"""Invocation-pattern parsing.

A command pattern is a whitespace-separated string whose first token
is the invocation word and whose remaining tokens declare positional
arguments:

* ``<name>``     required positional
* ``[name]``     optional positional
* ``<name..>``   one or more values
* ``[name..]``   zero or more values
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_PLACEHOLDER = re.compile(r"^(?P<open>[<\[])(?P<name>[A-Za-z_][\w-]*)(?P<variadic>\.\.)?(?P<close>[>\]])$")


@dataclass(frozen=True, slots=True)
class Positional:
    """A positional argument declared by a pattern placeholder."""

    name: str
    required: bool
    variadic: bool

    @property
    def nargs(self) -> str | None:
        """The ``argparse`` ``nargs`` value for this placeholder."""
        if self.variadic:
            return "+" if self.required else "*"
        return None if self.required else "?"

    @property
    def dest(self) -> str:
        return self.name.replace("-", "_")


@dataclass(frozen=True, slots=True)
class CommandPattern:
    """Parsed form of a ``CommandDefinition.command`` string."""

    token: str
    positionals: tuple[Positional, ...]


def parse_pattern(pattern: str) -> CommandPattern:
    """Split *pattern* into its invocation token and positionals.

    Raises
    ------
    ValueError
        If the pattern is empty, a placeholder is malformed, or a
        required positional follows an optional or variadic one.
    """
    parts = pattern.split()
    if not parts:
        raise ValueError("command pattern must not be empty")

    token, *rest = parts
    if _PLACEHOLDER.match(token):
        raise ValueError(f"command pattern {pattern!r} must start with a command word")

    positionals: list[Positional] = []
    for part in rest:
        match = _PLACEHOLDER.match(part)
        if match is None or (match["open"] == "<") != (match["close"] == ">"):
            raise ValueError(f"malformed placeholder {part!r} in command pattern {pattern!r}")
        positional = Positional(
            name=match["name"],
            required=match["open"] == "<",
            variadic=match["variadic"] is not None,
        )
        if positionals and positional.required and (
            not positionals[-1].required or positionals[-1].variadic
        ):
            raise ValueError(
                f"required placeholder {part!r} cannot follow an optional "
                f"or variadic one in {pattern!r}"
            )
        positionals.append(positional)

    return CommandPattern(token=token, positionals=tuple(positionals))
