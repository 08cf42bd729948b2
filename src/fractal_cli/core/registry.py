"""Ordered command registry.

The registry keeps two logically separate views of the same list:

* :meth:`CommandRegistry.all`: every definition in registration order,
  shadowed ones included (used for listings and help).
* :meth:`CommandRegistry.resolve`: name → definition, built by walking
  registration order and overwriting on collision, so the most recently
  registered definition wins (used for dispatch).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from fractal_cli.core.models import CommandDefinition


class CommandRegistry:
    """Append-only sequence of :class:`CommandDefinition` entries."""

    def __init__(self, commands: Iterable[CommandDefinition] = ()) -> None:
        self._commands: list[CommandDefinition] = []
        self._frozen: bool = False
        self.append(commands)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def append(self, commands: Iterable[CommandDefinition]) -> None:
        """Add *commands* to the end of the sequence without deduplicating.

        Raises
        ------
        TypeError
            If an entry is not a :class:`CommandDefinition`.
        RuntimeError
            If the registry has already been handed to the dispatcher.
        """
        if self._frozen:
            raise RuntimeError("the command registry is read-only once dispatch begins")
        for command in commands:
            if not isinstance(command, CommandDefinition):
                raise TypeError(f"expected CommandDefinition, got {type(command).__name__}")
            self._commands.append(command)

    def freeze(self) -> None:
        """Make the registry read-only for the remainder of the process."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    def all(self) -> tuple[CommandDefinition, ...]:
        """Every registered definition in registration order."""
        return tuple(self._commands)

    def resolve(self) -> dict[str, CommandDefinition]:
        """Name → definition with last-registration-wins semantics.

        Iteration order of the result follows the *first* registration
        of each name, so an override keeps its predecessor's slot.
        """
        resolved: dict[str, CommandDefinition] = {}
        for command in self._commands:
            resolved[command.name] = command
        return resolved

    def is_shadowed(self, command: CommandDefinition) -> bool:
        """Whether a later definition with the same name overrides *command*."""
        return self.resolve().get(command.name) is not command

    def __iter__(self) -> Iterator[CommandDefinition]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._commands)
