"""Infrastructure: the extension loader.

Every top-level configuration key other than ``app`` and ``cli`` names
an extension; its value holds that extension's options.  Names resolve
through an explicit ``name -> factory`` mapping supplied by the caller,
falling back to installed distributions that advertise an entry point
in the :data:`ENTRY_POINT_GROUP` group.

A factory receives the options mapping and returns an
:class:`~fractal_cli.core.models.ExtensionDescriptor` or a mapping with
the same keys (``name``, ``commands``, ``register``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from importlib.metadata import EntryPoint, entry_points
from typing import Any

from fractal_cli.core.models import ExtensionDescriptor
from fractal_cli.exceptions import ExtensionError, FractalError
from fractal_cli.infra.command_loader import coerce_command

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP: str = "fractal_cli.extensions"

ExtensionFactory = Callable[[Mapping[str, Any]], Any]

_DESCRIPTOR_KEYS = frozenset({"name", "commands", "register"})


def _installed_entry_points(group: str) -> dict[str, EntryPoint]:
    return {entry_point.name: entry_point for entry_point in entry_points(group=group)}


def coerce_descriptor(value: Any, *, name: str) -> ExtensionDescriptor:
    """Normalise a factory's return value into an :class:`ExtensionDescriptor`.

    Raises
    ------
    ExtensionError
        If *value* is neither a descriptor nor a well-formed mapping.
    """
    if isinstance(value, ExtensionDescriptor):
        return value
    if not isinstance(value, Mapping):
        raise ExtensionError(
            f"Extension '{name}' returned {type(value).__name__}; "
            "expected an ExtensionDescriptor or a mapping.",
        )

    unknown = sorted(set(value) - _DESCRIPTOR_KEYS)
    if unknown:
        raise ExtensionError(f"Extension '{name}' returned unknown key(s): {', '.join(unknown)}.")

    commands = value.get("commands") or ()
    if not isinstance(commands, Sequence) or isinstance(commands, str):
        raise ExtensionError(f"Extension '{name}': 'commands' must be a list.")

    register = value.get("register")
    if register is not None and not callable(register):
        raise ExtensionError(f"Extension '{name}': 'register' must be callable.")

    try:
        definitions = tuple(
            coerce_command(command, source=f"{name}.commands[{index}]")
            for index, command in enumerate(commands)
        )
    except FractalError as exc:
        raise ExtensionError(f"Extension '{name}' declares an invalid command: {exc}", hint=exc.hint) from exc

    return ExtensionDescriptor(
        name=str(value.get("name") or name),
        commands=definitions,
        register=register,
    )


class ExtensionLoader:
    """Resolve configured extension names to descriptors.

    Parameters
    ----------
    factories:
        Explicit ``name -> factory`` mapping.  Takes precedence over
        installed entry points.
    group:
        Entry-point group searched for names missing from *factories*.
    """

    def __init__(
        self,
        factories: Mapping[str, ExtensionFactory] | None = None,
        *,
        group: str = ENTRY_POINT_GROUP,
    ) -> None:
        self._factories: dict[str, ExtensionFactory] = dict(factories or {})
        self._group = group

    def resolve(self, name: str) -> ExtensionFactory:
        """Return the factory registered for *name*.

        Raises
        ------
        ExtensionError
            If *name* is unknown or its entry point cannot be loaded.
        """
        if name in self._factories:
            return self._factories[name]

        entry_point = _installed_entry_points(self._group).get(name)
        if entry_point is None:
            raise ExtensionError(
                f"Unknown extension '{name}'.",
                hint=f"Install a package providing a '{self._group}' entry point named '{name}', "
                "or remove the key from fractal.yml.",
            )
        try:
            factory = entry_point.load()
        except Exception as exc:
            raise ExtensionError(f"Cannot load extension '{name}' ({entry_point.value}): {exc}") from exc
        if not callable(factory):
            raise ExtensionError(f"Extension entry point '{name}' does not name a callable.")
        return factory

    def __call__(self, config: Mapping[str, Any]) -> list[ExtensionDescriptor]:
        """Build one descriptor per configured extension, in configuration order."""
        descriptors: list[ExtensionDescriptor] = []
        for name, options in config.items():
            if options is not None and not isinstance(options, Mapping):
                raise ExtensionError(f"Options for extension '{name}' must be a mapping.")
            factory = self.resolve(name)
            logger.debug("loading extension %s", name)
            try:
                produced = factory(dict(options or {}))
            except FractalError:
                raise
            except Exception as exc:
                raise ExtensionError(f"Extension '{name}' failed to load: {exc}") from exc
            descriptors.append(coerce_descriptor(produced, name=name))
        return descriptors
