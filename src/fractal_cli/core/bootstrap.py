"""Bootstrap sequencer: the ordered setup phases preceding dispatch.

Phases run strictly in order; none is retried and each is a
precondition for the next:

1. **Locate root**: search upward for a project marker and change into
   its directory.  Absence (or a filesystem error) is not fatal.
2. **Load configuration**: fatal on failure.
3. **Construct the application object**: fatal on failure.
4. **Build the registry**: built-in commands first, then the user
   commands from ``cli.commands`` so that they shadow built-ins.
5. **Apply extensions**: append every extension's commands (loader
   order), then call each ``register(app)`` exactly once, in the same
   order, after the whole merge is complete.

Every collaborator is injected (see :mod:`fractal_cli.core.protocols`);
this module performs no I/O of its own apart from the injected
``chdir``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fractal_cli.core.models import CommandDefinition, ExtensionDescriptor, LoadedConfig
from fractal_cli.core.protocols import (
    AppLoader,
    CommandLoader,
    ConfigLoader,
    ExtensionLoader,
    RootLocator,
)
from fractal_cli.core.registry import CommandRegistry
from fractal_cli.exceptions import ExtensionError, FractalError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Mapping[str, Any] = {"app": {}, "cli": {"commands": []}}


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    """Everything the dispatcher needs, produced by :meth:`Bootstrapper.run`."""

    root: Path
    """Effective working directory after phase 1."""

    config: LoadedConfig
    app: Any
    registry: CommandRegistry
    extensions: tuple[ExtensionDescriptor, ...]


class Bootstrapper:
    """Runs the five bootstrap phases against injected collaborators.

    Parameters
    ----------
    core_commands:
        The fixed built-in command set, registered before anything else.
    locate_root, load_config, load_app, load_commands, load_extensions:
        Collaborators satisfying the protocols in
        :mod:`fractal_cli.core.protocols`.
    defaults:
        Default settings the configuration is merged over.
    chdir:
        Changes the process working directory (``os.chdir`` by default).
    """

    def __init__(
        self,
        *,
        core_commands: Iterable[CommandDefinition],
        locate_root: RootLocator,
        load_config: ConfigLoader,
        load_app: AppLoader,
        load_commands: CommandLoader,
        load_extensions: ExtensionLoader,
        defaults: Mapping[str, Any] = DEFAULT_SETTINGS,
        chdir: Callable[[Path], None] = os.chdir,
    ) -> None:
        self._core_commands: tuple[CommandDefinition, ...] = tuple(core_commands)
        self._locate_root = locate_root
        self._load_config = load_config
        self._load_app = load_app
        self._load_commands = load_commands
        self._load_extensions = load_extensions
        self._defaults = defaults
        self._chdir = chdir

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, cwd: Path | None = None) -> BootstrapResult:
        """Execute all phases and return the finished registry and app."""
        start = Path.cwd() if cwd is None else cwd

        project_root = self._enter_project_root(start)
        root = project_root or start

        loaded = self._load_config(project_root, self._defaults)
        logger.debug("configuration loaded from %s", loaded.config_path or "<defaults>")

        app = self._load_app(root, loaded.app_settings)
        logger.debug("application object constructed: %r", app)

        registry = CommandRegistry(self._core_commands)
        registry.append(self._load_commands(loaded.cli_settings))
        logger.debug("registry holds %d command(s) before extensions", len(registry))

        extensions = tuple(self._load_extensions(loaded.extension_settings))
        self._apply_extensions(extensions, registry, app)

        return BootstrapResult(
            root=root,
            config=loaded,
            app=app,
            registry=registry,
            extensions=extensions,
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _enter_project_root(self, start: Path) -> Path | None:
        """Phase 1.  Returns the project root, or ``None`` if none applies."""
        try:
            root = self._locate_root(start)
            if root is None:
                logger.debug("no project marker above %s; staying put", start)
                return None
            self._chdir(root)
        except OSError as exc:
            logger.debug("project root lookup failed (%s); staying in %s", exc, start)
            return None
        logger.debug("project root: %s", root)
        return root

    def _apply_extensions(
        self,
        extensions: Sequence[ExtensionDescriptor],
        registry: CommandRegistry,
        app: Any,
    ) -> None:
        """Phase 5.  Commands from every extension land before any ``register``."""
        for extension in extensions:
            registry.append(extension.commands)
            logger.debug(
                "extension %s contributed %d command(s)",
                extension.name,
                len(extension.commands),
            )

        for extension in extensions:
            if not callable(extension.register):
                continue
            logger.debug("registering extension %s", extension.name)
            try:
                extension.register(app)
            except FractalError:
                raise
            except Exception as exc:
                raise ExtensionError(
                    f"Extension '{extension.name}' failed to register: {exc}",
                ) from exc
