"""Infrastructure: construction of the long-lived application object.

The core treats the application as opaque.  The bundled
:class:`Application` carries the project root, its ``app`` settings and
a capability table that extensions extend in place from their
``register`` callbacks.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from fractal_cli.exceptions import AppLoadError
from fractal_cli.infra.importing import import_callable
from fractal_cli.render.environment import RenderEnvironment, create_environment

logger = logging.getLogger(__name__)

RENDER_SETTINGS: frozenset[str] = frozenset(
    {"filter_options", "helper_options", "globals", "extensions", "filters"}
)


class Application:
    """Domain object handed to every command handler.

    Parameters
    ----------
    root:
        Project root (or the working directory when no root was found).
    settings:
        The ``app`` configuration section.
    """

    def __init__(self, root: Path, settings: Mapping[str, Any]) -> None:
        self.root: Path = root
        self.settings: dict[str, Any] = dict(settings)
        self._capabilities: dict[str, Any] = {}
        self._renderer: RenderEnvironment | None = None

    def __repr__(self) -> str:
        return f"Application(name={self.name!r}, root={str(self.root)!r})"

    @property
    def name(self) -> str:
        return str(self.settings.get("name") or self.root.name)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def extend(self, name: str, capability: Any) -> None:
        """Attach *capability* under *name*.

        Raises
        ------
        AppLoadError
            If *name* is already taken.
        """
        if name in self._capabilities:
            raise AppLoadError(f"Capability '{name}' is already registered on the application.")
        logger.debug("capability attached: %s", name)
        self._capabilities[name] = capability

    def capability(self, name: str) -> Any:
        """Return the capability registered under *name*.

        Raises
        ------
        AppLoadError
            If no extension attached *name*.
        """
        try:
            return self._capabilities[name]
        except KeyError:
            raise AppLoadError(
                f"No capability named '{name}'.",
                hint="Is the extension that provides it listed in fractal.yml?",
            ) from None

    @property
    def capabilities(self) -> dict[str, Any]:
        return dict(self._capabilities)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @property
    def renderer(self) -> RenderEnvironment:
        """The project's rendering environment, created on first use.

        Templates are looked up relative to the project root; options
        come from the ``app.render`` settings; ``filters`` given there are
        ``module:attribute`` references.
        """
        if self._renderer is None:
            options = dict(self.settings.get("render") or {})
            if isinstance(options.get("filters"), Mapping):
                options["filters"] = {
                    name: import_callable(reference) for name, reference in options["filters"].items()
                }
            self._renderer = create_environment(search_path=self.root, **options)
        return self._renderer


def load_app(root: Path, settings: Mapping[str, Any]) -> Application:
    """Build the :class:`Application` for *root*.

    Raises
    ------
    AppLoadError
        If *settings* is not a mapping or its ``render`` section is
        malformed.
    """
    if not isinstance(settings, Mapping):
        raise AppLoadError(f"'app' settings must be a mapping, not {type(settings).__name__}.")
    render = settings.get("render")
    if render is not None and not isinstance(render, Mapping):
        raise AppLoadError("'app.render' must be a mapping of rendering options.")
    unknown = sorted(set(render or {}) - RENDER_SETTINGS)
    if unknown:
        raise AppLoadError(
            f"Unknown 'app.render' option(s): {', '.join(unknown)}.",
            hint=f"Supported: {', '.join(sorted(RENDER_SETTINGS))}.",
        )
    return Application(root, settings)
