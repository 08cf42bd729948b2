"""Rendering environment used by commands that produce templated text.

This is not a templating engine: it wraps an asynchronous Jinja2
environment, installs the named filter and helper plugins, and exposes
a string-in, string-out API plus the ``add_filter``/``add_global``
extension points that extensions use from their ``register`` callbacks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import jinja2

from fractal_cli.exceptions import TemplateError
from fractal_cli.render.filters import FILTERS, Filter, FilterPlugin
from fractal_cli.render.helpers import HELPERS, HelperPlugin

logger = logging.getLogger(__name__)


class RenderEnvironment:
    """Async string rendering over a configured :class:`jinja2.Environment`."""

    def __init__(self, environment: jinja2.Environment) -> None:
        if not environment.is_async:
            raise ValueError("RenderEnvironment requires a Jinja2 environment with enable_async=True")
        self._environment = environment

    @property
    def environment(self) -> jinja2.Environment:
        return self._environment

    # ------------------------------------------------------------------
    # Extension points
    # ------------------------------------------------------------------

    def add_filter(self, name: str, func: Callable[..., Any]) -> None:
        self._environment.filters[name] = func

    def add_global(self, name: str, value: Any) -> None:
        self._environment.globals[name] = value

    def has_filter(self, name: str) -> bool:
        return name in self._environment.filters

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render(self, name: str, context: Mapping[str, Any] | None = None) -> str:
        """Render the template stored under *name*.

        Raises
        ------
        TemplateError
            If the template does not exist or fails to render.
        """
        try:
            template = self._environment.get_template(name)
        except jinja2.TemplateNotFound as exc:
            raise TemplateError(f"Template '{name}' not found.") from exc
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Cannot load template '{name}': {exc}") from exc
        return await self._render(template, context, label=name)

    async def render_string(self, source: str, context: Mapping[str, Any] | None = None) -> str:
        """Render *source* as a template and return the text."""
        try:
            template = self._environment.from_string(source)
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Cannot parse template string: {exc}") from exc
        return await self._render(template, context, label="<string>")

    async def _render(
        self,
        template: jinja2.Template,
        context: Mapping[str, Any] | None,
        *,
        label: str,
    ) -> str:
        try:
            return await template.render_async(dict(context or {}))
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Failed to render {label}: {exc}") from exc


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def _mapping_loader(templates: Mapping[str, str]) -> jinja2.FunctionLoader:
    """Look templates up by exact relative path; never cache them."""

    def load(name: str) -> tuple[str, str, Callable[[], bool]] | None:
        source = templates.get(name)
        if source is None:
            return None
        return source, name, lambda: False

    return jinja2.FunctionLoader(load)


def _iter_filters(filters: Mapping[str, Callable[..., Any]] | Iterable[Filter]) -> Iterable[Filter]:
    if isinstance(filters, Mapping):
        return [Filter(name, func) for name, func in filters.items()]
    return list(filters)


def create_environment(
    templates: Mapping[str, str] | None = None,
    *,
    search_path: str | Path | None = None,
    filter_plugins: Mapping[str, FilterPlugin] = FILTERS,
    helper_plugins: Mapping[str, HelperPlugin] = HELPERS,
    filter_options: Mapping[str, Mapping[str, Any]] | None = None,
    helper_options: Mapping[str, Mapping[str, Any]] | None = None,
    globals: Mapping[str, Any] | None = None,
    extensions: Iterable[str | type[jinja2.ext.Extension]] | Mapping[str, Any] | None = None,
    filters: Mapping[str, Callable[..., Any]] | Iterable[Filter] | None = None,
) -> RenderEnvironment:
    """Build a :class:`RenderEnvironment`.

    Parameters
    ----------
    templates:
        Relative path → template source.  Takes precedence over
        *search_path*.
    search_path:
        Directory to load templates from when *templates* is not given.
    filter_plugins, helper_plugins:
        Name → factory mappings of the plugins to install.  Each factory
        is called with its entry from *filter_options* /
        *helper_options* (or an empty mapping).
    globals:
        Extra template globals.
    extensions:
        Jinja2 extensions, as classes or import strings.  A mapping's
        values are used.
    filters:
        Extra filters, as a name → callable mapping or :class:`Filter`
        records.  Applied last, so they override built-in plugins.
    """
    loader: jinja2.BaseLoader | None
    if templates is not None:
        loader = _mapping_loader(templates)
    elif search_path is not None:
        loader = jinja2.FileSystemLoader(str(search_path))
    else:
        loader = None

    environment = jinja2.Environment(loader=loader, enable_async=True, keep_trailing_newline=True)

    filter_options = filter_options or {}
    for name, plugin in filter_plugins.items():
        installed = plugin(filter_options.get(name) or {})
        environment.filters[installed.name] = installed.filter

    helper_options = helper_options or {}
    for name, plugin in helper_plugins.items():
        installed = plugin(helper_options.get(name) or {})
        environment.globals[installed.name] = installed.helper

    environment.globals.update(globals or {})

    if isinstance(extensions, Mapping):
        extensions = extensions.values()
    for extension in extensions or ():
        try:
            environment.add_extension(extension)
        except (ImportError, AttributeError) as exc:
            raise TemplateError(f"Cannot load template extension {extension!r}: {exc}") from exc

    for extra in _iter_filters(filters or {}):
        environment.filters[extra.name] = extra.filter

    logger.debug(
        "render environment ready: %d filter(s), loader=%s",
        len(environment.filters),
        type(loader).__name__ if loader else None,
    )
    return RenderEnvironment(environment)
