"""Built-in filter plugins for the rendering environment.

Each plugin is a factory taking its options mapping and returning a
:class:`Filter` record; :data:`FILTERS` maps plugin names to factories.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from jinja2 import pass_context
from jinja2.runtime import Context
from markupsafe import Markup
from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

from fractal_cli.core.output import collapse_blank_lines
from fractal_cli.exceptions import TemplateError


@dataclass(frozen=True, slots=True)
class Filter:
    """A named template filter."""

    name: str
    filter: Callable[..., Any]


FilterPlugin = Callable[[Mapping[str, Any]], Filter]


def stringify(options: Mapping[str, Any]) -> Filter:
    """``value | stringify``: JSON text (``indent``, ``sort_keys`` options)."""
    indent = options.get("indent", 2)
    sort_keys = bool(options.get("sort_keys", False))

    def _stringify(value: Any) -> str:
        return json.dumps(value, indent=indent, sort_keys=sort_keys, default=str, ensure_ascii=False)

    return Filter("stringify", _stringify)


def beautify(options: Mapping[str, Any]) -> Filter:
    """``text | beautify``: strip trailing whitespace and collapse blank lines."""

    def _beautify(value: Any) -> str:
        stripped = "\n".join(line.rstrip() for line in str(value).splitlines())
        return collapse_blank_lines(stripped).strip("\n")

    return Filter("beautify", _beautify)


def highlight(options: Mapping[str, Any]) -> Filter:
    """``code | highlight(lang=None)``: syntax-highlighted HTML via Pygments.

    ``lang`` falls back to the ``lang`` option, then to guessing from the
    code itself.  Every other option is passed to
    :class:`~pygments.formatters.HtmlFormatter` (``cssclass``,
    ``linenos``, ...).
    """
    settings = dict(options)
    default_lang = settings.pop("lang", None)
    formatter = HtmlFormatter(**settings)

    def _highlight(value: Any, lang: str | None = None) -> Markup:
        code = str(value)
        name = lang or default_lang
        try:
            lexer = get_lexer_by_name(name) if name else guess_lexer(code)
        except ClassNotFound as exc:
            raise TemplateError(f"No syntax highlighter for language {name!r}.") from exc
        return Markup(pygments_highlight(code, lexer, formatter))

    return Filter("highlight", _highlight)


def render(options: Mapping[str, Any]) -> Filter:
    """``source | render(**extra)``: render a string as a template.

    The string sees the calling template's variables, overridden by any
    keyword arguments given to the filter.
    """

    @pass_context
    async def _render(context: Context, source: Any, **extra: Any) -> str:
        template = context.environment.from_string(str(source))
        return await template.render_async({**context.get_all(), **extra})

    return Filter("render", _render)


FILTERS: dict[str, FilterPlugin] = {
    "stringify": stringify,
    "beautify": beautify,
    "highlight": highlight,
    "render": render,
}
