"""Built-in helper plugins, installed as template globals."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from markupsafe import Markup


@dataclass(frozen=True, slots=True)
class Helper:
    """A named template global."""

    name: str
    helper: Callable[..., Any]


HelperPlugin = Callable[[Mapping[str, Any]], Helper]


def _permalink_for(path: Any, prefix: str, ext: str) -> str:
    cleaned = str(path).strip().strip("/")
    last = cleaned.rsplit("/", 1)[-1]
    if ext and cleaned and "." not in last:
        cleaned += ext
    return f"{prefix.rstrip('/')}/{cleaned}"


def permalink(options: Mapping[str, Any]) -> Helper:
    """``permalink(path)``: site URL for *path* (``prefix``, ``ext`` options)."""
    prefix = str(options.get("prefix", "/"))
    ext = str(options.get("ext", ""))

    def _permalink(path: Any) -> str:
        return _permalink_for(path, prefix, ext)

    return Helper("permalink", _permalink)


def link_to(options: Mapping[str, Any]) -> Helper:
    """``link_to(target, text=None)``: an escaped HTML anchor to *target*."""
    prefix = str(options.get("prefix", "/"))
    ext = str(options.get("ext", ""))

    def _link_to(target: Any, text: Any = None) -> Markup:
        url = _permalink_for(target, prefix, ext)
        return Markup('<a href="{}">{}</a>').format(url, target if text is None else text)

    return Helper("link_to", _link_to)


HELPERS: dict[str, HelperPlugin] = {
    "permalink": permalink,
    "link_to": link_to,
}
