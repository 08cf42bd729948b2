"""Resolution of ``package.module:attribute`` references.

Configuration files cannot carry Python callables, so user commands and
extension options name them with entry-point style strings.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import Any

from fractal_cli.exceptions import ReferenceResolutionError


def import_reference(reference: str) -> Any:
    """Import the object named by *reference* (``module:attr.path``).

    Raises
    ------
    ReferenceResolutionError
        If the reference is malformed, the module cannot be imported,
        or the attribute path does not exist.
    """
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name.strip() or not attr_path.strip():
        raise ReferenceResolutionError(
            f"Invalid reference {reference!r}.",
            hint="Use the form 'package.module:attribute'.",
        )

    try:
        target: Any = importlib.import_module(module_name.strip())
    except ImportError as exc:
        raise ReferenceResolutionError(
            f"Cannot import module '{module_name}' for reference {reference!r}: {exc}",
        ) from exc

    for attr in attr_path.strip().split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as exc:
            raise ReferenceResolutionError(
                f"'{module_name}' has no attribute '{attr_path}' (from {reference!r}).",
            ) from exc
    return target


def import_callable(reference: str | Callable[..., Any]) -> Callable[..., Any]:
    """Like :func:`import_reference` but insists on a callable.

    Already-callable values are returned unchanged.
    """
    target = reference if callable(reference) else import_reference(reference)
    if not callable(target):
        raise ReferenceResolutionError(f"Reference {reference!r} does not name a callable.")
    return target
