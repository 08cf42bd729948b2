"""Infrastructure: upward search for the project root.

The root is the nearest directory, starting at the working directory
and walking towards the filesystem root, that contains one of the
project marker files.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

PROJECT_MARKERS: tuple[str, ...] = ("fractal.yml", "fractal.yaml", "pyproject.toml")


def find_project_root(start: Path, markers: Sequence[str] = PROJECT_MARKERS) -> Path | None:
    """Return the first directory at or above *start* holding a marker.

    Returns ``None`` when no directory up to the filesystem root
    contains any of *markers*; absence is a valid state, not an error.
    """
    start = start.resolve()
    for directory in (start, *start.parents):
        if any((directory / marker).is_file() for marker in markers):
            return directory
    return None
