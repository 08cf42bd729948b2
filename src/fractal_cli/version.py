"""Single source of the package version, read by ``--version``."""

from __future__ import annotations

__version__: str = "1.4.0"
