"""Rendering layer: string templating for commands and extensions.

Rules
-----
* No terminal output.
* May import from ``core``; no imports from ``cli`` or ``infra``.
"""

from fractal_cli.render.environment import RenderEnvironment, create_environment
from fractal_cli.render.filters import FILTERS, Filter
from fractal_cli.render.helpers import HELPERS, Helper

__all__: list[str] = [
    "FILTERS",
    "HELPERS",
    "Filter",
    "Helper",
    "RenderEnvironment",
    "create_environment",
]
