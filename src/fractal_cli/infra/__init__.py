"""Infrastructure layer: filesystem, configuration and import machinery.

This layer provides the concrete collaborators consumed by
:class:`~fractal_cli.core.bootstrap.Bootstrapper`.

Rules
-----
* No imports from ``cli``.
* No user-facing output; diagnostics go through :mod:`logging` only.
* Failures are raised as :class:`~fractal_cli.exceptions.FractalError`
  subclasses.
"""

from fractal_cli.infra.app_loader import Application, load_app
from fractal_cli.infra.command_loader import command_from_mapping, load_user_commands
from fractal_cli.infra.config_loader import load_config
from fractal_cli.infra.extensions import ENTRY_POINT_GROUP, ExtensionLoader
from fractal_cli.infra.project_root import find_project_root

__all__: list[str] = [
    "ENTRY_POINT_GROUP",
    "Application",
    "ExtensionLoader",
    "command_from_mapping",
    "find_project_root",
    "load_app",
    "load_config",
    "load_user_commands",
]
