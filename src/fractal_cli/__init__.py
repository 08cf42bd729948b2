"""fractal-cli: command-line front-end for Fractal projects.

Resolves typed invocations into registered command handlers, merging
the built-in command set with user- and extension-contributed commands.
"""

from fractal_cli.version import __version__

__all__: list[str] = ["__version__"]
