"""Allow ``python -m fractal_cli`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m fractal_cli`` behaves identically to the ``fractal``
console script.
"""

from __future__ import annotations

from fractal_cli.cli.app import cli

if __name__ == "__main__":
    cli()
