"""CLI application entry point for fractal-cli.

This module is the **sole error boundary** for the entire application.
:func:`cli` catches :class:`~fractal_cli.exceptions.FractalError`,
``KeyboardInterrupt`` and any unexpected ``Exception``, reports them
once through the :class:`~fractal_cli.cli.console.Logger` and returns
well-defined exit codes.

Architecture notes
------------------
* :func:`main` wires the concrete collaborators into the bootstrap
  sequencer, hands the finished registry to the dispatcher and runs
  the matched command on a fresh event loop.
* Failures inside a command handler never reach this module; the
  dispatcher's execution envelope has already reported them.
* The startup configuration (debug flag) is derived from raw argv and
  the environment before anything else is constructed.
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from fractal_cli.cli import exit_codes
from fractal_cli.cli.commands import CORE_COMMANDS
from fractal_cli.cli.console import Logger, configure_logging
from fractal_cli.cli.dispatcher import Dispatcher
from fractal_cli.core.bootstrap import Bootstrapper
from fractal_cli.core.models import StartupConfig
from fractal_cli.exceptions import FractalError
from fractal_cli.infra.app_loader import load_app
from fractal_cli.infra.command_loader import load_user_commands
from fractal_cli.infra.config_loader import load_config
from fractal_cli.infra.extensions import ExtensionFactory, ExtensionLoader
from fractal_cli.infra.project_root import find_project_root

PROG: str = "fractal"


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def build_bootstrapper(
    extensions: Mapping[str, ExtensionFactory] | None = None,
) -> Bootstrapper:
    """Bootstrap sequencer wired to the bundled infrastructure collaborators.

    Parameters
    ----------
    extensions:
        Explicit extension name -> factory mapping; names missing from
        it are looked up among installed entry points.
    """
    return Bootstrapper(
        core_commands=CORE_COMMANDS,
        locate_root=find_project_root,
        load_config=load_config,
        load_app=load_app,
        load_commands=load_user_commands,
        load_extensions=ExtensionLoader(extensions),
    )


def _startup_logger(argv: Sequence[str]) -> Logger:
    startup = StartupConfig.from_argv(argv, os.environ)
    configure_logging(startup)
    return Logger(debug=startup.debug)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(
    argv: Sequence[str] | None = None,
    *,
    logger: Logger | None = None,
    extensions: Mapping[str, ExtensionFactory] | None = None,
    cwd: Path | None = None,
) -> int:
    """Run the fractal CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.
    logger:
        Output channel; built from the startup configuration if omitted.
    extensions:
        Explicit extension factories (see :func:`build_bootstrapper`).
    cwd:
        Directory the project-root search starts from (defaults to the
        current working directory).

    Returns
    -------
    int
        OS process exit code.

    Raises
    ------
    FractalError
        For any bootstrap-fatal or dispatch-fatal condition.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    if logger is None:
        logger = _startup_logger(args)

    result = build_bootstrapper(extensions).run(cwd)
    dispatcher = Dispatcher(
        result.registry,
        app=result.app,
        logger=logger,
        prog=PROG,
        bootstrap=result,
    )
    invocation = dispatcher.parse(args)
    asyncio.run(dispatcher.execute(invocation))
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    Every fatal condition is reported exactly once and ends the process
    with a non-zero exit code.
    """
    argv = sys.argv[1:]
    logger = _startup_logger(argv)
    try:
        code = main(argv, logger=logger)
        sys.exit(code)
    except FractalError as exc:
        logger.error(exc)
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        logger.warning("Aborted by user.")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        logger.error(f"Unexpected error. Please report this issue.\n  {type(exc).__name__}: {exc}")
        logger.traceback(exc)
        sys.exit(exit_codes.GENERAL_ERROR)
