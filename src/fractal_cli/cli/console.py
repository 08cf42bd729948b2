"""User-facing output and diagnostic logging setup.

:class:`Logger` is the channel handed to every command handler.  It is
built on Rich consoles: command output goes to stdout as plain text,
warnings and errors go to stderr with styled prefixes.

Diagnostic messages use the standard :mod:`logging` module under the
package namespace; :func:`configure_logging` attaches a
:class:`~rich.logging.RichHandler` once, driven by the
:class:`~fractal_cli.core.models.StartupConfig` computed at startup.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.traceback import Traceback

from fractal_cli.core.models import StartupConfig
from fractal_cli.exceptions import FractalError


class Logger:
    """``log`` / ``warning`` / ``error`` / ``debug`` over Rich consoles.

    Parameters
    ----------
    debug:
        Emit ``debug`` messages and tracebacks for unexpected errors.
    console:
        Destination for :meth:`log` (stdout by default).
    err_console:
        Destination for everything else (stderr by default).
    """

    def __init__(
        self,
        *,
        debug: bool = False,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        self.debug_enabled: bool = debug
        self._console: Console = console or Console()
        self._err_console: Console = err_console or Console(stderr=True)

    def log(self, message: str) -> None:
        """Write *message* verbatim; handler text is never read as markup."""
        self._console.print(message, markup=False, highlight=False, soft_wrap=True)

    def warning(self, message: str) -> None:
        self._err_console.print(f"[yellow]Warning:[/yellow] {escape(str(message))}")

    def error(self, message: str | BaseException) -> None:
        """Report *message*, or an exception with its hint when it has one.

        Under debug, exceptions that are not :class:`FractalError` are
        followed by their traceback.
        """
        if not isinstance(message, BaseException):
            self._err_console.print(f"[bold red]Error:[/bold red] {escape(str(message))}")
            return

        text = str(message) or type(message).__name__
        self._err_console.print(f"[bold red]Error:[/bold red] {escape(text)}")
        if isinstance(message, FractalError):
            if message.hint:
                self._err_console.print(f"[yellow]Hint:[/yellow] {escape(message.hint)}")
        else:
            self.traceback(message)

    def traceback(self, exc: BaseException) -> None:
        """Print the traceback of *exc* when debug output is enabled."""
        if self.debug_enabled and exc.__traceback__ is not None:
            self._err_console.print(Traceback.from_exception(type(exc), exc, exc.__traceback__))

    def debug(self, message: str) -> None:
        if self.debug_enabled:
            self._err_console.print(f"[dim]{escape(str(message))}[/dim]")


def configure_logging(startup: StartupConfig, console: Console | None = None) -> logging.Logger:
    """Route the package's diagnostic logging according to *startup*.

    Safe to call repeatedly: a previously installed Rich handler is
    replaced rather than duplicated.
    """
    log = logging.getLogger(startup.debug_namespace)
    for handler in list(log.handlers):
        if isinstance(handler, RichHandler):
            log.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if startup.debug else logging.WARNING)
    log.propagate = False
    return log
