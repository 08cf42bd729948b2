"""Command dispatch: argv -> exactly one executed handler.

Dispatch happens in two steps so that ``--version`` and usage errors
are settled before any event loop starts:

1. :meth:`Dispatcher.parse` (synchronous) runs the top-level
   :mod:`argparse` parser and returns an :class:`Invocation`.
2. :meth:`Dispatcher.execute` (coroutine) routes the invocation to a
   bound command, parses that command's own arguments and runs the
   execution envelope.

Every registered definition is bound, including shadowed ones, so that
listings show the complete registry.  Routing uses the registry's
last-registration-wins view, so an override always receives the
invocation.

The execution envelope is identical for every command:

* mark the outcome as matched;
* on an explicit help request, render the command's help instead of
  running the handler;
* otherwise call ``handler(args, app, cli, logger)`` and await the
  result whether or not the handler is asynchronous;
* text results are collapsed and framed before display;
* handler failures are reported through the logger and stop there.

If no envelope ran for a given command token, the dispatcher raises
:class:`~fractal_cli.exceptions.CommandNotRecognisedError`.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, NoReturn

from fractal_cli.core.bootstrap import BootstrapResult
from fractal_cli.core.deferred import resolve
from fractal_cli.core.models import CommandDefinition, DispatchOutcome
from fractal_cli.core.output import render_result
from fractal_cli.core.protocols import Logger
from fractal_cli.core.registry import CommandRegistry
from fractal_cli.exceptions import (
    CommandConflictError,
    CommandNotRecognisedError,
    NoCommandError,
    UsageError,
)
from fractal_cli.version import __version__

logger = logging.getLogger(__name__)

HELP_FLAGS: tuple[str, ...] = ("-h", "--help")
END_OF_OPTIONS: str = "--"


def _split_options(arguments: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split *arguments* at the first ``--`` (the separator itself is dropped)."""
    if END_OF_OPTIONS not in arguments:
        return list(arguments), []
    index = list(arguments).index(END_OF_OPTIONS)
    return list(arguments[:index]), list(arguments[index + 1 :])


class _ArgumentParser(argparse.ArgumentParser):
    """``ArgumentParser`` that raises :class:`UsageError` instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message, hint=f"Run '{self.prog} --help' for usage.")


# ---------------------------------------------------------------------------
# Parsed input and bindings
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Invocation:
    """Result of the top-level parse."""

    command: str | None
    """The command token, or ``None`` when only global flags were given."""

    arguments: tuple[str, ...] = ()
    """Everything after the command token, unparsed."""

    help: bool = False
    """Help was requested globally or after the command token."""

    @property
    def tokens(self) -> list[str]:
        """The command token followed by the non-option arguments.

        Everything after ``--`` counts as an argument, dashes or not.
        """
        head, tail = _split_options(self.arguments)
        positional = [arg for arg in head if not arg.startswith("-")] + tail
        return [self.command, *positional] if self.command else positional


@dataclass(frozen=True, slots=True)
class BoundCommand:
    """A definition attached to its own parser and execution envelope."""

    definition: CommandDefinition
    parser: argparse.ArgumentParser
    run: Callable[[argparse.Namespace], Awaitable[None]]

    def parse(self, invocation: Invocation) -> argparse.Namespace:
        """Parse the command's arguments; help requests skip validation."""
        if invocation.help:
            return argparse.Namespace(help=True)
        return self.parser.parse_args(list(invocation.arguments))


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class Dispatcher:
    """Binds a finished registry to the argument parser and runs commands.

    The dispatcher is the ``cli`` object handed to every handler.

    Parameters
    ----------
    registry:
        The bootstrapped registry; frozen on construction.
    app:
        The application object passed to handlers.
    logger:
        User-facing output channel passed to handlers.
    prog, version:
        Program name and version string used in help and ``--version``.
    bootstrap:
        The bootstrap result, exposed to handlers that report on it.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        *,
        app: Any,
        logger: Logger,
        prog: str = "fractal",
        version: str = __version__,
        bootstrap: BootstrapResult | None = None,
    ) -> None:
        registry.freeze()
        self.registry = registry
        self.app = app
        self.logger = logger
        self.prog = prog
        self.version = version
        self.bootstrap = bootstrap
        self.outcome = DispatchOutcome()

        self.bindings: tuple[BoundCommand, ...] = tuple(
            self._bind(definition) for definition in registry.all()
        )
        self._routes: dict[str, BoundCommand] = self._route()
        self.parser: argparse.ArgumentParser = self._build_parser()

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def _bind(self, definition: CommandDefinition) -> BoundCommand:
        parser = self._command_parser(definition)
        return BoundCommand(definition=definition, parser=parser, run=self._envelope(definition, parser))

    def _command_parser(self, definition: CommandDefinition) -> argparse.ArgumentParser:
        pattern = definition.pattern
        epilog = f"aliases: {', '.join(definition.aliases)}" if definition.aliases else None
        parser = _ArgumentParser(
            prog=f"{self.prog} {pattern.token}",
            description=definition.description or None,
            epilog=epilog,
            add_help=False,
        )
        parser.add_argument("-h", "--help", action="store_true", help="Show this help message.")
        parser.add_argument(
            "-v", "--verbose", "--debug", dest="verbose", action="store_true", help=argparse.SUPPRESS,
        )
        for positional in pattern.positionals:
            kwargs: dict[str, Any] = {"metavar": positional.name}
            if positional.nargs is not None:
                kwargs["nargs"] = positional.nargs
            parser.add_argument(positional.dest, **kwargs)
        definition.builder(parser)
        return parser

    def _route(self) -> dict[str, BoundCommand]:
        """Map every invocation string to the binding that answers it.

        Raises
        ------
        CommandConflictError
            If two active (non-shadowed) commands claim the same string.
        """
        by_identity = {id(binding.definition): binding for binding in self.bindings}
        routes: dict[str, BoundCommand] = {}
        for name, definition in self.registry.resolve().items():
            binding = by_identity[id(definition)]
            for invocation in definition.invocations:
                owner = routes.get(invocation)
                if owner is not None and owner is not binding:
                    raise CommandConflictError(
                        f"'{invocation}' is claimed by both '{owner.definition.name}' and '{name}'.",
                        hint="Rename the command or drop the duplicate alias.",
                    )
                routes[invocation] = binding
        return routes

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = _ArgumentParser(
            prog=self.prog,
            description="Fractal command-line interface.",
            epilog=self.command_listing(),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            add_help=False,
            allow_abbrev=False,
        )
        parser.add_argument("-h", "--help", action="store_true", help="Show help and exit.")
        parser.add_argument(
            "-V", "--version", action="version", version=f"%(prog)s {self.version}",
        )
        parser.add_argument(
            "-v", "--verbose", "--debug", dest="verbose", action="store_true",
            help="Enable diagnostic output.",
        )
        parser.add_argument("command", nargs="?", metavar="<command>", help="Command to run.")
        parser.add_argument("arguments", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
        return parser

    def _envelope(
        self,
        definition: CommandDefinition,
        parser: argparse.ArgumentParser,
    ) -> Callable[[argparse.Namespace], Awaitable[None]]:
        async def run(args: argparse.Namespace) -> None:
            outcome = self.outcome
            outcome.matched = True
            outcome.command = definition.name

            if getattr(args, "help", False):
                outcome.help_shown = True
                self._emit(parser.format_help())
                return

            try:
                result = await resolve(definition.handler(args, self.app, self, self.logger))
            except Exception as exc:
                logger.debug("command %s failed", definition.name, exc_info=True)
                outcome.error = exc
                self.logger.error(exc)
                return

            outcome.result = result
            if isinstance(result, str):
                self._emit(render_result(result))

        return run

    def _emit(self, text: str) -> None:
        self.outcome.rendered.append(text)
        self.logger.log(text)

    # ------------------------------------------------------------------
    # Help
    # ------------------------------------------------------------------

    def command_listing(self) -> str:
        """Every registered command in registration order, overrides marked."""
        if not self.bindings:
            return "commands:\n  (none)"
        active = self.registry.resolve()
        width = max(len(binding.definition.command) for binding in self.bindings)
        lines = ["commands:"]
        for binding in self.bindings:
            definition = binding.definition
            line = f"  {definition.command:<{width}}  {definition.description}".rstrip()
            if definition.aliases:
                line += f"  [aliases: {', '.join(definition.aliases)}]"
            if active.get(definition.name) is not definition:
                line += "  (overridden)"
            lines.append(line)
        return "\n".join(lines)

    def format_help(self) -> str:
        return self.parser.format_help()

    def lookup(self, invocation: str) -> CommandDefinition | None:
        """The definition that *invocation* would run, if any."""
        binding = self._routes.get(invocation)
        return binding.definition if binding else None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def parse(self, argv: Sequence[str]) -> Invocation:
        """Run the top-level parser over *argv*.

        Raises
        ------
        NoCommandError
            If *argv* holds no command token and no help request.
        UsageError
            If the top-level parser rejects *argv*.
        SystemExit
            For ``--version``, after printing the version.
        """
        namespace = self.parser.parse_args(list(argv))
        arguments = tuple(namespace.arguments or ())
        if namespace.command is None and not namespace.help:
            raise NoCommandError(hint=f"Run '{self.prog} --help' to list the available commands.")
        return Invocation(
            command=namespace.command,
            arguments=arguments,
            help=namespace.help or any(arg in HELP_FLAGS for arg in _split_options(arguments)[0]),
        )

    async def execute(self, invocation: Invocation) -> DispatchOutcome:
        """Route *invocation* to its command and run the envelope.

        Raises
        ------
        CommandNotRecognisedError
            If no command envelope ran for the given token.
        UsageError
            If the matched command's parser rejects its arguments.
        """
        self.outcome = DispatchOutcome()

        if invocation.command is None:
            self.outcome.help_shown = True
            self._emit(self.format_help())
            return self.outcome

        binding = self._routes.get(invocation.command)
        if binding is not None:
            await binding.run(binding.parse(invocation))

        if not self.outcome.matched:
            raise CommandNotRecognisedError(
                invocation.tokens,
                hint=f"Run '{self.prog} --help' to list the available commands.",
            )
        return self.outcome

    async def dispatch(self, argv: Sequence[str]) -> DispatchOutcome:
        """:meth:`parse` then :meth:`execute`."""
        return await self.execute(self.parse(argv))
