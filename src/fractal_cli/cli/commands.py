"""Built-in command set.

These definitions are registered before any user or extension command,
so a same-named command from ``fractal.yml`` or an extension replaces
them at dispatch time while they stay listed in help.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from fractal_cli.core.models import CommandDefinition
from fractal_cli.exceptions import UsageError
from fractal_cli.version import __version__


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------

def info(args: argparse.Namespace, app: Any, cli: Any, logger: Any) -> str:
    """Summarise the bootstrapped project."""
    bootstrap = cli.bootstrap
    config_path = bootstrap.config.config_path if bootstrap else None
    extensions = [extension.name for extension in bootstrap.extensions] if bootstrap else []
    capabilities = sorted(getattr(app, "capabilities", {}) or {})

    rows = [
        ("fractal-cli", __version__),
        ("Project", getattr(app, "name", "-")),
        ("Root", str(getattr(app, "root", "-"))),
        ("Config", str(config_path) if config_path else "none (defaults)"),
        ("Extensions", ", ".join(extensions) or "none"),
        ("Capabilities", ", ".join(capabilities) or "none"),
        ("Commands", str(len(cli.registry))),
    ]
    width = max(len(label) for label, _ in rows)
    return "\n".join(f"{label:<{width}}  {value}" for label, value in rows)


# ---------------------------------------------------------------------------
# commands
# ---------------------------------------------------------------------------

def list_commands(args: argparse.Namespace, app: Any, cli: Any, logger: Any) -> str:
    """Every registered command, including overridden built-ins."""
    return cli.command_listing()


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------

def _render_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--context",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Template variable (repeatable).",
    )
    parser.add_argument("-o", "--output", default=None, help="Write the result to this file.")


def _parse_context(pairs: list[str]) -> dict[str, str]:
    context: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise UsageError(f"Invalid --context value {pair!r}; expected KEY=VALUE.")
        context[key.strip()] = value
    return context


async def render(args: argparse.Namespace, app: Any, cli: Any, logger: Any) -> str | None:
    """Render a template from the project root.

    Returns the rendered text, or ``None`` after writing ``--output``.
    """
    context = _parse_context(args.context)
    text = await app.renderer.render(args.path, context)
    if args.output is None:
        return text

    destination = Path(args.output)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(text, encoding="utf-8")
    logger.log(f"Wrote {destination}")
    return None


CORE_COMMANDS: tuple[CommandDefinition, ...] = (
    CommandDefinition(
        name="info",
        command="info",
        description="Show project, configuration and extension details.",
        handler=info,
    ),
    CommandDefinition(
        name="commands",
        command="commands",
        aliases=("ls",),
        description="List every registered command.",
        handler=list_commands,
    ),
    CommandDefinition(
        name="render",
        command="render <path>",
        description="Render a template relative to the project root.",
        builder=_render_arguments,
        handler=render,
    ),
)
