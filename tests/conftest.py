"""Shared pytest fixtures and configuration for the fractal-cli test suite.

Guidelines
----------
* No network access in any test.
* Tests that bootstrap a project run inside ``tmp_path`` via
  ``monkeypatch.chdir`` so the developer's working directory is never
  touched.
* Output is captured from in-memory Rich consoles, not from the
  terminal.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from fractal_cli.cli.console import Logger
from fractal_cli.core.models import CommandDefinition

TESTS_DIR = Path(__file__).parent


class CapturedLogger(Logger):
    """A :class:`Logger` writing to in-memory consoles."""

    def __init__(self, *, debug: bool = False) -> None:
        self.out_buffer = io.StringIO()
        self.err_buffer = io.StringIO()
        super().__init__(
            debug=debug,
            console=Console(file=self.out_buffer, width=200, color_system=None),
            err_console=Console(file=self.err_buffer, width=200, color_system=None),
        )

    @property
    def out(self) -> str:
        return self.out_buffer.getvalue()

    @property
    def err(self) -> str:
        return self.err_buffer.getvalue()


@pytest.fixture
def captured_logger() -> CapturedLogger:
    return CapturedLogger()


@pytest.fixture
def make_command() -> Callable[..., CommandDefinition]:
    """Factory for command definitions with a harmless default handler."""

    def _make(name: str, handler: Callable[..., Any] | None = None, **kwargs: Any) -> CommandDefinition:
        return CommandDefinition(
            name=name,
            handler=handler or (lambda args, app, cli, logger: None),
            **kwargs,
        )

    return _make


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An empty project directory (with a ``fractal.yml``) as the cwd."""
    (tmp_path / "fractal.yml").write_text("app:\n  name: demo\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.syspath_prepend(str(TESTS_DIR))
    return tmp_path
