"""Custom exception hierarchy for fractal-cli.

Every fatal condition that reaches the top-level boundary must be a
:class:`FractalError` subclass so that :func:`fractal_cli.cli.app.cli`
can render a clean message instead of a raw stack trace.

Hierarchy
---------
FractalError
├── ConfigError
├── AppLoadError
├── ExtensionError
├── ReferenceResolutionError
├── CommandConflictError
├── UsageError
│   └── NoCommandError
├── CommandNotRecognisedError
└── TemplateError
"""

from __future__ import annotations


class FractalError(Exception):
    """Base exception for all fractal-cli errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Bootstrap -------------------------------------------------------------

class ConfigError(FractalError):
    """Raised when the configuration file cannot be read or is malformed."""


class AppLoadError(FractalError):
    """Raised when the application object cannot be constructed."""


class ExtensionError(FractalError):
    """Raised when an extension cannot be found, coerced or registered."""


class ReferenceResolutionError(FractalError):
    """Raised when a ``module:attribute`` reference cannot be imported."""


# --- Dispatch --------------------------------------------------------------

class CommandConflictError(FractalError):
    """Raised when two active commands claim the same invocation string."""


class UsageError(FractalError):
    """Raised when the argument parser rejects the given arguments."""


class NoCommandError(UsageError):
    """Raised when no command token was given at all."""

    def __init__(self, message: str = "You must specify a command.", *, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)


class CommandNotRecognisedError(FractalError):
    """Raised when a command token was given but no handler matched it."""

    def __init__(self, tokens: list[str], *, hint: str | None = None) -> None:
        self.tokens: list[str] = list(tokens)
        super().__init__(
            f"the command '{' '.join(self.tokens)}' was not recognised",
            hint=hint,
        )


# --- Rendering ---------------------------------------------------------------

class TemplateError(FractalError):
    """Raised when a template cannot be loaded or rendered."""
