"""Normalisation of handler-authored text for terminal display."""

from __future__ import annotations

import re

SEPARATOR: str = "─" * 48

_BLANK_LINES = re.compile(r"\n\s*\n")


def collapse_blank_lines(text: str) -> str:
    """Collapse any run of blank lines (whitespace-only included) to one newline.

    The operation is idempotent: collapsing an already collapsed string
    returns it unchanged.

    >>> collapse_blank_lines("a\\n\\n\\nb")
    'a\\nb'
    """
    return _BLANK_LINES.sub("\n", text)


def frame(text: str, separator: str = SEPARATOR) -> str:
    """Wrap *text* between two separator rules."""
    return f"{separator}\n{text}\n{separator}"


def render_result(text: str) -> str:
    """Collapse and frame a handler's textual result."""
    return frame(collapse_blank_lines(text))
