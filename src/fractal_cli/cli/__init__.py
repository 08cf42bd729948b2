"""CLI layer: argument parsing, dispatch, output and the error boundary.

This package is the outermost layer of the application.  It may import
from ``core``, ``infra`` and ``render``, but no other layer may import
from ``cli``.
"""
