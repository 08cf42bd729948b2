"""Uniform handling of synchronous and asynchronous handler results.

A handler may return a plain value or an awaitable (coroutine, task,
future).  Callers always ``await resolve(...)``; the two cases are
observably equivalent to them.
"""

from __future__ import annotations

import inspect
from typing import Any


async def resolve(value: Any) -> Any:
    """Return *value*, awaiting it first when it is awaitable.

    Chained awaitables (an awaitable resolving to another awaitable)
    are awaited until a plain value is produced.
    """
    while inspect.isawaitable(value):
        value = await value
    return value
