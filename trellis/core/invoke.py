"""Call helpers shared by hooks, traits, and the execution adapter.

Handlers and hooks may be plain functions or coroutine functions, and
may return awaitables. These helpers keep that branching in one place.
"""

import inspect
from collections.abc import Callable
from typing import Any


async def call(fn: Callable[..., Any], *args: Any) -> Any:
    """Invoke fn with args, awaiting the result if it is awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def positional_arity(fn: Callable[..., Any]) -> int:
    """Count the positional parameters fn accepts.

    Returns -1 when fn takes *args (any number), and -1 when the
    signature cannot be inspected (some builtins).
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return -1

    count = 0
    for parameter in signature.parameters.values():
        if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
            return -1
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return count


def wants_completion_signal(handler: Callable[..., Any]) -> bool:
    """True when a test handler declares a second positional parameter.

    Such handlers receive ``done`` and complete only when they call it.
    """
    return positional_arity(handler) >= 2


async def call_with_optional(fn: Callable[..., Any], argument: Any) -> Any:
    """Invoke fn with argument if it accepts one, otherwise with nothing."""
    if positional_arity(fn) == 0:
        return await call(fn)
    return await call(fn, argument)
