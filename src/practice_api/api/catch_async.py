from __future__ import annotations

import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")

NextFunction = Callable[[Exception], Any]
Handler = Callable[[Any, Any, NextFunction], Awaitable[T]]


def catch_async(handler: Handler[T]) -> Handler[T]:
    """Wrap ``handler`` so a raised exception goes to its ``next_`` continuation.

    The wrapped handler keeps the ``(request, call_next, next_)`` signature.
    On failure ``next_`` is called exactly once with the exception and its
    result (awaited if needed) becomes the handler's result.
    """

    @functools.wraps(handler)
    async def wrapped(request: Any, call_next: Any, next_: NextFunction) -> T:
        try:
            return await handler(request, call_next, next_)
        except Exception as exc:
            result = next_(exc)
            if inspect.isawaitable(result):
                result = await result
            return result

    return wrapped
