"""Backoff helpers shared by the dispatcher and storage retries."""

from __future__ import annotations

import asyncio
from functools import wraps
from typing import Awaitable, Callable, ParamSpec, Tuple, Type, TypeVar

P = ParamSpec("P")
R = TypeVar("R")


def backoff_delay(retry_delay_ms: float, multiplier: float, attempt: int) -> float:
    """Seconds to wait after the zero-based ``attempt`` failed."""

    return (retry_delay_ms * (multiplier**attempt)) / 1000.0


def async_retry(
    *,
    attempts: int = 3,
    delay: float = 0.1,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry decorator for coroutines with exponential backoff."""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            current_delay = delay
            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions:
                    if attempt == attempts - 1:
                        raise
                    await sleep(current_delay)
                    current_delay *= backoff
            raise RuntimeError("retry failed")

        return wrapper

    return decorator
