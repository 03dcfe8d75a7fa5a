"""Assorted helper functions."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Tuple, Type

logger = logging.getLogger(__name__)


def async_retry(
    retries: int = 3,
    delay: float = 0.5,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """Retry decorator for async callables.

    ``retries`` is the total number of attempts; the wait before attempt
    ``n + 1`` is ``delay * n`` seconds.
    """
    if retries <= 0:
        raise ValueError('retries must be positive')

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as error:
                    attempt += 1
                    if attempt >= retries:
                        raise
                    logger.warning(
                        '%s failed (attempt %d/%d): %s',
                        getattr(func, '__qualname__', func),
                        attempt,
                        retries,
                        error,
                    )
                    await asyncio.sleep(delay * attempt)
        return wrapper

    return decorator


__all__ = ['async_retry']
