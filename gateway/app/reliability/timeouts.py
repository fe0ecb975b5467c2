from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class AttemptTimeoutError(TimeoutError):
    """Raised when one upstream attempt exceeds its timeout."""


async def enforce_timeout(
    coro_fn: Callable[[], Awaitable[T]],
    timeout_ms: int,
) -> T:
    # wait_for cancels only the in-flight call; retry bookkeeping is untouched
    try:
        return await asyncio.wait_for(coro_fn(), timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError as exc:
        raise AttemptTimeoutError(f"attempt exceeded {timeout_ms} ms") from exc


__all__ = ["AttemptTimeoutError", "enforce_timeout"]
