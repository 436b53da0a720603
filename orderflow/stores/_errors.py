"""
Store errors.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from collections.abc import Awaitable, Callable

from kungfu import Result, Ok, Error
from combinators import lift as L


@dataclass(frozen=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None
    timed_out: bool = False

    def __str__(self) -> str:
        return self.message


def _from_exception(e: Exception, timeout: float | None) -> StoreError:
    if isinstance(e, TimeoutError):
        return StoreError(f"store call timed out after {timeout}s", e, timed_out=True)
    return StoreError(f"store call failed: {e}", e)


async def guarded[T](
    call: Callable[[], Awaitable[Result[T, StoreError]]],
    timeout: float | None = None,
) -> Result[T, StoreError]:
    """
    Run a store call with an optional time bound.

    Exceptions escaping a store implementation become StoreError so that
    callers only ever see Result values.

    Example:
        match await guarded(lambda: carts.get_lines(user_id), timeout=5):
            case Ok(cart): ...
            case Error(err) if err.timed_out: ...
    """
    async def bounded() -> Result[T, StoreError]:
        if timeout is None:
            return await call()
        return await asyncio.wait_for(call(), timeout)

    match await L.catching_async(bounded, on_error=lambda e: _from_exception(e, timeout)):
        case Ok(result):
            return result
        case Error(err):
            return Error(err)


__all__ = ("StoreError", "guarded")
