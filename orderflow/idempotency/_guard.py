"""
Once-per-key execution.

    get(key)
      ├─ COMPLETED → replay the stored value
      ├─ PENDING   → IN_FLIGHT
      └─ none      → claim ─┬─ lost → replay if completed meanwhile, else IN_FLIGHT
                            └─ won  → run ─┬─ Ok    → complete
                                           └─ Error → release (key free for a retry)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from kungfu import Result, Ok, Error, LazyCoroResult

from orderflow.idempotency._types import GuardError, GuardErrorKind, GuardRecord, Guarded, Slot
from orderflow.idempotency._store import GuardStore
from orderflow.stores._errors import StoreError

logger = logging.getLogger(__name__)

type Outcome[T, E] = Result[Guarded[T], GuardError[E]]


def _unreachable(err: StoreError) -> Error[GuardError[Any]]:
    return Error(GuardError(GuardErrorKind.STORE, err.message))


def _in_flight(key: str) -> Error[GuardError[Any]]:
    logger.info("rejected concurrent run for %s", key)
    return Error(GuardError(GuardErrorKind.IN_FLIGHT, f"{key} is already running"))


def _replay[T](record: GuardRecord[T]) -> Ok[Guarded[T]]:
    return Ok(Guarded(record.value, replayed=True))


@dataclass(frozen=True, slots=True)
class OnceGuard[K, T, E]:
    """
    Runs operation at most once per key while its record lives.

    A run still in flight rejects others for the same key; a finished run
    replays its value until ttl passes. Failed runs leave nothing behind.

    Example:
        guard = OnceGuard(
            place_order,
            key=lambda req: f"place-order:{req.session_id}",
            store=MemoryGuardStore(),
            ttl=timedelta(hours=24),
        )
        match await guard.run(request):
            case Ok(Guarded(receipt, replayed)): ...
            case Error(GuardError(kind=GuardErrorKind.IN_FLIGHT)): ...
    """

    operation: Callable[[K], LazyCoroResult[T, E]]
    key: Callable[[K], str]
    store: GuardStore[T]
    ttl: timedelta | None = None

    def run(self, input_val: K) -> LazyCoroResult[Guarded[T], GuardError[E]]:
        async def execute() -> Outcome[T, E]:
            return await self._run(self.key(input_val), input_val)

        return LazyCoroResult(execute)

    async def _run(self, key: str, input_val: K) -> Outcome[T, E]:
        match await self.store.get(key):
            case Error(err):
                return _unreachable(err)
            case Ok(None):
                pass
            case Ok(record) if record.slot is Slot.COMPLETED:
                return _replay(record)
            case Ok(_):
                return _in_flight(key)

        match await self.store.claim(key, self.ttl):
            case Error(err):
                return _unreachable(err)
            case Ok(False):
                match await self.store.get(key):
                    case Ok(record) if record is not None and record.slot is Slot.COMPLETED:
                        return _replay(record)
                return _in_flight(key)
            case Ok(_):
                return await self._execute(key, input_val)

    async def _execute(self, key: str, input_val: K) -> Outcome[T, E]:
        try:
            result = await self.operation(input_val)
        except Exception as e:
            logger.exception("guarded run %s raised", key)
            await self.store.release(key)
            return Error(GuardError(GuardErrorKind.FAILED, str(e) or type(e).__name__))

        match result:
            case Ok(value):
                # The effects are done either way; a record left PENDING keeps
                # rejecting re-runs until its ttl passes.
                match await self.store.complete(key, value, self.ttl):
                    case Error(err):
                        logger.error("could not record completion of %s: %s", key, err.message)
                return Ok(Guarded(value, replayed=False))
            case Error(e):
                match await self.store.release(key):
                    case Error(err):
                        logger.error("could not release %s after a failed run: %s", key, err.message)
                return Error(GuardError(GuardErrorKind.FAILED, "operation failed", e))


__all__ = ("OnceGuard",)
