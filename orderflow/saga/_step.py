"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult, Result

from orderflow.saga._types import SagaStep, CompensatorWithValue

# ═══════════════════════════════════════════════════════════════════════════════
# step() — Primary Constructor
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    name: str,
    action: LazyCoroResult[T, E],
    compensate: CompensatorWithValue[T] | None = None,
) -> SagaStep[T, E]:
    """
    Create a compensated saga step.

    Args:
        name: Step name, reported in SagaError and logs
        action: The operation to perform (LazyCoroResult)
        compensate: The compensation action if rollback needed

    Returns:
        SagaStep that can be chained with .then()

    Example:
        from orderflow import saga as S

        create = S.step(
            "create_order",
            action=S.from_result(lambda: orders.create_order(new_order)),
            compensate=lambda ref: delete_order(ref.id),
        )

        # Chain steps
        placed = create.then(lambda ref: S.step(
            "create_items",
            action=S.from_result(lambda: orders.create_order_items(ref.id, items)),
        ))
    """
    return SagaStep(name=name, action=action, compensate=compensate)


# ═══════════════════════════════════════════════════════════════════════════════
# from_result() — Wrap an async callable that already returns Result
# ═══════════════════════════════════════════════════════════════════════════════


def from_result[T, E](
    action: Callable[[], Awaitable[Result[T, E]]],
) -> LazyCoroResult[T, E]:
    """Defer a Result-returning coroutine function."""
    async def _run() -> Result[T, E]:
        return await action()
    return LazyCoroResult(_run)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("step", "from_result")
