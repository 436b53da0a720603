"""
Saga execution with automatic rollback.

Chains of any length are evaluated left to right; each step's success
records its compensator. The first non-best-effort failure stops the
chain and runs every recorded compensator in reverse order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from collections.abc import Awaitable

from kungfu import Result, Ok, Error

from orderflow.saga._types import (
    SagaStep,
    SagaExpr,
    SagaResult,
    SagaError,
    StepTimeout,
    StepWarning,
    Then,
    CompensatorWithValue,
)
from orderflow.saga.policy import RetryPolicy

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Recorded Compensator
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RecordedCompensator[T]:
    step_name: str
    value: T
    compensate: CompensatorWithValue[T]
    retry: RetryPolicy | None


@dataclass(slots=True)
class _RunState:
    compensators: list[RecordedCompensator] = field(default_factory=list)
    warnings: list[StepWarning] = field(default_factory=list)
    steps_executed: int = 0
    failed_step: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# run_step() — Execute single step
# ═══════════════════════════════════════════════════════════════════════════════


async def _await[T](awaitable: Awaitable[T]) -> T:
    return await awaitable


async def _execute[T, E](step: SagaStep[T, E]) -> Result[T, E | StepTimeout]:
    timeout = step.timeout
    if timeout is None:
        return await step.action
    try:
        return await asyncio.wait_for(_await(step.action), timeout.total_seconds())
    except TimeoutError:
        return Error(StepTimeout(step.name, timeout))


async def run_step[T, E](
    step: SagaStep[T, E],
    state: _RunState,
) -> Result[T | None, E | StepTimeout]:
    """Execute single step, recording compensator on success."""
    state.steps_executed += 1
    logger.debug("saga step %s started", step.name)

    result = await _execute(step)
    match result:
        case Ok(value):
            if step.compensate is not None:
                state.compensators.append(
                    RecordedCompensator(step.name, value, step.compensate, step.compensation_retry)
                )
            return Ok(value)
        case Error(e):
            if step.best_effort:
                logger.warning("best-effort step %s failed: %s", step.name, e)
                state.warnings.append(StepWarning(step.name, e))
                return Ok(None)
            logger.warning("saga step %s failed: %s", step.name, e)
            state.failed_step = step.name
            return Error(e)


async def _run_expr(expr: SagaExpr, state: _RunState) -> Result:
    match expr:
        case SagaStep():
            return await run_step(expr, state)
        case Then(inner, f):
            inner_result = await _run_expr(inner, state)
            match inner_result:
                case Ok(value):
                    return await _run_expr(f(value), state)
                case Error(e):
                    return Error(e)
    raise TypeError(f"Not a saga expression: {expr!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# run_compensators() — Rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def _compensate_one(recorded: RecordedCompensator) -> bool:
    attempts = recorded.retry.attempts if recorded.retry is not None else 1
    for attempt in range(1, attempts + 1):
        try:
            await recorded.compensate(recorded.value)
            return True
        except Exception:
            logger.exception(
                "compensator for %s failed (attempt %d/%d)",
                recorded.step_name, attempt, attempts,
            )
            if attempt < attempts and recorded.retry is not None:
                await asyncio.sleep(recorded.retry.delay.total_seconds())
    return False


async def run_compensators(
    compensators: list[RecordedCompensator],
) -> tuple[int, int]:
    """Run compensators in reverse. Returns (run, failed)."""
    comp_run = 0
    comp_failed = 0

    for recorded in reversed(compensators):
        if await _compensate_one(recorded):
            comp_run += 1
        else:
            comp_failed += 1

    return comp_run, comp_failed


# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Saga
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](
    saga: SagaExpr[T, E],
) -> Result[SagaResult[T], SagaError[E | StepTimeout]]:
    """
    Execute saga with automatic rollback on failure.

    On success: returns SagaResult with value and metadata.
    On failure: runs compensators in reverse, returns SagaError.

    Example:
        from orderflow import saga as S

        placed = (
            S.step("create_order", create, delete_order)
            .then(lambda ref: S.step("create_items", items(ref)))
            .then(lambda _: S.step("clear_cart", clear))
        )

        result = await S.run(placed)

        match result:
            case Ok(r):
                print(f"Success: {r.value}")
            case Error(e):
                print(f"Failed at {e.step_name}, rollback ok: {e.rollback_complete}")
    """
    state = _RunState()

    result = await _run_expr(saga, state)

    match result:
        case Ok(value):
            return Ok(SagaResult(
                value=value,
                steps_executed=state.steps_executed,
                compensators_recorded=len(state.compensators),
                warnings=tuple(state.warnings),
            ))

        case Error(error):
            comp_run, comp_failed = await run_compensators(state.compensators)
            if comp_failed:
                logger.error(
                    "saga rollback incomplete after %s failed: %d compensator(s) failed",
                    state.failed_step, comp_failed,
                )

            return Error(SagaError(
                error=error,
                step_failed=state.steps_executed,
                step_name=state.failed_step,
                compensators_run=comp_run,
                compensators_failed=comp_failed,
                rollback_complete=comp_failed == 0,
                warnings=tuple(state.warnings),
            ))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("run", "run_step", "run_compensators", "RecordedCompensator")
