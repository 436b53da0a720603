"""
Saga types — core data structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from collections.abc import Callable, Awaitable
from datetime import timedelta
from kungfu import LazyCoroResult

from orderflow.saga.policy import (
    StepPolicy,
    RetryPolicy,
    TimeoutPolicy,
    ContinuePolicy,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Compensator — Undo Action
# ═══════════════════════════════════════════════════════════════════════════════

type CompensatorWithValue[T] = Callable[[T], Awaitable[None]]
"""Compensation function that receives the action result and undoes it.

Raising marks the compensation as failed."""

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep — Single Step with Compensation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    A single saga step: name + action + compensator + policies.

    When action succeeds, compensator is recorded.
    If a later step fails, recorded compensators run in reverse.
    """

    name: str
    action: LazyCoroResult[T, E]
    compensate: CompensatorWithValue[T] | None = None
    policies: tuple[StepPolicy, ...] = ()

    def then[U, E2](
        self,
        f: Callable[[T], SagaExpr[U, E2]],
    ) -> Then[T, U, E, E2]:
        """Chain another saga expression after this step."""
        return Then(self, f)

    def policy(self, *policies: StepPolicy) -> SagaStep[T, E]:
        """Return a copy with policies appended (later wins)."""
        return replace(self, policies=self.policies + policies)

    @property
    def best_effort(self) -> bool:
        return _last(self.policies, (ContinuePolicy,)) is not None

    @property
    def timeout(self) -> timedelta | None:
        policy = _last(self.policies, (TimeoutPolicy,))
        return policy.duration if policy is not None else None

    @property
    def compensation_retry(self) -> RetryPolicy | None:
        return _last(self.policies, (RetryPolicy,))


def _last(policies: tuple[StepPolicy, ...], kinds: tuple[type, ...]):
    for policy in reversed(policies):
        if isinstance(policy, kinds):
            return policy
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Saga AST — Composition Operators
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Then[T, U, E, E2]:
    """Sequential composition (monadic bind)."""

    inner: SagaExpr[T, E]
    f: Callable[[T], SagaExpr[U, E2]]

    def then[V, E3](
        self,
        g: Callable[[U], SagaExpr[V, E3]],
    ) -> Then[U, V, E | E2, E3]:
        """Chain another saga expression after this chain."""
        return Then(self, g)


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StepTimeout:
    """Error produced when a step exceeds its timeout policy."""

    step_name: str
    duration: timedelta

    def __str__(self) -> str:
        return f"step {self.step_name!r} timed out after {self.duration.total_seconds()}s"


@dataclass(frozen=True, slots=True)
class StepWarning:
    """A best-effort step that failed without aborting the saga."""

    step_name: str
    error: object


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    """Successful saga result with metadata."""

    value: T
    steps_executed: int
    compensators_recorded: int
    warnings: tuple[StepWarning, ...] = ()


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """Saga error with rollback status."""

    error: E
    step_failed: int
    step_name: str
    compensators_run: int
    compensators_failed: int
    rollback_complete: bool
    warnings: tuple[StepWarning, ...] = field(default=())


# ═══════════════════════════════════════════════════════════════════════════════
# Saga Type (union for run())
# ═══════════════════════════════════════════════════════════════════════════════

type SagaExpr[T, E] = SagaStep[T, E] | Then[object, T, object, E]

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "CompensatorWithValue",
    "SagaStep",
    "Then",
    "SagaExpr",
    "StepTimeout",
    "StepWarning",
    "SagaResult",
    "SagaError",
)
