"""
Saga — multi-step writes with compensation.

    from orderflow import saga as S

    saga = S.step("a", action, compensate).then(lambda v: S.step("b", action2, compensate2))
    result = await S.run(saga)
"""

from __future__ import annotations

from orderflow.saga._types import (
    CompensatorWithValue,
    SagaStep,
    SagaExpr,
    SagaResult,
    SagaError,
    StepTimeout,
    StepWarning,
    Then,
)
from orderflow.saga._step import step, from_result
from orderflow.saga._run import run
from orderflow.saga import policy

__all__ = (
    "CompensatorWithValue",
    "SagaStep",
    "SagaExpr",
    "SagaResult",
    "SagaError",
    "StepTimeout",
    "StepWarning",
    "Then",
    "step",
    "from_result",
    "run",
    "policy",
)
