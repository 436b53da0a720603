"""
Saga step policies.

Namespace: S.policy.*

Examples:
    step.policy(S.policy.on_failure.continue_())
    step.policy(S.policy.timeout(seconds=10))
    step.policy(S.policy.compensate.retry(attempts=3))
"""

from __future__ import annotations

from orderflow.saga.policy._compensate import RetryPolicy, retry
from orderflow.saga.policy._timeout import TimeoutPolicy, timeout
from orderflow.saga.policy._on_failure import (
    ContinuePolicy,
    continue_,
)

type StepPolicy = RetryPolicy | TimeoutPolicy | ContinuePolicy


# Namespace objects
class compensate:
    """Compensation policies."""

    retry = staticmethod(retry)


class on_failure:
    """Failure handling policies."""

    continue_ = staticmethod(continue_)


__all__ = (
    "StepPolicy",
    "RetryPolicy",
    "TimeoutPolicy",
    "ContinuePolicy",
    "compensate",
    "on_failure",
    "timeout",
)
