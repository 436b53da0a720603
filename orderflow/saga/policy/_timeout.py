"""
Timeout policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

@dataclass(frozen=True, slots=True)
class TimeoutPolicy:
    """Upper bound for a single step's action."""
    duration: timedelta

def timeout(seconds: float | None = None, duration: timedelta | None = None) -> TimeoutPolicy:
    """
    Bound a step's execution time.

    A timed-out step fails with StepTimeout and is handled like any
    other failure of that step.

    Example:
        S.step("create_order", action).policy(S.policy.timeout(seconds=10))
    """
    if duration is not None:
        return TimeoutPolicy(duration)
    if seconds is not None:
        return TimeoutPolicy(timedelta(seconds=seconds))
    raise ValueError("Must provide seconds or duration")


__all__ = ("TimeoutPolicy", "timeout")
