"""
Compensation policies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry a failing compensator before counting it as failed."""
    attempts: int
    delay: timedelta

def retry(attempts: int = 3, delay: timedelta = timedelta(seconds=0.2)) -> RetryPolicy:
    """Retry compensators on failure."""
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    return RetryPolicy(attempts, delay)


__all__ = ("RetryPolicy", "retry")
