"""
Guard records and outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto


class Slot(Enum):
    """
    Where a key stands.

        (absent) ──claim──→ PENDING ──complete──→ COMPLETED
                               │
                               └──release──→ (absent)

    Values are what the SQL guard table stores.
    """

    PENDING = "pending"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class GuardRecord[T]:
    key: str
    slot: Slot
    value: T | None
    created_at: datetime
    expires_at: datetime | None = None

    def expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at


@dataclass(frozen=True, slots=True)
class Guarded[T]:
    """A guarded run's value; replayed is True when it came from an earlier run."""

    value: T
    replayed: bool


class GuardErrorKind(Enum):
    IN_FLIGHT = auto()  # same key claimed by a run that has not finished
    STORE = auto()  # guard storage unreachable; the operation did not run
    FAILED = auto()  # the operation ran and failed; the key is free again


@dataclass(frozen=True, slots=True)
class GuardError[E]:
    kind: GuardErrorKind
    message: str
    cause: E | None = None


__all__ = ("Slot", "GuardRecord", "Guarded", "GuardErrorKind", "GuardError")
