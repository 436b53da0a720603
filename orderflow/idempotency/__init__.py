"""
Idempotency — run an operation at most once per key.

    from orderflow import idempotency as I

    guard = I.OnceGuard(
        place_order,
        key=lambda req: f"place-order:{req.session_id}",
        store=I.MemoryGuardStore(),
        ttl=timedelta(hours=24),
    )
    result = await guard.run(request)

A second run while the first is in flight gets IN_FLIGHT; after it
succeeds the stored value is replayed. Failed runs free the key.
"""

from orderflow.idempotency._types import (
    Slot,
    GuardRecord,
    Guarded,
    GuardErrorKind,
    GuardError,
)
from orderflow.idempotency._store import GuardStore, MemoryGuardStore
from orderflow.idempotency._guard import OnceGuard
from orderflow.idempotency._sqlalchemy import GuardTable, SQLAlchemyGuardStore

__all__ = (
    "Slot",
    "GuardRecord",
    "Guarded",
    "GuardErrorKind",
    "GuardError",
    "GuardStore",
    "MemoryGuardStore",
    "OnceGuard",
    "GuardTable",
    "SQLAlchemyGuardStore",
)
