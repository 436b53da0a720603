"""
Guard storage.

A store only has to make claim() atomic: of two concurrent claims for one
key exactly one gets Ok(True).
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Protocol

from kungfu import Result, Ok, Error

from orderflow.idempotency._types import GuardRecord, Slot
from orderflow.stores._errors import StoreError


class GuardStore[T](Protocol):
    async def get(self, key: str) -> Result[GuardRecord[T] | None, StoreError]:
        """Live record for key; expired records read as None."""
        ...

    async def claim(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        """Take the key as PENDING. Ok(False) when a live record holds it."""
        ...

    async def complete(self, key: str, value: T, ttl: timedelta | None) -> Result[None, StoreError]:
        ...

    async def release(self, key: str) -> Result[None, StoreError]:
        ...


def _deadline(now: datetime, ttl: timedelta | None) -> datetime | None:
    return now + ttl if ttl else None


class MemoryGuardStore[T]:
    """Single-process guard; the SQLAlchemy store shares keys between workers."""

    def __init__(self) -> None:
        self._records: dict[str, GuardRecord[T]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str, now: datetime) -> GuardRecord[T] | None:
        record = self._records.get(key)
        if record is not None and record.expired(now):
            del self._records[key]
            return None
        return record

    async def get(self, key: str) -> Result[GuardRecord[T] | None, StoreError]:
        async with self._lock:
            return Ok(self._live(key, datetime.now()))

    async def claim(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        now = datetime.now()
        async with self._lock:
            if self._live(key, now) is not None:
                return Ok(False)
            self._records[key] = GuardRecord(key, Slot.PENDING, None, now, _deadline(now, ttl))
            return Ok(True)

    async def complete(self, key: str, value: T, ttl: timedelta | None) -> Result[None, StoreError]:
        now = datetime.now()
        async with self._lock:
            held = self._records.get(key)
            if held is None:
                return Error(StoreError(f"{key} was not claimed"))
            self._records[key] = GuardRecord(key, Slot.COMPLETED, value, held.created_at, _deadline(now, ttl))
            return Ok(None)

    async def release(self, key: str) -> Result[None, StoreError]:
        async with self._lock:
            self._records.pop(key, None)
            return Ok(None)


__all__ = ("GuardStore", "MemoryGuardStore")
