"""
SQLAlchemy guard store — guard records in a table shared by all workers.

    store = SQLAlchemyGuardStore(
        session_factory,
        encode=lambda receipt: json.dumps(receipt.to_dict()),
        decode=lambda raw: CommitReceipt.from_dict(json.loads(raw)),
    )
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import delete, String, DateTime, Text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from kungfu import Result, Ok, Error

from orderflow.idempotency._types import GuardRecord, Slot
from orderflow.stores._errors import StoreError
from orderflow.stores._tables import Base


class GuardTable(Base):
    """One row per guarded key; the primary key makes claims atomic."""

    __tablename__ = "checkout_guards"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    slot: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


def _deadline(now: datetime, ttl: timedelta | None) -> datetime | None:
    return now + ttl if ttl else None


class SQLAlchemyGuardStore[T]:
    """
    A concurrent insert for a live key fails with IntegrityError, which
    claim() reports as Ok(False). Expired rows are replaced in place.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        encode: Callable[[T], str],
        decode: Callable[[str], T],
    ) -> None:
        self._session_factory = session_factory
        self._encode = encode
        self._decode = decode

    async def get(self, key: str) -> Result[GuardRecord[T] | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(GuardTable, key)
        except Exception as e:
            return Error(StoreError(f"guard read failed: {e}", e))
        if row is None:
            return Ok(None)
        record = self._to_record(row)
        return Ok(None if record.expired(datetime.now()) else record)

    async def claim(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        now = datetime.now()
        try:
            async with self._session_factory() as session:
                held = await session.get(GuardTable, key)
                if held is not None:
                    if held.expires_at is None or now <= held.expires_at:
                        return Ok(False)
                    await session.delete(held)
                    await session.flush()
                session.add(GuardTable(
                    key=key,
                    slot=Slot.PENDING.value,
                    created_at=now,
                    expires_at=_deadline(now, ttl),
                ))
                await session.commit()
                return Ok(True)
        except IntegrityError:
            return Ok(False)
        except Exception as e:
            return Error(StoreError(f"guard claim failed: {e}", e))

    async def complete(self, key: str, value: T, ttl: timedelta | None) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(GuardTable, key)
                if row is None:
                    return Error(StoreError(f"{key} was not claimed"))
                row.slot = Slot.COMPLETED.value
                row.value = self._encode(value)
                row.expires_at = _deadline(datetime.now(), ttl)
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"guard completion failed: {e}", e))

    async def release(self, key: str) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(GuardTable).where(GuardTable.key == key))
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"guard release failed: {e}", e))

    def _to_record(self, row: GuardTable) -> GuardRecord[T]:
        slot = Slot(row.slot)
        value = self._decode(row.value) if slot is Slot.COMPLETED and row.value is not None else None
        return GuardRecord(row.key, slot, value, row.created_at, row.expires_at)


__all__ = ("GuardTable", "SQLAlchemyGuardStore")
