"""
Stores bundle — the set of collaborators one checkout deployment uses.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.config import Settings, get_settings
from orderflow.stores._protocols import CartStore, ProfileStore, CouponStore, OrderStore
from orderflow.stores._memory import (
    MemoryCartStore,
    MemoryProfileStore,
    MemoryCouponStore,
    MemoryOrderStore,
)
from orderflow.stores._sqlalchemy import (
    SQLAlchemyCartStore,
    SQLAlchemyProfileStore,
    SQLAlchemyCouponStore,
    SQLAlchemyOrderStore,
)


@dataclass(frozen=True, slots=True)
class Stores:
    carts: CartStore
    profiles: ProfileStore
    coupons: CouponStore
    orders: OrderStore

    @classmethod
    def memory(cls, settings: Settings | None = None) -> Stores:
        prefix = (settings or get_settings()).order_number_prefix
        return cls(
            carts=MemoryCartStore(),
            profiles=MemoryProfileStore(),
            coupons=MemoryCouponStore(),
            orders=MemoryOrderStore(prefix),
        )

    @classmethod
    def sqlalchemy(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ) -> Stores:
        prefix = (settings or get_settings()).order_number_prefix
        return cls(
            carts=SQLAlchemyCartStore(session_factory),
            profiles=SQLAlchemyProfileStore(session_factory),
            coupons=SQLAlchemyCouponStore(session_factory),
            orders=SQLAlchemyOrderStore(session_factory, prefix),
        )


__all__ = ("Stores",)
