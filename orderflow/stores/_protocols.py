"""
Store protocols — the narrow interfaces the checkout core consumes.

All methods are async and return Result[T, StoreError].
"""

from __future__ import annotations

from typing import Protocol

from kungfu import Result

from orderflow.domain import (
    CartSnapshot,
    Coupon,
    CouponUsage,
    NewOrder,
    Order,
    OrderItem,
    OrderRef,
    SavedAddress,
)
from orderflow.stores._errors import StoreError


class CartStore(Protocol):
    async def get_lines(self, user_id: str) -> Result[CartSnapshot, StoreError]: ...

    async def clear(self, user_id: str) -> Result[None, StoreError]: ...


class ProfileStore(Protocol):
    async def get_default_address(
        self, user_id: str
    ) -> Result[SavedAddress | None, StoreError]:
        """Default address, else the first saved one, else None."""
        ...


class CouponStore(Protocol):
    async def find_by_code(self, code: str) -> Result[Coupon | None, StoreError]: ...

    async def increment_usage(self, coupon_id: str) -> Result[bool, StoreError]:
        """
        Atomic conditional increment.

        Ok(False) when the coupon is exhausted (or gone); the counter is
        never pushed past max_uses.
        """
        ...

    async def release_usage(self, coupon_id: str) -> Result[None, StoreError]: ...


class OrderStore(Protocol):
    async def create_order(self, order: NewOrder) -> Result[OrderRef, StoreError]:
        """Insert an order; the store assigns id and a unique order number."""
        ...

    async def create_order_items(
        self, order_id: str, items: tuple[OrderItem, ...]
    ) -> Result[None, StoreError]: ...

    async def create_coupon_usage(self, usage: CouponUsage) -> Result[None, StoreError]: ...

    async def delete_coupon_usage(self, order_id: str) -> Result[bool, StoreError]: ...

    async def delete_order(self, order_id: str) -> Result[bool, StoreError]:
        """Delete an order together with its items."""
        ...

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]: ...


__all__ = ("CartStore", "ProfileStore", "CouponStore", "OrderStore")
