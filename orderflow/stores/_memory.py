"""
In-memory stores — single process, for tests and local runs.
"""

from __future__ import annotations

import asyncio
import itertools
import uuid
from dataclasses import replace
from datetime import datetime

from kungfu import Result, Ok, Error

from orderflow.domain import (
    CartLine,
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


def format_order_number(prefix: str, created_at: datetime, sequence: int) -> str:
    return f"{prefix}-{created_at:%Y%m%d}-{sequence:05d}"


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryCartStore:
    def __init__(self) -> None:
        self._lines: dict[str, list[CartLine]] = {}

    def put(self, user_id: str, *lines: CartLine) -> None:
        """Replace a user's cart."""
        self._lines[user_id] = list(lines)

    async def get_lines(self, user_id: str) -> Result[CartSnapshot, StoreError]:
        return Ok(CartSnapshot(user_id, tuple(self._lines.get(user_id, ()))))

    async def clear(self, user_id: str) -> Result[None, StoreError]:
        self._lines.pop(user_id, None)
        return Ok(None)


# ═══════════════════════════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryProfileStore:
    def __init__(self) -> None:
        self._addresses: dict[str, list[SavedAddress]] = {}

    def add_address(self, user_id: str, address: SavedAddress) -> None:
        self._addresses.setdefault(user_id, []).append(address)

    async def get_default_address(
        self, user_id: str
    ) -> Result[SavedAddress | None, StoreError]:
        addresses = self._addresses.get(user_id, [])
        default = next((a for a in addresses if a.is_default), None)
        if default is None and addresses:
            default = addresses[0]
        return Ok(default)


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryCouponStore:
    """Coupons keyed by upper-cased code; usage changes happen under a lock."""

    def __init__(self, *coupons: Coupon) -> None:
        self._coupons: dict[str, Coupon] = {}
        self._lock = asyncio.Lock()
        for coupon in coupons:
            self.add(coupon)

    def add(self, coupon: Coupon) -> None:
        self._coupons[coupon.code.upper()] = coupon

    def get(self, code: str) -> Coupon | None:
        return self._coupons.get(code.upper())

    async def find_by_code(self, code: str) -> Result[Coupon | None, StoreError]:
        return Ok(self._coupons.get(code.upper()))

    async def increment_usage(self, coupon_id: str) -> Result[bool, StoreError]:
        async with self._lock:
            coupon = self._by_id(coupon_id)
            if coupon is None or coupon.uses_exhausted:
                return Ok(False)
            self.add(replace(coupon, current_uses=coupon.current_uses + 1))
            return Ok(True)

    async def release_usage(self, coupon_id: str) -> Result[None, StoreError]:
        async with self._lock:
            coupon = self._by_id(coupon_id)
            if coupon is not None and coupon.current_uses > 0:
                self.add(replace(coupon, current_uses=coupon.current_uses - 1))
            return Ok(None)

    def _by_id(self, coupon_id: str) -> Coupon | None:
        return next((c for c in self._coupons.values() if c.id == coupon_id), None)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryOrderStore:
    def __init__(self, order_number_prefix: str = "ORD") -> None:
        self.orders: dict[str, Order] = {}
        self.items: dict[str, tuple[OrderItem, ...]] = {}
        self.usages: dict[str, CouponUsage] = {}
        self._prefix = order_number_prefix
        self._sequence = itertools.count(1)

    async def create_order(self, order: NewOrder) -> Result[OrderRef, StoreError]:
        now = datetime.now()
        ref = OrderRef(
            id=str(uuid.uuid4()),
            order_number=format_order_number(self._prefix, now, next(self._sequence)),
        )
        self.orders[ref.id] = Order(
            id=ref.id,
            order_number=ref.order_number,
            user_id=order.user_id,
            subtotal=order.subtotal,
            shipping_cost=order.shipping_cost,
            discount_amount=order.discount_amount,
            total_amount=order.total_amount,
            shipping_address=dict(order.shipping_address),
            billing_address=dict(order.billing_address),
            shipping_method=order.shipping_method,
            payment_method=order.payment_method,
            status=order.status,
            payment_status=order.payment_status,
            notes=order.notes,
            created_at=now,
        )
        return Ok(ref)

    async def create_order_items(
        self, order_id: str, items: tuple[OrderItem, ...]
    ) -> Result[None, StoreError]:
        if order_id not in self.orders:
            return Error(StoreError(f"Order not found: {order_id}"))
        self.items[order_id] = self.items.get(order_id, ()) + tuple(items)
        return Ok(None)

    async def create_coupon_usage(self, usage: CouponUsage) -> Result[None, StoreError]:
        if usage.order_id not in self.orders:
            return Error(StoreError(f"Order not found: {usage.order_id}"))
        self.usages[usage.order_id] = usage
        return Ok(None)

    async def delete_coupon_usage(self, order_id: str) -> Result[bool, StoreError]:
        return Ok(self.usages.pop(order_id, None) is not None)

    async def delete_order(self, order_id: str) -> Result[bool, StoreError]:
        self.items.pop(order_id, None)
        self.usages.pop(order_id, None)
        return Ok(self.orders.pop(order_id, None) is not None)

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        order = self.orders.get(order_id)
        if order is None:
            return Ok(None)
        return Ok(replace(order, items=self.items.get(order_id, ())))


__all__ = (
    "format_order_number",
    "MemoryCartStore",
    "MemoryProfileStore",
    "MemoryCouponStore",
    "MemoryOrderStore",
)
