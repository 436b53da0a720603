"""
SQLAlchemy stores — async ORM implementations of the store protocols.

Every method opens its own session and commits before returning; errors
are returned as StoreError, never raised.

Usage:
    session_factory, engine = await create_database()  # ORDERFLOW_DATABASE_URL

    carts = SQLAlchemyCartStore(session_factory)
    orders = SQLAlchemyOrderStore(session_factory, order_number_prefix="ORD")
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from kungfu import Result, Ok, Error

from orderflow.config import get_settings
from orderflow.domain import (
    CartLine,
    CartSnapshot,
    Coupon,
    CouponUsage,
    DiscountType,
    NewOrder,
    Order,
    OrderItem,
    OrderRef,
    SavedAddress,
)
from orderflow.stores._errors import StoreError
from orderflow.stores._memory import format_order_number
from orderflow.stores._tables import (
    Base,
    AddressTable,
    CartItemTable,
    CouponTable,
    CouponUsageTable,
    OrderItemTable,
    OrderNumberTable,
    OrderTable,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Row ↔ Domain
# ═══════════════════════════════════════════════════════════════════════════════

def _to_line(row: CartItemTable) -> CartLine:
    return CartLine(
        product_id=row.product_id,
        quantity=row.quantity,
        unit_price=row.unit_price,
        product_name_snapshot=row.product_name,
        variation_id=row.variation_id,
        variation_name=row.variation_name,
        product_name_ar=row.product_name_ar,
    )


def _to_address(row: AddressTable) -> SavedAddress:
    return SavedAddress(
        name=row.name,
        phone=row.phone,
        area=row.area,
        block=row.block,
        street=row.street,
        building=row.building,
        floor=row.floor,
        apartment=row.apartment,
        notes=row.notes,
        is_default=row.is_default,
    )


def coupon_to_row(coupon: Coupon) -> CouponTable:
    return CouponTable(
        id=coupon.id,
        code=coupon.code.upper(),
        discount_type=coupon.discount_type.value,
        discount_value=coupon.discount_value,
        min_order_amount=coupon.min_order_amount,
        max_discount_amount=coupon.max_discount_amount,
        max_uses=coupon.max_uses,
        current_uses=coupon.current_uses,
        valid_from=coupon.valid_from,
        valid_until=coupon.valid_until,
        is_active=coupon.is_active,
        description=coupon.description,
    )


def _to_coupon(row: CouponTable) -> Coupon:
    return Coupon(
        id=row.id,
        code=row.code,
        discount_type=DiscountType(row.discount_type),
        discount_value=row.discount_value,
        min_order_amount=row.min_order_amount,
        max_discount_amount=row.max_discount_amount,
        max_uses=row.max_uses,
        current_uses=row.current_uses,
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        is_active=row.is_active,
        description=row.description,
    )


def _to_item(row: OrderItemTable) -> OrderItem:
    return OrderItem(
        product_id=row.product_id,
        product_name=row.product_name,
        quantity=row.quantity,
        unit_price=row.unit_price,
        total_price=row.total_price,
        variation_id=row.variation_id,
        variation_name=row.variation_name,
        product_name_ar=row.product_name_ar,
    )


def _to_order(row: OrderTable, items: tuple[OrderItem, ...]) -> Order:
    return Order(
        id=row.id,
        order_number=row.order_number,
        user_id=row.user_id,
        subtotal=row.subtotal,
        shipping_cost=row.shipping_cost,
        discount_amount=row.discount_amount,
        total_amount=row.total_amount,
        shipping_address=row.shipping_address,
        billing_address=row.billing_address,
        shipping_method=row.shipping_method,
        payment_method=row.payment_method,
        status=row.status,
        payment_status=row.payment_status,
        notes=row.notes,
        created_at=row.created_at,
        items=items,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Cart / Profile
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyCartStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_lines(self, user_id: str) -> Result[CartSnapshot, StoreError]:
        try:
            async with self._session_factory() as session:
                rows = (
                    await session.execute(
                        select(CartItemTable)
                        .where(CartItemTable.user_id == user_id)
                        .order_by(CartItemTable.id)
                    )
                ).scalars().all()
                return Ok(CartSnapshot(user_id, tuple(_to_line(r) for r in rows)))
        except Exception as e:
            return Error(StoreError(f"Failed to read cart: {e}", e))

    async def clear(self, user_id: str) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(CartItemTable).where(CartItemTable.user_id == user_id)
                )
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to clear cart: {e}", e))


class SQLAlchemyProfileStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_default_address(
        self, user_id: str
    ) -> Result[SavedAddress | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = (
                    await session.execute(
                        select(AddressTable)
                        .where(AddressTable.user_id == user_id)
                        .order_by(AddressTable.is_default.desc(), AddressTable.id)
                        .limit(1)
                    )
                ).scalar_one_or_none()
                return Ok(_to_address(row) if row is not None else None)
        except Exception as e:
            return Error(StoreError(f"Failed to read address: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyCouponStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_code(self, code: str) -> Result[Coupon | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = (
                    await session.execute(
                        select(CouponTable).where(CouponTable.code == code.upper())
                    )
                ).scalar_one_or_none()
                return Ok(_to_coupon(row) if row is not None else None)
        except Exception as e:
            return Error(StoreError(f"Failed to find coupon: {e}", e))

    async def increment_usage(self, coupon_id: str) -> Result[bool, StoreError]:
        """UPDATE … WHERE max_uses IS NULL OR current_uses < max_uses RETURNING."""
        try:
            async with self._session_factory() as session:
                stmt = (
                    update(CouponTable)
                    .where(CouponTable.id == coupon_id)
                    .where(or_(
                        CouponTable.max_uses.is_(None),
                        CouponTable.current_uses < CouponTable.max_uses,
                    ))
                    .values(current_uses=CouponTable.current_uses + 1)
                    .returning(CouponTable.current_uses)
                )
                incremented = (await session.execute(stmt)).scalar_one_or_none()
                await session.commit()
                return Ok(incremented is not None)
        except Exception as e:
            return Error(StoreError(f"Failed to increment coupon usage: {e}", e))

    async def release_usage(self, coupon_id: str) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(CouponTable)
                    .where(CouponTable.id == coupon_id)
                    .where(CouponTable.current_uses > 0)
                    .values(current_uses=CouponTable.current_uses - 1)
                )
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to release coupon usage: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyOrderStore:
    """
    Order store.

    Order numbers come from an autoincrement sequence table issued in the
    same session as the order insert, so they are unique across workers.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        order_number_prefix: str = "ORD",
    ) -> None:
        self._session_factory = session_factory
        self._prefix = order_number_prefix

    async def create_order(self, order: NewOrder) -> Result[OrderRef, StoreError]:
        try:
            async with self._session_factory() as session:
                now = datetime.now()
                seq = OrderNumberTable(issued_at=now)
                session.add(seq)
                await session.flush()

                ref = OrderRef(
                    id=str(uuid.uuid4()),
                    order_number=format_order_number(self._prefix, now, seq.id),
                )
                session.add(OrderTable(
                    id=ref.id,
                    order_number=ref.order_number,
                    user_id=order.user_id,
                    subtotal=order.subtotal,
                    shipping_cost=order.shipping_cost,
                    discount_amount=order.discount_amount,
                    total_amount=order.total_amount,
                    shipping_address=order.shipping_address,
                    billing_address=order.billing_address,
                    shipping_method=order.shipping_method,
                    payment_method=order.payment_method,
                    status=order.status,
                    payment_status=order.payment_status,
                    notes=order.notes,
                    created_at=now,
                ))
                await session.commit()
                return Ok(ref)
        except Exception as e:
            return Error(StoreError(f"Failed to create order: {e}", e))

    async def create_order_items(
        self, order_id: str, items: tuple[OrderItem, ...]
    ) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                session.add_all([
                    OrderItemTable(
                        order_id=order_id,
                        product_id=item.product_id,
                        variation_id=item.variation_id,
                        product_name=item.product_name,
                        product_name_ar=item.product_name_ar,
                        variation_name=item.variation_name,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        total_price=item.total_price,
                    )
                    for item in items
                ])
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to create order items: {e}", e))

    async def create_coupon_usage(self, usage: CouponUsage) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                session.add(CouponUsageTable(
                    coupon_id=usage.coupon_id,
                    user_id=usage.user_id,
                    order_id=usage.order_id,
                    discount_applied=usage.discount_applied,
                    used_at=usage.used_at,
                ))
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to record coupon usage: {e}", e))

    async def delete_coupon_usage(self, order_id: str) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(CouponUsageTable).where(CouponUsageTable.order_id == order_id)
                )
                await session.commit()
                return Ok(result.rowcount > 0)
        except Exception as e:
            return Error(StoreError(f"Failed to delete coupon usage: {e}", e))

    async def delete_order(self, order_id: str) -> Result[bool, StoreError]:
        # Children first; SQLite does not enforce cascades unless asked to.
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(CouponUsageTable).where(CouponUsageTable.order_id == order_id)
                )
                await session.execute(
                    delete(OrderItemTable).where(OrderItemTable.order_id == order_id)
                )
                result = await session.execute(
                    delete(OrderTable).where(OrderTable.id == order_id)
                )
                await session.commit()
                return Ok(result.rowcount > 0)
        except Exception as e:
            return Error(StoreError(f"Failed to delete order: {e}", e))

    async def get_order(self, order_id: str) -> Result[Order | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(OrderTable, order_id)
                if row is None:
                    return Ok(None)
                items = (
                    await session.execute(
                        select(OrderItemTable)
                        .where(OrderItemTable.order_id == order_id)
                        .order_by(OrderItemTable.id)
                    )
                ).scalars().all()
                return Ok(_to_order(row, tuple(_to_item(i) for i in items)))
        except Exception as e:
            return Error(StoreError(f"Failed to get order: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════

async def create_database(
    url: str | None = None,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create database and return (session_factory, engine). Defaults to settings.database_url."""
    engine = create_async_engine(url or get_settings().database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "coupon_to_row",
    "SQLAlchemyCartStore",
    "SQLAlchemyProfileStore",
    "SQLAlchemyCouponStore",
    "SQLAlchemyOrderStore",
    "create_database",
)
