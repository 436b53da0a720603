"""
Stores — narrow async interfaces to carts, profiles, coupons and orders.

    from orderflow.stores import Stores, create_database

    stores = Stores.memory()                       # tests
    session_factory, _ = await create_database(url)
    stores = Stores.sqlalchemy(session_factory)    # persistent
"""

from orderflow.stores._errors import StoreError, guarded
from orderflow.stores._protocols import (
    CartStore,
    ProfileStore,
    CouponStore,
    OrderStore,
)
from orderflow.stores._memory import (
    format_order_number,
    MemoryCartStore,
    MemoryProfileStore,
    MemoryCouponStore,
    MemoryOrderStore,
)
from orderflow.stores._tables import Base
from orderflow.stores._sqlalchemy import (
    coupon_to_row,
    SQLAlchemyCartStore,
    SQLAlchemyProfileStore,
    SQLAlchemyCouponStore,
    SQLAlchemyOrderStore,
    create_database,
)
from orderflow.stores._bundle import Stores

__all__ = (
    "StoreError",
    "guarded",
    "CartStore",
    "ProfileStore",
    "CouponStore",
    "OrderStore",
    "format_order_number",
    "MemoryCartStore",
    "MemoryProfileStore",
    "MemoryCouponStore",
    "MemoryOrderStore",
    "Base",
    "coupon_to_row",
    "SQLAlchemyCartStore",
    "SQLAlchemyProfileStore",
    "SQLAlchemyCouponStore",
    "SQLAlchemyOrderStore",
    "create_database",
    "Stores",
)
