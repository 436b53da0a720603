"""SQLAlchemy stores and the persistent commit guard over aiosqlite."""

import re
from dataclasses import replace

import pytest

from orderflow.commit import CommitErrorKind, CommitReceipt, OrderCommitter, receipt_guard_store
from orderflow.config import Settings
from orderflow.domain import (
    CouponUsage,
    DeliveryOption,
    NewOrder,
    OrderItem,
    money,
)
from orderflow.idempotency import Slot
from orderflow.pricing import order_total
from orderflow.stores import Stores, coupon_to_row, create_database
from orderflow.stores._tables import AddressTable, CartItemTable

from factories import NOW, USER, commit_request, err, held, make_coupon, ok


@pytest.fixture
async def database(tmp_path):
    session_factory, engine = await create_database(f"sqlite+aiosqlite:///{tmp_path / 'orderflow.db'}")
    yield session_factory
    await engine.dispose()


@pytest.fixture
def sql_stores(database) -> Stores:
    return Stores.sqlalchemy(database, Settings(order_number_prefix="KW"))


async def seed_cart(database) -> None:
    async with database() as session:
        session.add_all([
            CartItemTable(
                user_id=USER, product_id="oud-oil", quantity=2, unit_price=money("10.000"),
                product_name="Oud Oil", product_name_ar="زيت العود",
            ),
            CartItemTable(
                user_id=USER, product_id="musk", quantity=1, unit_price=money("5.500"),
                product_name="White Musk",
            ),
        ])
        await session.commit()


async def seed_coupon(database, coupon) -> None:
    async with database() as session:
        session.add(coupon_to_row(coupon))
        await session.commit()


def new_order() -> NewOrder:
    address = {"city": "Kuwait", "area": "Salmiya"}
    return NewOrder(
        user_id=USER,
        subtotal=money("25.500"),
        shipping_cost=money("3.000"),
        discount_amount=money("0"),
        total_amount=money("28.500"),
        shipping_address=address,
        billing_address=address,
        shipping_method="standard",
        payment_method="cod",
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Carts and profiles
# ═══════════════════════════════════════════════════════════════════════════════


async def test_cart_read_and_clear(database, sql_stores):
    await seed_cart(database)

    cart = ok(await sql_stores.carts.get_lines(USER))
    assert [(l.product_id, l.quantity, l.unit_price) for l in cart.lines] == [
        ("oud-oil", 2, money("10.000")),
        ("musk", 1, money("5.500")),
    ]
    assert cart.lines[0].product_name_ar == "زيت العود"

    ok(await sql_stores.carts.clear(USER))
    assert ok(await sql_stores.carts.get_lines(USER)).is_empty


async def test_default_address_preferred(database, sql_stores):
    async with database() as session:
        session.add_all([
            AddressTable(user_id=USER, name="Work", phone="1", area="Sharq"),
            AddressTable(user_id=USER, name="Home", phone="2", area="Salmiya", is_default=True),
        ])
        await session.commit()

    address = ok(await sql_stores.profiles.get_default_address(USER))

    assert address.name == "Home"
    assert ok(await sql_stores.profiles.get_default_address("nobody")) is None


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


async def test_coupon_lookup_is_case_insensitive(database, sql_stores):
    await seed_coupon(database, make_coupon(max_discount_amount=money("5")))

    coupon = ok(await sql_stores.coupons.find_by_code("save10"))

    assert coupon.code == "SAVE10"
    assert coupon.max_discount_amount == money("5.000")


async def test_increment_never_passes_max_uses(database, sql_stores):
    coupon = make_coupon(max_uses=2)
    await seed_coupon(database, coupon)

    results = [ok(await sql_stores.coupons.increment_usage(coupon.id)) for _ in range(3)]

    assert results == [True, True, False]
    assert ok(await sql_stores.coupons.find_by_code("SAVE10")).current_uses == 2


async def test_release_never_goes_negative(database, sql_stores):
    coupon = make_coupon(max_uses=2)
    await seed_coupon(database, coupon)

    ok(await sql_stores.coupons.increment_usage(coupon.id))
    ok(await sql_stores.coupons.release_usage(coupon.id))
    ok(await sql_stores.coupons.release_usage(coupon.id))

    assert ok(await sql_stores.coupons.find_by_code("SAVE10")).current_uses == 0


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


async def test_order_numbers_are_sequential(sql_stores):
    first = ok(await sql_stores.orders.create_order(new_order()))
    second = ok(await sql_stores.orders.create_order(new_order()))

    assert re.fullmatch(r"KW-\d{8}-00001", first.order_number)
    assert re.fullmatch(r"KW-\d{8}-00002", second.order_number)


async def test_create_database_defaults_to_configured_url(env_settings, tmp_path):
    path = tmp_path / "configured.db"
    env_settings.setenv("ORDERFLOW_DATABASE_URL", f"sqlite+aiosqlite:///{path}")

    session_factory, engine = await create_database()
    try:
        stores = Stores.sqlalchemy(session_factory, Settings())
        ok(await stores.orders.create_order(new_order()))
    finally:
        await engine.dispose()

    assert engine.url.database == str(path)
    assert path.exists()


async def test_memory_stores_use_configured_prefix(env_settings):
    env_settings.setenv("ORDERFLOW_ORDER_NUMBER_PREFIX", "SHOP")

    ref = ok(await Stores.memory().orders.create_order(new_order()))

    assert re.fullmatch(r"SHOP-\d{8}-00001", ref.order_number)


async def test_order_with_items_and_delete(database, sql_stores):
    coupon = make_coupon()
    await seed_coupon(database, coupon)
    ref = ok(await sql_stores.orders.create_order(new_order()))
    items = (
        OrderItem("oud-oil", "Oud Oil", 2, money("10"), money("20"), product_name_ar="زيت العود"),
        OrderItem("musk", "White Musk", 1, money("5.5"), money("5.5")),
    )
    ok(await sql_stores.orders.create_order_items(ref.id, items))
    ok(await sql_stores.orders.create_coupon_usage(CouponUsage(coupon.id, USER, ref.id, money("1"), NOW)))

    order = ok(await sql_stores.orders.get_order(ref.id))
    assert order.total_amount == money("28.500")
    assert order.shipping_address == {"city": "Kuwait", "area": "Salmiya"}
    assert [i.product_id for i in order.items] == ["oud-oil", "musk"]

    assert ok(await sql_stores.orders.delete_order(ref.id)) is True
    assert ok(await sql_stores.orders.get_order(ref.id)) is None
    assert ok(await sql_stores.orders.delete_coupon_usage(ref.id)) is False


# ═══════════════════════════════════════════════════════════════════════════════
# Commit over SQL
# ═══════════════════════════════════════════════════════════════════════════════


async def test_guard_store_records_receipts(database):
    store = receipt_guard_store(database)

    assert ok(await store.claim("place-order:s", None)) is True
    assert ok(await store.claim("place-order:s", None)) is False
    assert ok(await store.get("place-order:s")).slot is Slot.PENDING

    totals = order_total(money("25.500"), DeliveryOption.STANDARD, money("0"))
    receipt = CommitReceipt("order-1", "KW-20260301-00001", totals)
    ok(await store.complete("place-order:s", receipt, None))
    record = ok(await store.get("place-order:s"))
    assert (record.slot, record.value) == (Slot.COMPLETED, receipt)

    ok(await store.release("place-order:s"))
    assert ok(await store.get("place-order:s")) is None


async def test_commit_end_to_end(database, sql_stores, notifier, settings):
    await seed_cart(database)
    await seed_coupon(database, make_coupon(max_uses=1))
    committer = OrderCommitter(sql_stores, notifier, receipt_guard_store(database), settings, clock=lambda: NOW)
    request = commit_request(coupon=held(make_coupon(), "25.500"))

    receipt = ok(await committer.commit(request))
    replayed = ok(await committer.commit(request))

    assert replayed == receipt
    assert receipt.totals.total == money("25.950")
    order = ok(await sql_stores.orders.get_order(receipt.order_id))
    assert order.discount_amount == money("2.550")
    assert len(order.items) == 2
    assert ok(await sql_stores.coupons.find_by_code("SAVE10")).current_uses == 1
    assert ok(await sql_stores.carts.get_lines(USER)).is_empty

    # a second session finds the coupon used up
    await seed_cart(database)
    second = err(await committer.commit(replace(request, session_id="session-2")))
    assert second.kind is CommitErrorKind.COUPON_NOT_APPLICABLE
