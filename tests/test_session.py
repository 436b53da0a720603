"""Checkout session: opening, coupons, cart refresh and placing the order."""

from dataclasses import replace

import pytest
from kungfu import Error

from orderflow.checkout import CheckoutSession, Step, StepError, StepErrorKind
from orderflow.commit import CommitErrorKind
from orderflow.coupon import CouponErrorKind
from orderflow.domain import DeliveryOption, SavedAddress, money
from orderflow.stores import MemoryProfileStore, StoreError

from factories import USER, err, line, make_coupon, ok

EMAIL = "sara@example.com"

ADDRESS = SavedAddress(
    name="Sara Al Sabah",
    phone="+965 5000 0000",
    area="Salmiya",
    block="3",
    street="12",
    building="7",
    is_default=True,
)


@pytest.fixture
def profiles(stores) -> MemoryProfileStore:
    stores.profiles.add_address(USER, ADDRESS)
    return stores.profiles


async def open_session(stores, committer, settings) -> CheckoutSession:
    return ok(await CheckoutSession.open(USER, EMAIL, stores, committer, settings=settings))


async def at_payment(stores, committer, settings) -> CheckoutSession:
    session = await open_session(stores, committer, settings)
    ok(session.advance())
    ok(session.select_delivery(DeliveryOption.EXPRESS))
    ok(session.advance())
    return session


# ═══════════════════════════════════════════════════════════════════════════════
# Opening
# ═══════════════════════════════════════════════════════════════════════════════


async def test_open_prefills_shipping(stores, committer, settings, cart, profiles):
    session = await open_session(stores, committer, settings)

    shipping = session.context.shipping
    assert session.step is Step.SHIPPING
    assert (shipping.first_name, shipping.last_name) == ("Sara", "Al Sabah")
    assert shipping.address_text == "Block 3, Street 12, Building 7"
    assert shipping.email == EMAIL
    assert shipping.missing_fields() == ()
    assert session.summary().subtotal == money("25.500")


async def test_open_without_cart(stores, committer, settings):
    result = await CheckoutSession.open(USER, EMAIL, stores, committer, settings=settings)
    assert err(result).kind is StepErrorKind.CART_EMPTY


class DownProfiles(MemoryProfileStore):
    async def get_default_address(self, user_id: str):
        return Error(StoreError("profile service down"))


async def test_open_survives_profile_outage(stores, committer, settings, cart):
    stores = replace(stores, profiles=DownProfiles())
    session = await open_session(stores, committer, settings)

    assert session.context.shipping.email == EMAIL
    assert session.context.shipping.first_name == ""


async def test_first_advance_requires_fields_without_saved_address(stores, committer, settings, cart):
    session = await open_session(stores, committer, settings)

    error = err(session.advance())

    assert error.kind is StepErrorKind.MISSING_FIELDS
    assert "email" not in error.fields
    assert session.step is Step.SHIPPING


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


async def test_apply_coupon_updates_summary(stores, committer, settings, cart, profiles):
    stores.coupons.add(make_coupon())
    session = await at_payment(stores, committer, settings)

    applied = ok(await session.apply_coupon("save10"))

    assert applied.discount == money("2.550")
    assert session.summary().total == money("27.950")


async def test_rejected_coupon_keeps_the_previous_one(stores, committer, settings, cart, profiles):
    stores.coupons.add(make_coupon())
    session = await open_session(stores, committer, settings)
    ok(await session.apply_coupon("SAVE10"))

    error = err(await session.apply_coupon("BOGUS"))

    assert error.kind is CouponErrorKind.NOT_FOUND
    assert session.context.coupon.code == "SAVE10"


async def test_remove_coupon(stores, committer, settings, cart, profiles):
    stores.coupons.add(make_coupon())
    session = await open_session(stores, committer, settings)
    ok(await session.apply_coupon("SAVE10"))

    ok(session.remove_coupon())

    assert session.context.coupon is None
    assert session.summary().discount == money("0")


async def test_refresh_recalculates_the_discount(stores, committer, settings, cart, profiles):
    stores.coupons.add(make_coupon())
    session = await open_session(stores, committer, settings)
    ok(await session.apply_coupon("SAVE10"))
    cart.put(USER, line(quantity=4))

    refresh = ok(await session.refresh_cart())

    assert refresh.dropped_coupon is None
    assert session.context.coupon.discount == money("4.000")


async def test_refresh_drops_coupon_below_minimum(stores, committer, settings, cart, profiles):
    stores.coupons.add(make_coupon(min_order_amount=money("20")))
    session = await open_session(stores, committer, settings)
    ok(await session.apply_coupon("SAVE10"))
    cart.put(USER, line())

    refresh = ok(await session.refresh_cart())

    assert refresh.dropped_coupon.kind is CouponErrorKind.BELOW_MINIMUM
    assert session.context.coupon is None


async def test_emptied_cart_ends_checkout(stores, committer, settings, cart, profiles):
    stores.coupons.add(make_coupon())
    session = await open_session(stores, committer, settings)
    ok(await session.apply_coupon("SAVE10"))
    cart.put(USER)

    assert err(await session.refresh_cart()).kind is StepErrorKind.CART_EMPTY

    assert session.context.is_abandoned
    assert session.context.coupon is None
    assert session.summary().total == money("0")
    assert err(session.advance()).kind is StepErrorKind.CART_EMPTY
    assert err(session.jump_to(Step.SHIPPING)).kind is StepErrorKind.CART_EMPTY
    assert err(await session.apply_coupon("SAVE10")).kind is StepErrorKind.CART_EMPTY
    assert err(await session.place_order()).kind is StepErrorKind.CART_EMPTY
    assert session.step is Step.SHIPPING


async def test_refilled_cart_does_not_reopen_an_ended_checkout(stores, committer, settings, cart, profiles):
    session = await open_session(stores, committer, settings)
    cart.put(USER)
    err(await session.refresh_cart())
    cart.put(USER, line())

    assert err(await session.refresh_cart()).kind is StepErrorKind.CART_EMPTY
    assert session.context.cart.is_empty


# ═══════════════════════════════════════════════════════════════════════════════
# Placing
# ═══════════════════════════════════════════════════════════════════════════════


async def test_full_checkout(stores, committer, settings, cart, profiles, notifier, dispatcher):
    stores.coupons.add(make_coupon(max_uses=10))
    session = await at_payment(stores, committer, settings)
    ok(await session.apply_coupon("SAVE10"))
    ok(session.accept_terms())

    receipt = ok(await session.place_order())

    assert session.step is Step.CONFIRMATION
    assert session.context.order_number == receipt.order_number
    assert receipt.totals == session.summary()
    assert receipt.totals.total == money("27.950")
    assert stores.coupons.get("SAVE10").current_uses == 1
    await notifier.drain()
    assert dispatcher.sent[0].customer_name == "Sara Al Sabah"


async def test_place_order_before_payment(stores, committer, settings, cart, profiles):
    session = await open_session(stores, committer, settings)

    error = err(await session.place_order())

    assert isinstance(error, StepError)
    assert error.kind is StepErrorKind.WRONG_STEP
    assert stores.orders.orders == {}


async def test_place_order_requires_terms(stores, committer, settings, cart, profiles):
    session = await at_payment(stores, committer, settings)
    assert err(await session.place_order()).kind is StepErrorKind.TERMS_NOT_ACCEPTED


async def test_failed_commit_stays_on_payment(stores, committer, settings, cart, profiles):
    session = await at_payment(stores, committer, settings)
    ok(session.accept_terms())
    stores.orders.failing.add("create_order_items")

    assert err(await session.place_order()).kind is CommitErrorKind.ITEMS_FAILED
    assert session.step is Step.PAYMENT

    stores.orders.failing.clear()
    ok(await session.place_order())
    assert session.step is Step.CONFIRMATION


async def test_coupon_dropped_when_it_fails_at_commit(stores, committer, settings, cart, profiles):
    coupon = make_coupon()
    stores.coupons.add(coupon)
    session = await at_payment(stores, committer, settings)
    ok(await session.apply_coupon("SAVE10"))
    ok(session.accept_terms())
    stores.coupons.add(replace(coupon, is_active=False))

    assert err(await session.place_order()).kind is CommitErrorKind.COUPON_NOT_APPLICABLE
    assert session.context.coupon is None
    assert session.step is Step.PAYMENT


async def test_confirmed_session_is_finished(stores, committer, settings, cart, profiles):
    session = await at_payment(stores, committer, settings)
    ok(session.accept_terms())
    ok(await session.place_order())

    assert err(await session.place_order()).kind is StepErrorKind.FINISHED
    assert err(session.retreat()).kind is StepErrorKind.FINISHED
    assert err(await session.apply_coupon("SAVE10")).kind is StepErrorKind.FINISHED


async def test_resume_from_saved_context(stores, committer, settings, cart, profiles):
    session = await at_payment(stores, committer, settings)

    resumed = CheckoutSession.resume(session.context.to_dict(), stores, committer, settings=settings)

    assert resumed.context == session.context
    ok(resumed.accept_terms())
    ok(await resumed.place_order())
