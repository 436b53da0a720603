"""Pricing arithmetic, coupon rules and the coupon engine."""

from datetime import timedelta

import pytest
from orderflow import pricing
from orderflow.domain import CartSnapshot, DeliveryOption, DiscountType, money
from orderflow.coupon import (
    CouponEngine,
    CouponErrorKind,
    check_applicable,
    compute_discount,
    normalize_code,
)
from orderflow.stores import MemoryCouponStore

from factories import NOW, USER, BrokenCouponStore, err, line, make_coupon, ok


def test_subtotal_sums_line_totals():
    cart = CartSnapshot(USER, (line(quantity=2), line("musk", 1, "5.500")))
    assert pricing.subtotal(cart) == money("25.500")


def test_empty_cart_subtotal_is_zero():
    assert pricing.subtotal(CartSnapshot(USER)) == money("0")


def test_order_total_adds_delivery_and_subtracts_discount():
    totals = pricing.order_total(money("25.500"), DeliveryOption.EXPRESS, money("2.550"))
    assert totals.delivery_cost == money("5.000")
    assert totals.total == money("27.950")


def test_discount_never_exceeds_subtotal():
    totals = pricing.order_total(money("10.000"), DeliveryOption.STANDARD, money("50.000"))
    assert totals.discount == money("10.000")
    assert totals.total == DeliveryOption.STANDARD.cost


def test_cart_line_rejects_zero_quantity():
    with pytest.raises(ValueError):
        line(quantity=0)


# ═══════════════════════════════════════════════════════════════════════════════
# Discount arithmetic
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("discount_type", "value", "cap", "subtotal", "expected"),
    [
        (DiscountType.PERCENTAGE, "10", None, "25.500", "2.550"),
        (DiscountType.PERCENTAGE, "50", "5.000", "25.500", "5.000"),
        (DiscountType.PERCENTAGE, "15", None, "10.005", "1.501"),
        (DiscountType.FIXED, "3.000", None, "25.500", "3.000"),
        (DiscountType.FIXED, "30.000", None, "25.500", "25.500"),
    ],
)
def test_compute_discount(discount_type, value, cap, subtotal, expected):
    coupon = make_coupon(
        discount_type=discount_type,
        value=value,
        max_discount_amount=money(cap) if cap else None,
    )
    assert compute_discount(coupon, money(subtotal)) == money(expected)


# ═══════════════════════════════════════════════════════════════════════════════
# Applicability
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("overrides", "kind"),
    [
        ({"is_active": False}, CouponErrorKind.INACTIVE),
        ({"valid_from": NOW + timedelta(days=1)}, CouponErrorKind.NOT_YET_VALID),
        ({"valid_until": NOW - timedelta(seconds=1)}, CouponErrorKind.EXPIRED),
        ({"max_uses": 5, "current_uses": 5}, CouponErrorKind.USES_EXHAUSTED),
        ({"min_order_amount": money("30.000")}, CouponErrorKind.BELOW_MINIMUM),
    ],
)
def test_check_applicable_rejections(overrides, kind):
    error = check_applicable(make_coupon(**overrides), money("25.500"), NOW)
    assert error is not None
    assert error.kind is kind


def test_minimum_message_names_the_amount():
    error = check_applicable(make_coupon(min_order_amount=money("30")), money("25.500"), NOW)
    assert error is not None
    assert error.message == "Minimum order of 30.000 KWD required"


def test_coupon_inside_its_window_applies():
    coupon = make_coupon(valid_from=NOW - timedelta(days=1), valid_until=NOW + timedelta(days=1))
    assert check_applicable(coupon, money("25.500"), NOW) is None


# ═══════════════════════════════════════════════════════════════════════════════
# Engine
# ═══════════════════════════════════════════════════════════════════════════════


def test_normalize_code():
    assert normalize_code("  save10 ") == "SAVE10"


async def test_validate_normalizes_and_computes_discount():
    store = MemoryCouponStore(make_coupon(max_uses=10))
    engine = CouponEngine(store, clock=lambda: NOW)

    applied = ok(await engine.validate(" save10 ", money("25.500")))

    assert applied.code == "SAVE10"
    assert applied.discount == money("2.550")
    assert store.get("SAVE10").current_uses == 0


async def test_validate_empty_code():
    engine = CouponEngine(MemoryCouponStore(), clock=lambda: NOW)
    assert err(await engine.validate("   ", money("10"))).kind is CouponErrorKind.EMPTY_CODE


async def test_validate_unknown_code():
    engine = CouponEngine(MemoryCouponStore(), clock=lambda: NOW)
    assert err(await engine.validate("NOPE", money("10"))).kind is CouponErrorKind.NOT_FOUND


async def test_validate_store_failure_is_a_lookup_error():
    engine = CouponEngine(BrokenCouponStore(), clock=lambda: NOW)
    assert err(await engine.validate("SAVE10", money("10"))).kind is CouponErrorKind.LOOKUP_FAILED


async def test_recalculate_tracks_subtotal():
    engine = CouponEngine(MemoryCouponStore(make_coupon()), clock=lambda: NOW)
    applied = ok(await engine.validate("SAVE10", money("25.500")))

    assert ok(engine.recalculate(applied, money("40.000"))).discount == money("4.000")


async def test_recalculate_rejects_below_minimum():
    coupon = make_coupon(min_order_amount=money("20.000"))
    engine = CouponEngine(MemoryCouponStore(coupon), clock=lambda: NOW)
    applied = ok(await engine.validate("SAVE10", money("25.500")))

    assert err(engine.recalculate(applied, money("15.000"))).kind is CouponErrorKind.BELOW_MINIMUM
