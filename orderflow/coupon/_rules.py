"""
Coupon rules — applicability and discount arithmetic.

Pure functions over a Coupon, a subtotal and the current time.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from orderflow._types import Money
from orderflow.domain import Coupon, DiscountType, ZERO, money
from orderflow.pricing import clamp_discount
from orderflow.coupon._types import CouponError, CouponErrorKind

HUNDRED = Decimal(100)


def check_window(coupon: Coupon, now: datetime) -> CouponError | None:
    if not coupon.is_active:
        return CouponError(CouponErrorKind.INACTIVE, "Coupon is no longer active", coupon.code)
    if coupon.valid_from is not None and now < coupon.valid_from:
        return CouponError(CouponErrorKind.NOT_YET_VALID, "Coupon is not yet valid", coupon.code)
    if coupon.valid_until is not None and now > coupon.valid_until:
        return CouponError(CouponErrorKind.EXPIRED, "Coupon has expired", coupon.code)
    return None


def check_minimum(coupon: Coupon, subtotal: Money) -> CouponError | None:
    if subtotal < coupon.min_order_amount:
        return CouponError(
            CouponErrorKind.BELOW_MINIMUM,
            f"Minimum order of {coupon.min_order_amount:.3f} KWD required",
            coupon.code,
        )
    return None


def check_applicable(coupon: Coupon, subtotal: Money, now: datetime) -> CouponError | None:
    """First failing applicability rule, or None."""
    if (error := check_window(coupon, now)) is not None:
        return error
    if coupon.uses_exhausted:
        return CouponError(CouponErrorKind.USES_EXHAUSTED, "Coupon usage limit reached", coupon.code)
    return check_minimum(coupon, subtotal)


def compute_discount(coupon: Coupon, subtotal: Money) -> Money:
    """
    percentage → subtotal × value / 100
    fixed      → min(value, subtotal)

    Then capped by max_discount_amount (when set) and clamped to the
    subtotal.
    """
    match coupon.discount_type:
        case DiscountType.PERCENTAGE:
            raw = subtotal * coupon.discount_value / HUNDRED
        case DiscountType.FIXED:
            raw = min(coupon.discount_value, subtotal)

    if coupon.max_discount_amount is not None:
        raw = min(raw, coupon.max_discount_amount)
    return clamp_discount(money(max(raw, ZERO)), subtotal)


__all__ = ("check_window", "check_minimum", "check_applicable", "compute_discount")
