"""
Coupon — discount validation and recalculation.

    from orderflow import coupon as C

    engine = C.CouponEngine(stores.coupons)
    match await engine.validate("save10", subtotal):
        case Ok(applied): ...
        case Error(err): ...
"""

from orderflow.coupon._types import CouponErrorKind, CouponError, AppliedCoupon
from orderflow.coupon._rules import (
    check_window,
    check_minimum,
    check_applicable,
    compute_discount,
)
from orderflow.coupon._engine import normalize_code, CouponEngine

__all__ = (
    "CouponErrorKind",
    "CouponError",
    "AppliedCoupon",
    "check_window",
    "check_minimum",
    "check_applicable",
    "compute_discount",
    "normalize_code",
    "CouponEngine",
)
