"""
Coupon engine — validate on apply, recalculate on subtotal change.

Usage counters are never touched here; only a committed order consumes
a coupon.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from kungfu import Result, Ok, Error

from orderflow._types import Money
from orderflow.domain import money
from orderflow.stores import CouponStore, guarded
from orderflow.coupon._types import AppliedCoupon, CouponError, CouponErrorKind
from orderflow.coupon._rules import (
    check_applicable,
    check_minimum,
    check_window,
    compute_discount,
)

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


class CouponEngine:
    def __init__(
        self,
        coupons: CouponStore,
        clock: Callable[[], datetime] = datetime.now,
        lookup_timeout: float | None = None,
    ) -> None:
        self._coupons = coupons
        self._clock = clock
        self._lookup_timeout = lookup_timeout

    async def validate(self, code: str, subtotal: Money) -> Result[AppliedCoupon, CouponError]:
        """Look up a code and check every applicability rule against subtotal."""
        normalized = normalize_code(code)
        if not normalized:
            return Error(CouponError(CouponErrorKind.EMPTY_CODE, "Please enter a coupon code"))

        lookup = await guarded(lambda: self._coupons.find_by_code(normalized), self._lookup_timeout)
        match lookup:
            case Error(err):
                logger.error("coupon lookup for %s failed: %s", normalized, err)
                return Error(CouponError(
                    CouponErrorKind.LOOKUP_FAILED, "Could not check the coupon, try again", normalized,
                ))
            case Ok(None):
                logger.info("coupon %s rejected: not found", normalized)
                return Error(CouponError(CouponErrorKind.NOT_FOUND, "Invalid coupon code", normalized))
            case Ok(coupon):
                subtotal = money(subtotal)
                if (error := check_applicable(coupon, subtotal, self._clock())) is not None:
                    logger.info("coupon %s rejected: %s", normalized, error.kind.name)
                    return Error(error)
                return Ok(AppliedCoupon(coupon, compute_discount(coupon, subtotal), subtotal))

    def recalculate(
        self, applied: AppliedCoupon, new_subtotal: Money
    ) -> Result[AppliedCoupon, CouponError]:
        """
        Recompute the discount for a changed subtotal.

        An Error means the coupon no longer applies and must be removed.
        """
        subtotal = money(new_subtotal)
        coupon = applied.coupon
        error = check_window(coupon, self._clock()) or check_minimum(coupon, subtotal)
        if error is not None:
            logger.info("coupon %s no longer applicable: %s", coupon.code, error.kind.name)
            return Error(error)
        return Ok(AppliedCoupon(coupon, compute_discount(coupon, subtotal), subtotal))


__all__ = ("normalize_code", "CouponEngine")
