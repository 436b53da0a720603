"""
Live totals — the reads a commit makes before writing anything.

    LiveCartNode ─┐
                  ├─→ LiveDiscountNode ─→ FinalTotalsNode
    LiveCouponNode┘

The cart and the coupon are read concurrently. Any node raises
CheckoutError; the committer converts it at the graph boundary.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from kungfu import Ok, Error

from orderflow import graph as G
from orderflow import pricing
from orderflow._types import Money
from orderflow.domain import ZERO, CartSnapshot, CheckoutError, Coupon, OrderTotal
from orderflow.coupon import check_applicable, compute_discount
from orderflow.stores import Stores, StoreError, guarded
from orderflow.commit._types import CommitRequest


@dataclass(frozen=True, slots=True)
class CommitEnv:
    """Collaborators injected into the live totals graph."""

    stores: Stores
    timeout: float | None
    clock: Callable[[], datetime]


def _store_failure(code: str, what: str, err: StoreError) -> CheckoutError:
    if err.timed_out:
        return CheckoutError("TIMEOUT", f"Timed out reading {what}")
    return CheckoutError(code, f"Could not read {what}: {err.message}")


# ═══════════════════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class LiveCartNode:
    def __init__(self, data: CartSnapshot) -> None:
        self.data = data

    @classmethod
    async def __compose__(cls, request: CommitRequest, env: CommitEnv) -> "LiveCartNode":
        match await guarded(lambda: env.stores.carts.get_lines(request.user_id), env.timeout):
            case Error(err):
                raise _store_failure("READ_FAILED", "cart", err)
            case Ok(cart) if cart.is_empty:
                raise CheckoutError("EMPTY_CART", "Your cart is empty")
            case Ok(cart):
                return cls(cart)


@G.node
class LiveCouponNode:
    """The applied coupon as stored now: deactivation and usage count are fresh."""

    def __init__(self, data: Coupon | None) -> None:
        self.data = data

    @classmethod
    async def __compose__(cls, request: CommitRequest, env: CommitEnv) -> "LiveCouponNode":
        if request.coupon is None:
            return cls(None)
        code = request.coupon.code
        match await guarded(lambda: env.stores.coupons.find_by_code(code), env.timeout):
            case Error(err):
                raise _store_failure("READ_FAILED", "coupon", err)
            case Ok(None):
                raise CheckoutError("COUPON_NOT_APPLICABLE", "Invalid coupon code")
            case Ok(coupon):
                return cls(coupon)


# ═══════════════════════════════════════════════════════════════════════════════
# Derived
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class LiveDiscountNode:
    def __init__(self, amount: Money) -> None:
        self.amount = amount

    @classmethod
    async def __compose__(
        cls, cart: LiveCartNode, coupon: LiveCouponNode, env: CommitEnv,
    ) -> "LiveDiscountNode":
        if coupon.data is None:
            return cls(ZERO)
        subtotal = pricing.subtotal(cart.data)
        if (error := check_applicable(coupon.data, subtotal, env.clock())) is not None:
            raise CheckoutError("COUPON_NOT_APPLICABLE", error.message)
        return cls(compute_discount(coupon.data, subtotal))


@G.node
class FinalTotalsNode:
    def __init__(self, cart: CartSnapshot, coupon: Coupon | None, totals: OrderTotal) -> None:
        self.cart = cart
        self.coupon = coupon
        self.totals = totals

    @classmethod
    async def __compose__(
        cls,
        request: CommitRequest,
        cart: LiveCartNode,
        coupon: LiveCouponNode,
        discount: LiveDiscountNode,
    ) -> "FinalTotalsNode":
        totals = pricing.order_total(pricing.subtotal(cart.data), request.delivery, discount.amount)
        return cls(cart.data, coupon.data, totals)


__all__ = (
    "CommitEnv",
    "LiveCartNode",
    "LiveCouponNode",
    "LiveDiscountNode",
    "FinalTotalsNode",
)
