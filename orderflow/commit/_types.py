"""
Commit types — request, receipt and errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from orderflow.domain import (
    CartSnapshot,
    Coupon,
    DeliveryOption,
    Language,
    OrderTotal,
    PaymentSelection,
    ShippingContext,
    money,
)
from orderflow.coupon import AppliedCoupon


# ═══════════════════════════════════════════════════════════════════════════════
# Request
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CommitRequest:
    """
    A finalized checkout. The cart is not part of it: the committer reads
    the live cart itself so totals are never stale.
    """

    session_id: str
    user_id: str
    shipping: ShippingContext
    delivery: DeliveryOption
    payment: PaymentSelection
    coupon: AppliedCoupon | None = None
    language: Language = Language.EN


@dataclass(frozen=True, slots=True)
class CommitPlan:
    """Live cart, fresh coupon and final totals computed right before writing."""

    cart: CartSnapshot
    coupon: Coupon | None
    totals: OrderTotal


# ═══════════════════════════════════════════════════════════════════════════════
# Receipt
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CommitReceipt:
    order_id: str
    order_number: str
    totals: OrderTotal
    coupon_recorded: bool = True
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "subtotal": str(self.totals.subtotal),
            "delivery_cost": str(self.totals.delivery_cost),
            "discount": str(self.totals.discount),
            "total": str(self.totals.total),
            "coupon_recorded": self.coupon_recorded,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommitReceipt:
        return cls(
            order_id=data["order_id"],
            order_number=data["order_number"],
            totals=OrderTotal(
                subtotal=money(data["subtotal"]),
                delivery_cost=money(data["delivery_cost"]),
                discount=money(data["discount"]),
                total=money(data["total"]),
            ),
            coupon_recorded=data.get("coupon_recorded", True),
            warnings=tuple(data.get("warnings", ())),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class CommitErrorKind(Enum):
    ALREADY_PLACING = auto()  # another commit for this session is in flight
    EMPTY_CART = auto()
    READ_FAILED = auto()  # live cart or coupon could not be read
    COUPON_NOT_APPLICABLE = auto()
    ORDER_FAILED = auto()  # nothing was written
    ITEMS_FAILED = auto()
    CART_CLEAR_FAILED = auto()
    TIMEOUT = auto()
    GUARD_FAILED = auto()  # duplicate-submit guard store unavailable


@dataclass(frozen=True, slots=True)
class CommitError:
    """
    A failed commit.

    rollback_complete is False only when a compensation failed; the order
    that could not be removed is reported in orphaned_order_id.
    """

    kind: CommitErrorKind
    message: str
    step: str = ""
    rollback_complete: bool = True
    orphaned_order_id: str | None = None

    def __str__(self) -> str:
        return self.message


class CompensationFailed(Exception):
    """Raised by a compensator whose undo write failed."""


__all__ = (
    "CommitRequest",
    "CommitPlan",
    "CommitReceipt",
    "CommitErrorKind",
    "CommitError",
    "CompensationFailed",
)
