"""
Coupon types — applied coupon and rejection errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any

from orderflow._types import Money
from orderflow.domain import Coupon, DiscountType, money


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class CouponErrorKind(Enum):
    EMPTY_CODE = auto()
    NOT_FOUND = auto()
    INACTIVE = auto()
    NOT_YET_VALID = auto()
    EXPIRED = auto()
    BELOW_MINIMUM = auto()
    USES_EXHAUSTED = auto()
    LOOKUP_FAILED = auto()  # store unavailable or timed out


@dataclass(frozen=True, slots=True)
class CouponError:
    """Recoverable rejection; checkout continues without the discount."""

    kind: CouponErrorKind
    message: str
    code: str = ""

    def __str__(self) -> str:
        return self.message


# ═══════════════════════════════════════════════════════════════════════════════
# Applied Coupon
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AppliedCoupon:
    """
    A coupon held by a checkout session, with the discount it yields at
    the subtotal it was last computed against.
    """

    coupon: Coupon
    discount: Money
    subtotal: Money

    @property
    def code(self) -> str:
        return self.coupon.code

    def to_dict(self) -> dict[str, Any]:
        c = self.coupon
        return {
            "coupon": {
                "id": c.id,
                "code": c.code,
                "discount_type": c.discount_type.value,
                "discount_value": str(c.discount_value),
                "min_order_amount": str(c.min_order_amount),
                "max_discount_amount": _opt_str(c.max_discount_amount),
                "max_uses": c.max_uses,
                "current_uses": c.current_uses,
                "valid_from": c.valid_from.isoformat() if c.valid_from else None,
                "valid_until": c.valid_until.isoformat() if c.valid_until else None,
                "is_active": c.is_active,
                "description": c.description,
            },
            "discount": str(self.discount),
            "subtotal": str(self.subtotal),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppliedCoupon:
        c = data["coupon"]
        coupon = Coupon(
            id=c["id"],
            code=c["code"],
            discount_type=DiscountType(c["discount_type"]),
            discount_value=money(c["discount_value"]),
            min_order_amount=money(c["min_order_amount"]),
            max_discount_amount=(
                money(c["max_discount_amount"]) if c.get("max_discount_amount") is not None else None
            ),
            max_uses=c.get("max_uses"),
            current_uses=c.get("current_uses", 0),
            valid_from=_opt_datetime(c.get("valid_from")),
            valid_until=_opt_datetime(c.get("valid_until")),
            is_active=c.get("is_active", True),
            description=c.get("description"),
        )
        return cls(coupon, money(data["discount"]), money(data["subtotal"]))


def _opt_str(value: Money | None) -> str | None:
    return str(value) if value is not None else None


def _opt_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


__all__ = ("CouponErrorKind", "CouponError", "AppliedCoupon")
