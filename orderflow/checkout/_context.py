"""
Checkout context — everything one session has collected so far.

Immutable; every transition returns a new context. to_dict()/from_dict()
let the embedding application keep it in its own session storage.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum, auto
from typing import Any
from uuid import uuid4

from orderflow import pricing
from orderflow._types import Money
from orderflow.domain import (
    ZERO,
    CartLine,
    CartSnapshot,
    DeliveryOption,
    Language,
    OrderTotal,
    PaymentMethod,
    PaymentSelection,
    ShippingContext,
)
from orderflow.coupon import AppliedCoupon


# ═══════════════════════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════════════════════


class Step(Enum):
    SHIPPING = "shipping"
    DELIVERY = "delivery"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"

    @property
    def index(self) -> int:
        return _ORDER.index(self)

    @property
    def next(self) -> Step | None:
        i = self.index + 1
        return _ORDER[i] if i < len(_ORDER) else None

    @property
    def previous(self) -> Step | None:
        return _ORDER[self.index - 1] if self.index > 0 else None


_ORDER = (Step.SHIPPING, Step.DELIVERY, Step.PAYMENT, Step.CONFIRMATION)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class StepErrorKind(Enum):
    MISSING_FIELDS = auto()
    TERMS_NOT_ACCEPTED = auto()
    PAYMENT_UNAVAILABLE = auto()
    CART_EMPTY = auto()
    CART_UNAVAILABLE = auto()
    WRONG_STEP = auto()  # edit or action not allowed on the current step
    NOT_REACHED = auto()  # jump forward past the current step
    COMMIT_REQUIRED = auto()  # confirmation is entered only by placing the order
    FINISHED = auto()  # order already placed, session is terminal


@dataclass(frozen=True, slots=True)
class StepError:
    """A transition refused; the context is left unchanged."""

    kind: StepErrorKind
    message: str
    fields: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.message


# ═══════════════════════════════════════════════════════════════════════════════
# Context
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutContext:
    session_id: str
    user_id: str
    language: Language = Language.EN
    step: Step = Step.SHIPPING
    # furthest step reached; drives the progress indicator
    furthest: Step = Step.SHIPPING
    shipping: ShippingContext = field(default_factory=ShippingContext)
    delivery: DeliveryOption = DeliveryOption.STANDARD
    payment: PaymentSelection = field(default_factory=PaymentSelection)
    coupon: AppliedCoupon | None = None
    cart: CartSnapshot | None = None
    order_number: str | None = None

    @classmethod
    def start(
        cls,
        user_id: str,
        cart: CartSnapshot,
        shipping: ShippingContext | None = None,
        language: Language = Language.EN,
        session_id: str | None = None,
    ) -> CheckoutContext:
        return cls(
            session_id=session_id or uuid4().hex,
            user_id=user_id,
            language=language,
            cart=cart,
            shipping=shipping or ShippingContext(),
        )

    @property
    def is_finished(self) -> bool:
        return self.step is Step.CONFIRMATION

    @property
    def is_abandoned(self) -> bool:
        """The cart emptied before the order was placed; checkout is over."""
        return not self.is_finished and self.cart is not None and self.cart.is_empty

    @property
    def subtotal(self) -> Money:
        return pricing.subtotal(self.cart) if self.cart is not None else ZERO

    @property
    def totals(self) -> OrderTotal:
        """Display totals: live subtotal, selected delivery, held discount."""
        if self.is_abandoned:
            return OrderTotal(ZERO, ZERO, ZERO, ZERO)
        discount = self.coupon.discount if self.coupon is not None else ZERO
        return pricing.order_total(self.subtotal, self.delivery, discount)

    def completed_steps(self) -> tuple[Step, ...]:
        return tuple(step for step in _ORDER if step.index < self.furthest.index)

    # ─── serialization ───────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "language": self.language.value,
            "step": self.step.value,
            "furthest": self.furthest.value,
            "shipping": asdict(self.shipping),
            "delivery": self.delivery.value,
            "payment": {
                "method": self.payment.method.value,
                "terms_accepted": self.payment.terms_accepted,
            },
            "coupon": self.coupon.to_dict() if self.coupon is not None else None,
            "cart": _cart_to_dict(self.cart) if self.cart is not None else None,
            "order_number": self.order_number,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckoutContext:
        payment = data.get("payment") or {}
        return cls(
            session_id=data["session_id"],
            user_id=data["user_id"],
            language=Language(data.get("language", Language.EN.value)),
            step=Step(data.get("step", Step.SHIPPING.value)),
            furthest=Step(data.get("furthest", data.get("step", Step.SHIPPING.value))),
            shipping=ShippingContext(**data.get("shipping", {})),
            delivery=DeliveryOption(data.get("delivery", DeliveryOption.STANDARD.value)),
            payment=PaymentSelection(
                method=PaymentMethod(payment.get("method", PaymentMethod.CASH_ON_DELIVERY.value)),
                terms_accepted=payment.get("terms_accepted", False),
            ),
            coupon=AppliedCoupon.from_dict(data["coupon"]) if data.get("coupon") else None,
            cart=_cart_from_dict(data["cart"]) if data.get("cart") else None,
            order_number=data.get("order_number"),
        )


def _cart_to_dict(cart: CartSnapshot) -> dict[str, Any]:
    lines = []
    for line in cart.lines:
        entry = asdict(line)
        entry["unit_price"] = str(line.unit_price)
        lines.append(entry)
    return {"user_id": cart.user_id, "lines": lines}


def _cart_from_dict(data: dict[str, Any]) -> CartSnapshot:
    return CartSnapshot(
        user_id=data["user_id"],
        lines=tuple(CartLine(**line) for line in data.get("lines", ())),
    )


__all__ = (
    "Step",
    "StepErrorKind",
    "StepError",
    "CheckoutContext",
)
