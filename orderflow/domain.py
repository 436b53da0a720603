"""
Domain — storefront checkout.

Models the data a checkout session collects and the records an order
commit writes:
- Cart snapshot captured from the cart store (prices already resolved)
- Shipping form, delivery option, payment selection
- Coupons and their usage records
- Orders and point-in-time order item snapshots

Amounts are Decimal with three places (KWD fils).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any

from orderflow._types import Money


# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

FILS = Decimal("0.001")
ZERO = Decimal("0.000")


def money(value: Decimal | int | float | str) -> Money:
    """Quantize to fils. Floats go through str() to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(FILS, rounding=ROUND_HALF_UP)


class Language(Enum):
    EN = "en"
    AR = "ar"


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Domain
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: str
    quantity: int
    unit_price: Money
    product_name_snapshot: str
    variation_id: str | None = None
    variation_name: str | None = None
    product_name_ar: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_price", money(self.unit_price))
        if self.quantity < 1:
            raise ValueError(f"{self.product_id}: quantity must be >= 1, got {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"{self.product_id}: unit price must be >= 0, got {self.unit_price}")

    @property
    def line_total(self) -> Money:
        return money(self.unit_price * self.quantity)


@dataclass(frozen=True, slots=True)
class CartSnapshot:
    """Cart lines as read from the cart store at one moment."""

    user_id: str
    lines: tuple[CartLine, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping Domain
# ═══════════════════════════════════════════════════════════════════════════════

REQUIRED_SHIPPING_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "address_text",
    "city",
)


@dataclass(frozen=True, slots=True)
class ShippingContext:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address_text: str = ""
    city: str = ""
    area: str = ""
    notes: str = ""

    def missing_fields(self) -> tuple[str, ...]:
        return tuple(
            name for name in REQUIRED_SHIPPING_FIELDS if not getattr(self, name).strip()
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def as_address(self) -> dict[str, str]:
        """Address JSON stored on the order (notes travel separately)."""
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address_text,
            "city": self.city,
            "area": self.area,
        }


@dataclass(frozen=True, slots=True)
class SavedAddress:
    """An address book entry from the profile store."""

    name: str
    phone: str
    area: str
    block: str = ""
    street: str = ""
    building: str = ""
    floor: str = ""
    apartment: str = ""
    notes: str = ""
    is_default: bool = False


class DeliveryOption(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    SAMEDAY = "sameday"

    @property
    def cost(self) -> Money:
        return DELIVERY_COSTS[self]


DELIVERY_COSTS: dict[DeliveryOption, Money] = {
    DeliveryOption.STANDARD: money("3.000"),
    DeliveryOption.EXPRESS: money("5.000"),
    DeliveryOption.SAMEDAY: money("8.000"),
}


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Domain
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethod(Enum):
    # values are the codes stored on orders
    CASH_ON_DELIVERY = "cod"
    BANK_TRANSFER = "wamad_transfer"
    CARD = "knet"


@dataclass(frozen=True, slots=True)
class PaymentSelection:
    method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    terms_accepted: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Coupon Domain
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True, slots=True)
class Coupon:
    id: str
    code: str
    discount_type: DiscountType
    discount_value: Money
    min_order_amount: Money = ZERO
    max_discount_amount: Money | None = None
    max_uses: int | None = None
    current_uses: int = 0
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool = True
    description: str | None = None

    @property
    def uses_exhausted(self) -> bool:
        return self.max_uses is not None and self.current_uses >= self.max_uses


@dataclass(frozen=True, slots=True)
class CouponUsage:
    coupon_id: str
    user_id: str
    order_id: str
    discount_applied: Money
    used_at: datetime = field(default_factory=datetime.now)


# ═══════════════════════════════════════════════════════════════════════════════
# Order Domain
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus:
    """Status constants; transitions after creation belong to order management."""

    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class OrderTotal:
    subtotal: Money
    delivery_cost: Money
    discount: Money
    total: Money


@dataclass(frozen=True, slots=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Money
    total_price: Money
    variation_id: str | None = None
    variation_name: str | None = None
    product_name_ar: str | None = None

    @classmethod
    def from_line(cls, line: CartLine) -> OrderItem:
        return cls(
            product_id=line.product_id,
            product_name=line.product_name_snapshot,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.line_total,
            variation_id=line.variation_id,
            variation_name=line.variation_name,
            product_name_ar=line.product_name_ar,
        )


@dataclass(frozen=True, slots=True)
class NewOrder:
    """Fields for an order insert; the store assigns id and order number."""

    user_id: str
    subtotal: Money
    shipping_cost: Money
    discount_amount: Money
    total_amount: Money
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any]
    shipping_method: str
    payment_method: str
    notes: str | None = None
    status: str = OrderStatus.PENDING
    payment_status: str = OrderStatus.PENDING


@dataclass(frozen=True, slots=True)
class OrderRef:
    id: str
    order_number: str


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    order_number: str
    user_id: str
    subtotal: Money
    shipping_cost: Money
    discount_amount: Money
    total_amount: Money
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any]
    shipping_method: str
    payment_method: str
    status: str
    payment_status: str
    notes: str | None
    created_at: datetime
    items: tuple[OrderItem, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutError(Exception):
    """Raised inside graph nodes; converted to Result at the runner boundary."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


__all__ = (
    "FILS",
    "ZERO",
    "money",
    "Language",
    "CartLine",
    "CartSnapshot",
    "REQUIRED_SHIPPING_FIELDS",
    "ShippingContext",
    "SavedAddress",
    "DeliveryOption",
    "DELIVERY_COSTS",
    "PaymentMethod",
    "PaymentSelection",
    "DiscountType",
    "Coupon",
    "CouponUsage",
    "OrderStatus",
    "OrderTotal",
    "OrderItem",
    "NewOrder",
    "OrderRef",
    "Order",
    "CheckoutError",
)
