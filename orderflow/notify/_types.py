"""
Notification types — the confirmation payload and dispatcher protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from orderflow._types import Money
from orderflow.domain import CartSnapshot, Language, OrderRef, OrderTotal, ShippingContext


@dataclass(frozen=True, slots=True)
class ConfirmationItem:
    name: str
    quantity: int
    price: Money  # line total


@dataclass(frozen=True, slots=True)
class ShippingLine:
    address: str
    city: str
    area: str = ""


@dataclass(frozen=True, slots=True)
class OrderConfirmation:
    """Everything a confirmation message needs; built after the commit."""

    order_id: str
    order_number: str
    customer_email: str
    customer_name: str
    language: Language
    subtotal: Money
    delivery_cost: Money
    discount: Money
    total_amount: Money
    items: tuple[ConfirmationItem, ...]
    shipping_address: ShippingLine

    @classmethod
    def build(
        cls,
        ref: OrderRef,
        shipping: ShippingContext,
        language: Language,
        cart: CartSnapshot,
        totals: OrderTotal,
    ) -> OrderConfirmation:
        """Item names follow the customer's language when a translation exists."""
        items = tuple(
            ConfirmationItem(
                name=(
                    line.product_name_ar
                    if language is Language.AR and line.product_name_ar
                    else line.product_name_snapshot
                ),
                quantity=line.quantity,
                price=line.line_total,
            )
            for line in cart.lines
        )
        return cls(
            order_id=ref.id,
            order_number=ref.order_number,
            customer_email=shipping.email,
            customer_name=shipping.full_name,
            language=language,
            subtotal=totals.subtotal,
            delivery_cost=totals.delivery_cost,
            discount=totals.discount,
            total_amount=totals.total,
            items=items,
            shipping_address=ShippingLine(shipping.address_text, shipping.city, shipping.area),
        )


class NotificationDispatcher(Protocol):
    async def send_order_confirmation(self, confirmation: OrderConfirmation) -> None:
        """Deliver the message. Raising signals failure."""
        ...


__all__ = (
    "ConfirmationItem",
    "ShippingLine",
    "OrderConfirmation",
    "NotificationDispatcher",
)
