"""
Pricing — subtotal and order total arithmetic.

Pure functions; the coupon engine decides *whether* a discount applies,
this module only adds things up.
"""

from __future__ import annotations

from orderflow._types import Money
from orderflow.domain import ZERO, CartSnapshot, DeliveryOption, OrderTotal, money


def subtotal(cart: CartSnapshot) -> Money:
    """Sum of unit_price × quantity over all lines."""
    return money(sum((line.line_total for line in cart.lines), ZERO))


def clamp_discount(discount: Money, subtotal_amount: Money) -> Money:
    """A discount never goes below zero nor above the subtotal."""
    if discount < ZERO:
        return ZERO
    return money(min(discount, subtotal_amount))


def order_total(
    subtotal_amount: Money,
    delivery: DeliveryOption,
    discount: Money = ZERO,
) -> OrderTotal:
    """
    subtotal + delivery − discount.

    Delivery is never discounted, so clamping the discount to the subtotal
    keeps the total at or above the delivery cost.
    """
    applied = clamp_discount(discount, subtotal_amount)
    return OrderTotal(
        subtotal=money(subtotal_amount),
        delivery_cost=delivery.cost,
        discount=applied,
        total=money(subtotal_amount + delivery.cost - applied),
    )


__all__ = ("subtotal", "clamp_discount", "order_total")
