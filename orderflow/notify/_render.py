"""
Confirmation rendering — English and Arabic plain-text bodies.
"""

from __future__ import annotations

from dataclasses import dataclass

from orderflow._types import Money
from orderflow.domain import Language
from orderflow.notify._types import OrderConfirmation

COPY: dict[Language, dict[str, str]] = {
    Language.EN: {
        "subject": "Order Confirmation - {order_number}",
        "title": "Thank You for Your Order!",
        "greeting": "Hello {name},",
        "message": "We have received your order and will start processing it soon.",
        "order_number": "Order Number",
        "items": "Items",
        "qty": "Qty",
        "subtotal": "Subtotal",
        "delivery": "Delivery",
        "discount": "Discount",
        "total": "Order Total",
        "shipping_to": "Shipping To",
        "thank_you": "Thank you for shopping with us!",
        "currency": "KWD",
    },
    Language.AR: {
        "subject": "تأكيد الطلب - {order_number}",
        "title": "شكراً لطلبك!",
        "greeting": "مرحباً {name}،",
        "message": "لقد استلمنا طلبك بنجاح وسنبدأ في معالجته قريباً.",
        "order_number": "رقم الطلب",
        "items": "المنتجات",
        "qty": "الكمية",
        "subtotal": "المجموع الفرعي",
        "delivery": "التوصيل",
        "discount": "الخصم",
        "total": "إجمالي الطلب",
        "shipping_to": "الشحن إلى",
        "thank_you": "شكراً لتسوقك معنا!",
        "currency": "د.ك",
    },
}


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    to: str
    subject: str
    body: str
    direction: str  # "ltr" | "rtl"


def format_amount(amount: Money, language: Language) -> str:
    return f"{amount:.3f} {COPY[language]['currency']}"


def render_confirmation(confirmation: OrderConfirmation) -> RenderedMessage:
    lang = confirmation.language
    copy = COPY[lang]

    lines = [
        copy["title"],
        "",
        copy["greeting"].format(name=confirmation.customer_name),
        copy["message"],
        "",
        f"{copy['order_number']}: {confirmation.order_number}",
        "",
        f"{copy['items']}:",
    ]
    for item in confirmation.items:
        lines.append(f"  {item.name} × {item.quantity} ({copy['qty']})  {format_amount(item.price, lang)}")

    lines += [
        "",
        f"{copy['subtotal']}: {format_amount(confirmation.subtotal, lang)}",
        f"{copy['delivery']}: {format_amount(confirmation.delivery_cost, lang)}",
    ]
    if confirmation.discount > 0:
        lines.append(f"{copy['discount']}: -{format_amount(confirmation.discount, lang)}")
    lines.append(f"{copy['total']}: {format_amount(confirmation.total_amount, lang)}")

    address = confirmation.shipping_address
    city_line = f"{address.city}, {address.area}" if address.area else address.city
    lines += ["", f"{copy['shipping_to']}:", address.address, city_line, "", copy["thank_you"]]

    return RenderedMessage(
        to=confirmation.customer_email,
        subject=copy["subject"].format(order_number=confirmation.order_number),
        body="\n".join(lines),
        direction="rtl" if lang is Language.AR else "ltr",
    )


__all__ = ("COPY", "RenderedMessage", "format_amount", "render_confirmation")
