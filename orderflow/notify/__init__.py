"""
Notify — order confirmation payload, rendering and background delivery.

    from orderflow import notify as N

    notifier = N.BackgroundNotifier(N.LogDispatcher())  # retries from ORDERFLOW_NOTIFICATION_*
    notifier.dispatch(confirmation)   # returns immediately
"""

from orderflow.notify._types import (
    ConfirmationItem,
    ShippingLine,
    OrderConfirmation,
    NotificationDispatcher,
)
from orderflow.notify._render import (
    COPY,
    RenderedMessage,
    format_amount,
    render_confirmation,
)
from orderflow.notify._dispatch import (
    DeliveryPolicy,
    NotificationError,
    BackgroundNotifier,
    MemoryDispatcher,
    LogDispatcher,
)

__all__ = (
    "ConfirmationItem",
    "ShippingLine",
    "OrderConfirmation",
    "NotificationDispatcher",
    "COPY",
    "RenderedMessage",
    "format_amount",
    "render_confirmation",
    "DeliveryPolicy",
    "NotificationError",
    "BackgroundNotifier",
    "MemoryDispatcher",
    "LogDispatcher",
)
