"""
Background notification — fire-and-forget with its own retry policy.

The commit never awaits delivery: dispatch() schedules a task and
returns. Failures are retried, logged and finally dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from kungfu import Ok, Error
from combinators import lift as L

from orderflow.config import Settings, get_settings
from orderflow.notify._types import NotificationDispatcher, OrderConfirmation
from orderflow.notify._render import render_confirmation

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Delivery Policy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DeliveryPolicy:
    attempts: int = 3
    delay: timedelta = timedelta(seconds=2)
    timeout: timedelta = timedelta(seconds=15)

    @classmethod
    def from_settings(cls, settings: Settings) -> DeliveryPolicy:
        return cls(
            attempts=settings.notification_retry_times,
            delay=timedelta(seconds=settings.notification_retry_delay_seconds),
            timeout=timedelta(seconds=settings.notification_timeout_seconds),
        )


@dataclass(frozen=True, slots=True)
class NotificationError:
    order_number: str
    attempt: int
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Background Notifier
# ═══════════════════════════════════════════════════════════════════════════════


class BackgroundNotifier:
    """
    Schedules confirmation delivery on the running loop.

    Task references are held until completion so they are not garbage
    collected mid-flight; drain() waits for all of them (tests, shutdown).
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        policy: DeliveryPolicy | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._policy = policy or DeliveryPolicy.from_settings(get_settings())
        self._tasks: set[asyncio.Task[bool]] = set()

    def dispatch(self, confirmation: OrderConfirmation) -> asyncio.Task[bool]:
        task = asyncio.create_task(
            self._deliver(confirmation),
            name=f"notify:{confirmation.order_number}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks)

    @property
    def policy(self) -> DeliveryPolicy:
        return self._policy

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _deliver(self, confirmation: OrderConfirmation) -> bool:
        attempts = max(self._policy.attempts, 1)
        for attempt in range(1, attempts + 1):
            result = await self._attempt(confirmation, attempt)
            match result:
                case Ok(_):
                    logger.info(
                        "order confirmation %s sent to %s (attempt %d)",
                        confirmation.order_number, confirmation.customer_email, attempt,
                    )
                    return True
                case Error(err):
                    logger.warning(
                        "order confirmation %s attempt %d/%d failed: %s",
                        err.order_number, attempt, attempts, err.message,
                    )
            if attempt < attempts:
                await asyncio.sleep(self._policy.delay.total_seconds())

        logger.error(
            "giving up on order confirmation %s after %d attempts",
            confirmation.order_number, attempts,
        )
        return False

    def _attempt(self, confirmation: OrderConfirmation, attempt: int):
        timeout = self._policy.timeout.total_seconds()
        return L.catching_async(
            lambda: asyncio.wait_for(
                self._dispatcher.send_order_confirmation(confirmation), timeout
            ),
            on_error=lambda e: NotificationError(
                confirmation.order_number, attempt, str(e) or type(e).__name__
            ),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Dispatchers
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class MemoryDispatcher:
    """Keeps sent confirmations in memory."""

    sent: list[OrderConfirmation] = field(default_factory=list)

    async def send_order_confirmation(self, confirmation: OrderConfirmation) -> None:
        self.sent.append(confirmation)


class LogDispatcher:
    """Renders the message and writes it to the log instead of sending it."""

    async def send_order_confirmation(self, confirmation: OrderConfirmation) -> None:
        message = render_confirmation(confirmation)
        logger.info("to=%s subject=%s\n%s", message.to, message.subject, message.body)


__all__ = (
    "DeliveryPolicy",
    "NotificationError",
    "BackgroundNotifier",
    "MemoryDispatcher",
    "LogDispatcher",
)
