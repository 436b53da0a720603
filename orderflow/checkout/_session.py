"""
Checkout session — one customer's way from cart to placed order.

Holds the current CheckoutContext and routes every action through the
step machine, the coupon engine or the committer. Refused actions leave
the context untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from kungfu import Result, Ok, Error

from orderflow import graph as G
from orderflow.config import Settings, get_settings
from orderflow.domain import DeliveryOption, Language, OrderTotal, PaymentMethod
from orderflow.coupon import AppliedCoupon, CouponEngine, CouponError
from orderflow.commit import (
    CommitError,
    CommitErrorKind,
    CommitReceipt,
    CommitRequest,
    OrderCommitter,
)
from orderflow.stores import Stores, guarded
from orderflow.checkout._context import CheckoutContext, Step, StepError, StepErrorKind
from orderflow.checkout._machine import CheckoutMachine, Transition
from orderflow.checkout._nodes import SessionRequest, SessionStartNode

logger = logging.getLogger(__name__)

_START_ERRORS = {
    "CART_EMPTY": StepErrorKind.CART_EMPTY,
    "CART_UNAVAILABLE": StepErrorKind.CART_UNAVAILABLE,
}


@dataclass(frozen=True, slots=True)
class CartRefresh:
    """Outcome of re-reading the cart; dropped_coupon says why a coupon was removed."""

    context: CheckoutContext
    dropped_coupon: CouponError | None = None


class CheckoutSession:
    """
    Example:
        match await CheckoutSession.open("user-1", "sara@example.com", stores, committer):
            case Ok(session):
                pass
            case Error(e):
                return show_error(e.message)

        session.update_shipping(phone="+965 5000 0000")
        session.advance()                        # → DELIVERY
        session.select_delivery(DeliveryOption.EXPRESS)
        session.advance()                        # → PAYMENT
        await session.apply_coupon("save10")
        session.accept_terms()

        match await session.place_order():
            case Ok(receipt):
                print(receipt.order_number)
            case Error(e):
                print(e.message)
    """

    def __init__(
        self,
        context: CheckoutContext,
        stores: Stores,
        committer: OrderCommitter,
        engine: CouponEngine | None = None,
        machine: CheckoutMachine | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._context = context
        self._stores = stores
        self._committer = committer
        self._engine = engine or CouponEngine(
            stores.coupons, lookup_timeout=self._settings.store_timeout_seconds,
        )
        self._machine = machine or CheckoutMachine(self._settings.card_payments_enabled)

    @classmethod
    async def open(
        cls,
        user_id: str,
        email: str,
        stores: Stores,
        committer: OrderCommitter,
        *,
        language: Language = Language.EN,
        session_id: str | None = None,
        engine: CouponEngine | None = None,
        machine: CheckoutMachine | None = None,
        settings: Settings | None = None,
    ) -> Result[CheckoutSession, StepError]:
        """Read cart and saved address, then start on SHIPPING with the form prefilled."""
        settings = settings or get_settings()
        request = SessionRequest(
            user_id=user_id,
            email=email,
            default_city=settings.default_city,
            timeout=settings.store_timeout_seconds,
        )
        match await G.attempt(SessionStartNode, request, stores):
            case Error(e):
                return Error(StepError(_START_ERRORS.get(e.code, StepErrorKind.CART_UNAVAILABLE), e.message))
            case Ok(start):
                context = CheckoutContext.start(
                    user_id, start.cart, start.shipping, language, session_id,
                )
        logger.info("checkout %s opened for %s", context.session_id, user_id)
        return Ok(cls(context, stores, committer, engine, machine, settings))

    @classmethod
    def resume(
        cls,
        data: dict[str, Any],
        stores: Stores,
        committer: OrderCommitter,
        **kwargs: Any,
    ) -> CheckoutSession:
        """Rebuild a session from CheckoutContext.to_dict() output."""
        return cls(CheckoutContext.from_dict(data), stores, committer, **kwargs)

    @property
    def context(self) -> CheckoutContext:
        return self._context

    @property
    def step(self) -> Step:
        return self._context.step

    def summary(self) -> OrderTotal:
        return self._context.totals

    # ═══════════════════════════════════════════════════════════════════════════
    # Machine delegates
    # ═══════════════════════════════════════════════════════════════════════════

    def _apply(self, transition: Transition) -> Transition:
        match transition:
            case Ok(ctx):
                self._context = ctx
            case Error(e):
                logger.debug("checkout %s: %s refused (%s)", self._context.session_id, e.kind.name, e.message)
        return transition

    def advance(self) -> Transition:
        return self._apply(self._machine.advance(self._context))

    def retreat(self) -> Transition:
        return self._apply(self._machine.retreat(self._context))

    def jump_to(self, step: Step) -> Transition:
        return self._apply(self._machine.jump_to(self._context, step))

    def update_shipping(self, **changes: str) -> Transition:
        return self._apply(self._machine.update_shipping(self._context, **changes))

    def select_delivery(self, option: DeliveryOption) -> Transition:
        return self._apply(self._machine.select_delivery(self._context, option))

    def select_payment(self, method: PaymentMethod) -> Transition:
        return self._apply(self._machine.select_payment(self._context, method))

    def accept_terms(self, accepted: bool = True) -> Transition:
        return self._apply(self._machine.accept_terms(self._context, accepted))

    # ═══════════════════════════════════════════════════════════════════════════
    # Coupons
    # ═══════════════════════════════════════════════════════════════════════════

    async def apply_coupon(self, code: str) -> Result[AppliedCoupon, CouponError | StepError]:
        """Validate against the current subtotal; a rejection keeps the previous coupon."""
        if (closed := self._machine.closed(self._context)) is not None:
            return Error(closed)
        match await self._engine.validate(code, self._context.subtotal):
            case Error(e):
                return Error(e)
            case Ok(applied):
                self._apply(self._machine.set_coupon(self._context, applied))
                logger.info(
                    "checkout %s: coupon %s applied (-%s)",
                    self._context.session_id, applied.code, applied.discount,
                )
                return Ok(applied)

    def remove_coupon(self) -> Transition:
        return self._apply(self._machine.set_coupon(self._context, None))

    async def refresh_cart(self) -> Result[CartRefresh, StepError]:
        """
        Re-read the cart after an external change.

        The held coupon is recalculated for the new subtotal and removed
        when it no longer applies.
        """
        if (closed := self._machine.closed(self._context)) is not None:
            return Error(closed)
        timeout = self._settings.store_timeout_seconds
        user_id = self._context.user_id
        match await guarded(lambda: self._stores.carts.get_lines(user_id), timeout):
            case Error(err):
                return Error(StepError(StepErrorKind.CART_UNAVAILABLE, f"Could not load your cart: {err}"))
            case Ok(cart):
                pass

        match self._apply(self._machine.sync_cart(self._context, cart)):
            case Error(e):
                return Error(e)
        if (closed := self._machine.closed(self._context)) is not None:
            logger.info("checkout %s: cart emptied, leaving checkout", self._context.session_id)
            return Error(closed)

        held = self._context.coupon
        if held is None:
            return Ok(CartRefresh(self._context))
        match self._engine.recalculate(held, self._context.subtotal):
            case Ok(applied):
                self._apply(self._machine.set_coupon(self._context, applied))
                return Ok(CartRefresh(self._context))
            case Error(e):
                self._apply(self._machine.set_coupon(self._context, None))
                return Ok(CartRefresh(self._context, dropped_coupon=e))

    # ═══════════════════════════════════════════════════════════════════════════
    # Placement
    # ═══════════════════════════════════════════════════════════════════════════

    def commit_request(self) -> CommitRequest:
        ctx = self._context
        return CommitRequest(
            session_id=ctx.session_id,
            user_id=ctx.user_id,
            shipping=ctx.shipping,
            delivery=ctx.delivery,
            payment=ctx.payment,
            coupon=ctx.coupon,
            language=ctx.language,
        )

    async def place_order(self) -> Result[CommitReceipt, StepError | CommitError]:
        """
        Commit the order. Success moves the session to CONFIRMATION; any
        failure leaves it on PAYMENT so the customer can retry.
        """
        if (error := self._machine.validate_for_commit(self._context)) is not None:
            return Error(error)

        match await self._committer.commit(self.commit_request()):
            case Ok(receipt):
                self._apply(self._machine.confirm(self._context, receipt))
                return Ok(receipt)
            case Error(e):
                self._after_failed_commit(e)
                return Error(e)

    def _after_failed_commit(self, error: CommitError) -> None:
        match error.kind:
            case CommitErrorKind.COUPON_NOT_APPLICABLE:
                logger.info("checkout %s: coupon dropped at commit: %s", self._context.session_id, error.message)
                self._apply(self._machine.set_coupon(self._context, None))
            case CommitErrorKind.ALREADY_PLACING:
                pass
            case _:
                logger.warning(
                    "checkout %s: order not placed (%s at %s)",
                    self._context.session_id, error.kind.name, error.step or "start",
                )


__all__ = ("CartRefresh", "CheckoutSession")
