"""
Checkout step machine.

    SHIPPING ──advance──→ DELIVERY ──advance──→ PAYMENT ──confirm(receipt)──→ CONFIRMATION
        ↑                     │ ↑                   │
        └──────retreat────────┘ └─────retreat───────┘

Each step has a validity predicate that must hold to leave it forward.
PAYMENT never advances on its own: only a successful order commit moves
a session to CONFIRMATION, which is terminal.

All methods are pure: they take a context and return a new one.
"""

from __future__ import annotations

from dataclasses import replace

from kungfu import Result, Ok, Error

from orderflow.domain import (
    CartSnapshot,
    DeliveryOption,
    PaymentMethod,
    PaymentSelection,
    ShippingContext,
)
from orderflow.coupon import AppliedCoupon
from orderflow.commit import CommitReceipt
from orderflow.checkout._context import CheckoutContext, Step, StepError, StepErrorKind

type Transition = Result[CheckoutContext, StepError]

_FINISHED = StepError(StepErrorKind.FINISHED, "This order has already been placed")
_ABANDONED = StepError(StepErrorKind.CART_EMPTY, "Your cart is empty")


def _wrong_step(action: str, expected: Step) -> Error[StepError]:
    return Error(StepError(
        StepErrorKind.WRONG_STEP, f"Cannot {action} outside the {expected.value} step",
    ))


class CheckoutMachine:
    def __init__(self, card_payments_enabled: bool = False) -> None:
        self.card_payments_enabled = card_payments_enabled

    # ═══════════════════════════════════════════════════════════════════════════
    # Validity
    # ═══════════════════════════════════════════════════════════════════════════

    def validate(self, ctx: CheckoutContext) -> StepError | None:
        """First reason the current step cannot be left forward, or None."""
        if ctx.is_abandoned:
            return _ABANDONED

        match ctx.step:
            case Step.SHIPPING:
                missing = ctx.shipping.missing_fields()
                if missing:
                    return StepError(
                        StepErrorKind.MISSING_FIELDS,
                        "Please fill in all required fields",
                        missing,
                    )
            case Step.PAYMENT:
                if not self.is_available(ctx.payment.method):
                    return StepError(
                        StepErrorKind.PAYMENT_UNAVAILABLE,
                        "This payment method is not available yet",
                    )
                if not ctx.payment.terms_accepted:
                    return StepError(
                        StepErrorKind.TERMS_NOT_ACCEPTED,
                        "Please accept the terms and conditions",
                    )
        return None

    def closed(self, ctx: CheckoutContext) -> StepError | None:
        """Why no further operation applies: order placed or cart emptied."""
        if ctx.is_finished:
            return _FINISHED
        if ctx.is_abandoned:
            return _ABANDONED
        return None

    def validate_for_commit(self, ctx: CheckoutContext) -> StepError | None:
        """Everything collected is still valid and the session sits on PAYMENT."""
        if (closed := self.closed(ctx)) is not None:
            return closed
        if ctx.step is not Step.PAYMENT:
            return StepError(StepErrorKind.WRONG_STEP, "Complete the payment step first")
        missing = ctx.shipping.missing_fields()
        if missing:
            return StepError(StepErrorKind.MISSING_FIELDS, "Please fill in all required fields", missing)
        return self.validate(ctx)

    def is_available(self, method: PaymentMethod) -> bool:
        return method is not PaymentMethod.CARD or self.card_payments_enabled

    # ═══════════════════════════════════════════════════════════════════════════
    # Navigation
    # ═══════════════════════════════════════════════════════════════════════════

    def advance(self, ctx: CheckoutContext) -> Transition:
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if (error := self.validate(ctx)) is not None:
            return Error(error)
        target = ctx.step.next
        if target is None or target is Step.CONFIRMATION:
            return Error(StepError(
                StepErrorKind.COMMIT_REQUIRED, "Place the order to complete checkout",
            ))
        return Ok(replace(ctx, step=target, furthest=_later(ctx.furthest, target)))

    def retreat(self, ctx: CheckoutContext) -> Transition:
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        previous = ctx.step.previous
        if previous is None:
            return Ok(ctx)
        return Ok(replace(ctx, step=previous))

    def jump_to(self, ctx: CheckoutContext, step: Step) -> Transition:
        """Go back to a step already passed; never forward."""
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if step is Step.CONFIRMATION:
            return Error(StepError(
                StepErrorKind.COMMIT_REQUIRED, "Place the order to complete checkout",
            ))
        if step.index > ctx.step.index:
            return Error(StepError(
                StepErrorKind.NOT_REACHED, f"Complete the {ctx.step.value} step first",
            ))
        return Ok(replace(ctx, step=step))

    # ═══════════════════════════════════════════════════════════════════════════
    # Edits
    # ═══════════════════════════════════════════════════════════════════════════

    def update_shipping(self, ctx: CheckoutContext, **changes: str) -> Transition:
        """
        Edit shipping fields. Allowed only on SHIPPING.

        Example:
            machine.update_shipping(ctx, first_name="Sara", city="Kuwait")
        """
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if ctx.step is not Step.SHIPPING:
            return _wrong_step("edit shipping details", Step.SHIPPING)
        shipping: ShippingContext = replace(ctx.shipping, **changes)
        return Ok(replace(ctx, shipping=shipping))

    def select_delivery(self, ctx: CheckoutContext, option: DeliveryOption) -> Transition:
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if ctx.step is not Step.DELIVERY:
            return _wrong_step("change delivery", Step.DELIVERY)
        return Ok(replace(ctx, delivery=option))

    def select_payment(self, ctx: CheckoutContext, method: PaymentMethod) -> Transition:
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if ctx.step is not Step.PAYMENT:
            return _wrong_step("change payment", Step.PAYMENT)
        if not self.is_available(method):
            return Error(StepError(
                StepErrorKind.PAYMENT_UNAVAILABLE, "This payment method is not available yet",
            ))
        return Ok(replace(ctx, payment=PaymentSelection(method, ctx.payment.terms_accepted)))

    def accept_terms(self, ctx: CheckoutContext, accepted: bool = True) -> Transition:
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if ctx.step is not Step.PAYMENT:
            return _wrong_step("accept terms", Step.PAYMENT)
        return Ok(replace(ctx, payment=PaymentSelection(ctx.payment.method, accepted)))

    def set_coupon(self, ctx: CheckoutContext, coupon: AppliedCoupon | None) -> Transition:
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        return Ok(replace(ctx, coupon=coupon))

    def sync_cart(self, ctx: CheckoutContext, cart: CartSnapshot) -> Transition:
        """
        Replace the held snapshot.

        An emptied cart ends the checkout: the context keeps the empty
        snapshot, drops the coupon and refuses everything afterwards.
        """
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if cart.is_empty:
            return Ok(replace(ctx, cart=cart, coupon=None))
        return Ok(replace(ctx, cart=cart))

    # ═══════════════════════════════════════════════════════════════════════════
    # Completion
    # ═══════════════════════════════════════════════════════════════════════════

    def confirm(self, ctx: CheckoutContext, receipt: CommitReceipt) -> Transition:
        """Enter CONFIRMATION after a successful commit."""
        if (closed := self.closed(ctx)) is not None:
            return Error(closed)
        if ctx.step is not Step.PAYMENT:
            return _wrong_step("place the order", Step.PAYMENT)
        return Ok(replace(
            ctx,
            step=Step.CONFIRMATION,
            furthest=Step.CONFIRMATION,
            order_number=receipt.order_number,
        ))


def _later(a: Step, b: Step) -> Step:
    return a if a.index >= b.index else b


__all__ = ("Transition", "CheckoutMachine")
