"""Checkout step machine, context serialization and address prefill."""

from dataclasses import replace

import pytest

from orderflow.checkout import (
    CheckoutContext,
    CheckoutMachine,
    Step,
    StepErrorKind,
    format_address,
    prefill_shipping,
    split_name,
)
from orderflow.commit import CommitReceipt
from orderflow.domain import (
    CartSnapshot,
    DeliveryOption,
    Language,
    PaymentMethod,
    SavedAddress,
    ShippingContext,
    money,
)
from orderflow.pricing import order_total

from factories import USER, err, filled_shipping, held, line, make_coupon, ok


@pytest.fixture
def machine() -> CheckoutMachine:
    return CheckoutMachine()


@pytest.fixture
def ctx() -> CheckoutContext:
    return CheckoutContext.start(USER, CartSnapshot(USER, (line(quantity=2),)), session_id="s-1")


def at_payment(machine: CheckoutMachine, ctx: CheckoutContext) -> CheckoutContext:
    ctx = replace(ctx, shipping=filled_shipping())
    ctx = ok(machine.advance(ctx))
    return ok(machine.advance(ctx))


def test_starts_on_shipping(ctx: CheckoutContext):
    assert ctx.step is Step.SHIPPING
    assert ctx.delivery is DeliveryOption.STANDARD
    assert ctx.payment.method is PaymentMethod.CASH_ON_DELIVERY


def test_shipping_requires_fields(machine, ctx):
    error = err(machine.advance(replace(ctx, shipping=ShippingContext(first_name="Sara"))))

    assert error.kind is StepErrorKind.MISSING_FIELDS
    assert error.fields == ("last_name", "email", "phone", "address_text", "city")


def test_whitespace_does_not_count_as_filled(machine, ctx):
    error = err(machine.advance(replace(ctx, shipping=filled_shipping(phone="   "))))
    assert error.fields == ("phone",)


def test_happy_path_to_payment(machine, ctx):
    ctx = at_payment(machine, ctx)
    assert ctx.step is Step.PAYMENT
    assert ctx.completed_steps() == (Step.SHIPPING, Step.DELIVERY)


def test_payment_does_not_advance_without_commit(machine, ctx):
    ctx = ok(machine.accept_terms(at_payment(machine, ctx)))
    assert err(machine.advance(ctx)).kind is StepErrorKind.COMMIT_REQUIRED


def test_payment_requires_terms(machine, ctx):
    ctx = at_payment(machine, ctx)
    assert err(machine.advance(ctx)).kind is StepErrorKind.TERMS_NOT_ACCEPTED
    assert machine.validate_for_commit(ctx).kind is StepErrorKind.TERMS_NOT_ACCEPTED


def test_card_is_unavailable_by_default(machine, ctx):
    ctx = at_payment(machine, ctx)
    assert err(machine.select_payment(ctx, PaymentMethod.CARD)).kind is StepErrorKind.PAYMENT_UNAVAILABLE


def test_card_when_enabled(ctx):
    machine = CheckoutMachine(card_payments_enabled=True)
    ctx = ok(machine.select_payment(at_payment(machine, ctx), PaymentMethod.CARD))
    assert ctx.payment.method is PaymentMethod.CARD


def test_selecting_payment_keeps_terms(machine, ctx):
    ctx = ok(machine.accept_terms(at_payment(machine, ctx)))
    ctx = ok(machine.select_payment(ctx, PaymentMethod.BANK_TRANSFER))
    assert ctx.payment.terms_accepted


def test_retreat_keeps_collected_data(machine, ctx):
    ctx = at_payment(machine, ctx)
    ctx = ok(machine.retreat(ctx))
    ctx = ok(machine.retreat(ctx))

    assert ctx.step is Step.SHIPPING
    assert ctx.shipping == filled_shipping()
    assert ctx.furthest is Step.PAYMENT


def test_retreat_from_first_step_is_a_no_op(machine, ctx):
    assert ok(machine.retreat(ctx)) == ctx


def test_jump_back_only(machine, ctx):
    ctx = at_payment(machine, ctx)
    back = ok(machine.jump_to(ctx, Step.SHIPPING))

    assert back.step is Step.SHIPPING
    assert err(machine.jump_to(back, Step.PAYMENT)).kind is StepErrorKind.NOT_REACHED
    assert err(machine.jump_to(ctx, Step.CONFIRMATION)).kind is StepErrorKind.COMMIT_REQUIRED


def test_edits_are_bound_to_their_step(machine, ctx):
    assert err(machine.select_delivery(ctx, DeliveryOption.EXPRESS)).kind is StepErrorKind.WRONG_STEP
    assert err(machine.accept_terms(ctx)).kind is StepErrorKind.WRONG_STEP

    ctx = ok(machine.advance(replace(ctx, shipping=filled_shipping())))
    assert err(machine.update_shipping(ctx, city="Hawally")).kind is StepErrorKind.WRONG_STEP
    assert ok(machine.select_delivery(ctx, DeliveryOption.SAMEDAY)).delivery is DeliveryOption.SAMEDAY


def test_update_shipping(machine, ctx):
    ctx = ok(machine.update_shipping(ctx, first_name="Sara", city="Kuwait"))
    assert ctx.shipping.first_name == "Sara"
    assert ctx.shipping.city == "Kuwait"


def test_emptied_cart_ends_checkout(machine, ctx):
    ctx = replace(ctx, coupon=held(make_coupon(), ctx.subtotal))

    ended = ok(machine.sync_cart(ctx, CartSnapshot(USER)))

    assert ended.is_abandoned
    assert ended.coupon is None
    assert ended.totals.total == money("0")
    for transition in (
        machine.advance(ended),
        machine.retreat(ended),
        machine.jump_to(ended, Step.SHIPPING),
        machine.update_shipping(ended, first_name="Sara"),
        machine.sync_cart(ended, ctx.cart),
    ):
        assert err(transition).kind is StepErrorKind.CART_EMPTY
    assert machine.validate_for_commit(ended).kind is StepErrorKind.CART_EMPTY


def test_confirm_is_terminal(machine, ctx):
    ctx = ok(machine.accept_terms(at_payment(machine, ctx)))
    receipt = CommitReceipt("order-1", "ORD-20260301-00001", ctx.totals)

    done = ok(machine.confirm(ctx, receipt))

    assert done.step is Step.CONFIRMATION
    assert done.order_number == "ORD-20260301-00001"
    for transition in (
        machine.retreat(done),
        machine.advance(done),
        machine.jump_to(done, Step.SHIPPING),
        machine.confirm(done, receipt),
    ):
        assert err(transition).kind is StepErrorKind.FINISHED


def test_confirm_only_from_payment(machine, ctx):
    receipt = CommitReceipt("order-1", "ORD-1", ctx.totals)
    assert err(machine.confirm(ctx, receipt)).kind is StepErrorKind.WRONG_STEP


# ═══════════════════════════════════════════════════════════════════════════════
# Context
# ═══════════════════════════════════════════════════════════════════════════════


def test_totals_use_held_discount(ctx):
    ctx = replace(ctx, delivery=DeliveryOption.EXPRESS, coupon=replace(held(make_coupon(), "20"), discount=money("2")))
    assert ctx.totals == order_total(money("20.000"), DeliveryOption.EXPRESS, money("2.000"))


def test_context_survives_serialization(machine, ctx):
    ctx = at_payment(machine, replace(ctx, language=Language.AR, coupon=held(make_coupon(), "20")))
    assert CheckoutContext.from_dict(ctx.to_dict()) == ctx


# ═══════════════════════════════════════════════════════════════════════════════
# Prefill
# ═══════════════════════════════════════════════════════════════════════════════


SAVED = SavedAddress(
    name="Sara Al Sabah",
    phone="+965 5000 0000",
    area="Salmiya",
    block="3",
    street="12",
    building="7",
    apartment="5",
    is_default=True,
)


def test_split_name():
    assert split_name("Sara Al Sabah") == ("Sara", "Al Sabah")
    assert split_name("Sara") == ("Sara", "")
    assert split_name("  ") == ("", "")


def test_format_address_skips_blank_parts():
    assert format_address(SAVED) == "Block 3, Street 12, Building 7, Apt 5"


def test_prefill_from_saved_address():
    shipping = prefill_shipping(SAVED, "sara@example.com", default_city="Kuwait")

    assert shipping.first_name == "Sara"
    assert shipping.last_name == "Al Sabah"
    assert shipping.city == "Kuwait"
    assert shipping.area == "Salmiya"
    assert shipping.missing_fields() == ()


def test_prefill_without_address_fills_email_only():
    assert prefill_shipping(None, "sara@example.com") == ShippingContext(email="sara@example.com")


def test_prefill_never_overwrites_typed_fields():
    typed = ShippingContext(first_name="Noor", phone="+965 9999 9999")
    shipping = prefill_shipping(SAVED, "sara@example.com", current=typed)

    assert shipping.first_name == "Noor"
    assert shipping.phone == "+965 9999 9999"
    assert shipping.last_name == "Al Sabah"
