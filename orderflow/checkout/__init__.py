"""
Checkout — session state, step machine and address prefill.

    from orderflow import checkout as CH

    match await CH.CheckoutSession.open(user_id, email, stores, committer):
        case Ok(session):
            session.advance()

    SHIPPING → DELIVERY → PAYMENT → CONFIRMATION
"""

from orderflow.checkout._context import (
    Step,
    StepErrorKind,
    StepError,
    CheckoutContext,
)
from orderflow.checkout._machine import Transition, CheckoutMachine
from orderflow.checkout._prefill import split_name, format_address, prefill_shipping
from orderflow.checkout._nodes import (
    SessionRequest,
    SessionCartNode,
    SavedAddressNode,
    SessionStartNode,
)
from orderflow.checkout._session import CartRefresh, CheckoutSession

__all__ = (
    "Step",
    "StepErrorKind",
    "StepError",
    "CheckoutContext",
    "Transition",
    "CheckoutMachine",
    "split_name",
    "format_address",
    "prefill_shipping",
    "SessionRequest",
    "SessionCartNode",
    "SavedAddressNode",
    "SessionStartNode",
    "CartRefresh",
    "CheckoutSession",
)
