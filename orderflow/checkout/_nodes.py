"""
Session start — the reads needed to open a checkout.

    SessionCartNode ───┐
                       ├─→ SessionStartNode
    SavedAddressNode ──┘

Both reads run concurrently. A missing cart is fatal; a failed address
lookup only skips the prefill.
"""

import logging
from dataclasses import dataclass

from kungfu import Ok, Error

from orderflow import graph as G
from orderflow.domain import CartSnapshot, CheckoutError, SavedAddress, ShippingContext
from orderflow.stores import Stores, guarded
from orderflow.checkout._prefill import prefill_shipping

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionRequest:
    user_id: str
    email: str
    default_city: str
    timeout: float | None = None


@G.node
class SessionCartNode:
    def __init__(self, data: CartSnapshot) -> None:
        self.data = data

    @classmethod
    async def __compose__(cls, request: SessionRequest, stores: Stores) -> "SessionCartNode":
        match await guarded(lambda: stores.carts.get_lines(request.user_id), request.timeout):
            case Error(err):
                raise CheckoutError("CART_UNAVAILABLE", f"Could not load your cart: {err}")
            case Ok(cart) if cart.is_empty:
                raise CheckoutError("CART_EMPTY", "Your cart is empty")
            case Ok(cart):
                return cls(cart)


@G.node
class SavedAddressNode:
    def __init__(self, data: SavedAddress | None) -> None:
        self.data = data

    @classmethod
    async def __compose__(cls, request: SessionRequest, stores: Stores) -> "SavedAddressNode":
        match await guarded(lambda: stores.profiles.get_default_address(request.user_id), request.timeout):
            case Error(err):
                logger.warning("address prefill skipped for %s: %s", request.user_id, err)
                return cls(None)
            case Ok(address):
                return cls(address)


@G.node
class SessionStartNode:
    def __init__(self, cart: CartSnapshot, shipping: ShippingContext) -> None:
        self.cart = cart
        self.shipping = shipping

    @classmethod
    async def __compose__(
        cls,
        request: SessionRequest,
        cart: SessionCartNode,
        address: SavedAddressNode,
    ) -> "SessionStartNode":
        shipping = prefill_shipping(address.data, request.email, default_city=request.default_city)
        return cls(cart.data, shipping)


__all__ = (
    "SessionRequest",
    "SessionCartNode",
    "SavedAddressNode",
    "SessionStartNode",
)
