"""
orderflow — checkout and order placement core.

    from orderflow import checkout as CH    # Session + step machine
    from orderflow import coupon as C       # Coupon engine
    from orderflow import commit as OC      # Compensated order commit
    from orderflow import saga as S         # Ordered steps with rollback
    from orderflow import idempotency as I  # Duplicate-submit guard
"""

from orderflow import domain
from orderflow import pricing
from orderflow import saga
from orderflow import idempotency
from orderflow import graph
from orderflow import stores
from orderflow import coupon
from orderflow import notify
from orderflow import config
from orderflow import commit
from orderflow import checkout
from orderflow._types import (
    Result,
    Ok,
    Error,
    Lazy,
)

__version__ = "0.1.0"

__all__ = (
    "domain",
    "pricing",
    "saga",
    "idempotency",
    "graph",
    "stores",
    "coupon",
    "notify",
    "config",
    "commit",
    "checkout",
    "Result",
    "Ok",
    "Error",
    "Lazy",
)
