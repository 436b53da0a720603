"""
Commit — place one order from a finalized checkout.

    from orderflow import commit as OC

    committer = OC.OrderCommitter(stores, notifier)
    result = await committer.commit(OC.CommitRequest(...))

At most one commit runs per checkout session; a repeated submit after
success replays the first receipt.
"""

from orderflow.commit._types import (
    CommitRequest,
    CommitPlan,
    CommitReceipt,
    CommitErrorKind,
    CommitError,
    CompensationFailed,
)
from orderflow.commit._nodes import (
    CommitEnv,
    LiveCartNode,
    LiveCouponNode,
    LiveDiscountNode,
    FinalTotalsNode,
)
from orderflow.commit._sequencer import (
    COUPON_USAGE_STEP,
    guard_key,
    receipt_guard_store,
    new_order,
    OrderCommitter,
)

__all__ = (
    "CommitRequest",
    "CommitPlan",
    "CommitReceipt",
    "CommitErrorKind",
    "CommitError",
    "CompensationFailed",
    "CommitEnv",
    "LiveCartNode",
    "LiveCouponNode",
    "LiveDiscountNode",
    "FinalTotalsNode",
    "COUPON_USAGE_STEP",
    "guard_key",
    "receipt_guard_store",
    "new_order",
    "OrderCommitter",
)
