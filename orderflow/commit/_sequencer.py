"""
Order commit — guarded, compensated placement of one order.

    commit(request)
      └─ guard "place-order:<session_id>"    in flight → ALREADY_PLACING
           ├─ live totals graph              nothing written yet
           ├─ saga
           │    create_order          ↺ delete order (+ items)
           │    create_items
           │    record_coupon_usage   ↺ delete usage, release counter   best effort
           │    clear_cart
           └─ confirmation handed to the background notifier

A failure after create_order undoes the earlier writes in reverse order.
A failed coupon-usage write only adds a warning to the receipt.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from kungfu import Result, Ok, Error, LazyCoroResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow import graph as G
from orderflow import idempotency as I
from orderflow import saga as S
from orderflow._types import Money
from orderflow.config import Settings, get_settings
from orderflow.domain import Coupon, CouponUsage, NewOrder, OrderItem, OrderRef
from orderflow.notify import BackgroundNotifier, OrderConfirmation
from orderflow.stores import Stores, StoreError, guarded
from orderflow.commit._types import (
    CommitRequest,
    CommitPlan,
    CommitReceipt,
    CommitErrorKind,
    CommitError,
    CompensationFailed,
)
from orderflow.commit._nodes import CommitEnv, FinalTotalsNode

logger = logging.getLogger(__name__)

COUPON_USAGE_STEP = "record_coupon_usage"

_STEP_ERRORS = {
    "create_order": CommitErrorKind.ORDER_FAILED,
    "create_items": CommitErrorKind.ITEMS_FAILED,
    "clear_cart": CommitErrorKind.CART_CLEAR_FAILED,
}

_READ_ERRORS = {
    "EMPTY_CART": CommitErrorKind.EMPTY_CART,
    "COUPON_NOT_APPLICABLE": CommitErrorKind.COUPON_NOT_APPLICABLE,
    "READ_FAILED": CommitErrorKind.READ_FAILED,
    "TIMEOUT": CommitErrorKind.TIMEOUT,
}


def guard_key(request: CommitRequest) -> str:
    return f"place-order:{request.session_id}"


def receipt_guard_store(
    session_factory: async_sessionmaker[AsyncSession],
) -> I.SQLAlchemyGuardStore[CommitReceipt]:
    """Persistent guard store that replays receipts across processes."""
    return I.SQLAlchemyGuardStore(
        session_factory,
        encode=lambda receipt: json.dumps(receipt.to_dict()),
        decode=lambda raw: CommitReceipt.from_dict(json.loads(raw)),
    )


def new_order(request: CommitRequest, plan: CommitPlan) -> NewOrder:
    address = request.shipping.as_address()
    return NewOrder(
        user_id=request.user_id,
        subtotal=plan.totals.subtotal,
        shipping_cost=plan.totals.delivery_cost,
        discount_amount=plan.totals.discount,
        total_amount=plan.totals.total,
        shipping_address=address,
        billing_address=address,
        shipping_method=request.delivery.value,
        payment_method=request.payment.method.value,
        notes=request.shipping.notes.strip() or None,
    )


@dataclass(slots=True)
class _Placement:
    order: OrderRef | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Committer
# ═══════════════════════════════════════════════════════════════════════════════


class OrderCommitter:
    """
    Turns a finalized checkout into an order, at most once per session.

    Example:
        committer = OrderCommitter(stores, notifier)

        match await committer.commit(request):
            case Ok(receipt):
                show_confirmation(receipt.order_number)
            case Error(e) if e.kind is CommitErrorKind.ALREADY_PLACING:
                pass  # the first submit is still running
            case Error(e):
                show_error(e.message)
    """

    def __init__(
        self,
        stores: Stores,
        notifier: BackgroundNotifier,
        guard_store: I.GuardStore[CommitReceipt] | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._stores = stores
        self._notifier = notifier
        self._settings = settings or get_settings()
        self._clock = clock
        self._env = CommitEnv(stores, self._settings.store_timeout_seconds, clock)
        self._timeout = S.policy.timeout(seconds=self._settings.store_timeout_seconds)
        self._undo_retry = S.policy.compensate.retry(attempts=3)
        self._guard = I.OnceGuard(
            self._place,
            key=guard_key,
            store=guard_store if guard_store is not None else I.MemoryGuardStore(),
            ttl=timedelta(seconds=self._settings.commit_guard_ttl_seconds),
        )

    async def commit(self, request: CommitRequest) -> Result[CommitReceipt, CommitError]:
        logger.info("placing order for session %s", request.session_id)
        match await self._guard.run(request):
            case Ok(outcome):
                if outcome.replayed:
                    logger.info(
                        "session %s already placed %s, replaying receipt",
                        request.session_id, outcome.value.order_number,
                    )
                return Ok(outcome.value)
            case Error(err):
                return Error(self._guard_error(request, err))

    # ─── guard ───────────────────────────────────────────────────────────────

    def _guard_error(self, request: CommitRequest, err: I.GuardError[CommitError]) -> CommitError:
        match err.kind:
            case I.GuardErrorKind.IN_FLIGHT:
                logger.info("duplicate submit for session %s rejected", request.session_id)
                return CommitError(
                    CommitErrorKind.ALREADY_PLACING, "Your order is already being placed",
                )
            case I.GuardErrorKind.FAILED if err.cause is not None:
                return err.cause
            case I.GuardErrorKind.FAILED:
                return CommitError(CommitErrorKind.ORDER_FAILED, err.message)
            case _:
                logger.error("commit guard unavailable for session %s: %s", request.session_id, err.message)
                return CommitError(
                    CommitErrorKind.GUARD_FAILED, "Could not place the order right now, please try again",
                )

    def _place(self, request: CommitRequest) -> LazyCoroResult[CommitReceipt, CommitError]:
        async def execute() -> Result[CommitReceipt, CommitError]:
            return await self._place_now(request)

        return LazyCoroResult(execute)

    # ─── placement ───────────────────────────────────────────────────────────

    async def _place_now(self, request: CommitRequest) -> Result[CommitReceipt, CommitError]:
        match await G.attempt(FinalTotalsNode, request, self._env):
            case Error(e):
                kind = _READ_ERRORS.get(e.code, CommitErrorKind.ORDER_FAILED)
                return Error(CommitError(kind, e.message, step="totals"))
            case Ok(final):
                plan = CommitPlan(final.cart, final.coupon, final.totals)

        placement = _Placement()
        match await S.run(self._saga(request, plan, placement)):
            case Error(e):
                return Error(self._saga_error(e, placement))
            case Ok(done):
                ref: OrderRef = done.value

        warnings = tuple(f"{w.step_name}: {w.error}" for w in done.warnings)
        receipt = CommitReceipt(
            order_id=ref.id,
            order_number=ref.order_number,
            totals=plan.totals,
            coupon_recorded=all(w.step_name != COUPON_USAGE_STEP for w in done.warnings),
            warnings=warnings,
        )
        logger.info(
            "order %s placed for session %s (total %s)",
            ref.order_number, request.session_id, plan.totals.total,
        )
        self._notifier.dispatch(
            OrderConfirmation.build(ref, request.shipping, request.language, plan.cart, plan.totals)
        )
        return Ok(receipt)

    def _saga(self, request: CommitRequest, plan: CommitPlan, placement: _Placement) -> S.SagaExpr:
        orders = self._stores.orders
        order = new_order(request, plan)

        async def create() -> Result[OrderRef, StoreError]:
            result = await guarded(lambda: orders.create_order(order))
            match result:
                case Ok(ref):
                    placement.order = ref
            return result

        return (
            S.step("create_order", S.from_result(create), compensate=self._delete_order)
            .policy(self._timeout, self._undo_retry)
            .then(lambda ref: self._after_order(request, plan, ref))
        )

    def _after_order(self, request: CommitRequest, plan: CommitPlan, ref: OrderRef) -> S.SagaExpr:
        orders = self._stores.orders
        items = tuple(OrderItem.from_line(line) for line in plan.cart.lines)

        chain: S.SagaExpr = S.step(
            "create_items",
            S.from_result(lambda: guarded(lambda: orders.create_order_items(ref.id, items))),
        ).policy(self._timeout)

        if plan.coupon is not None:
            coupon = plan.coupon
            chain = chain.then(lambda _: S.step(
                COUPON_USAGE_STEP,
                S.from_result(lambda: self._record_usage(request.user_id, coupon, plan.totals.discount, ref)),
                compensate=self._release_usage,
            ).policy(S.policy.on_failure.continue_(), self._timeout, self._undo_retry))

        return chain.then(lambda _: S.step(
            "clear_cart",
            S.from_result(lambda: self._clear_cart(request.user_id, ref)),
        ).policy(self._timeout))

    # ─── step actions ────────────────────────────────────────────────────────

    async def _record_usage(
        self, user_id: str, coupon: Coupon, discount: Money, ref: OrderRef,
    ) -> Result[CouponUsage, StoreError]:
        coupons = self._stores.coupons
        match await guarded(lambda: coupons.increment_usage(coupon.id)):
            case Error(err):
                return Error(err)
            case Ok(False):
                return Error(StoreError(f"coupon {coupon.code} usage limit reached"))

        usage = CouponUsage(coupon.id, user_id, ref.id, discount, used_at=self._clock())
        match await guarded(lambda: self._stores.orders.create_coupon_usage(usage)):
            case Error(err):
                # Counter and usage rows move together.
                match await guarded(lambda: coupons.release_usage(coupon.id)):
                    case Error(undo):
                        logger.error("coupon %s counter left incremented: %s", coupon.code, undo)
                return Error(err)
        return Ok(usage)

    async def _clear_cart(self, user_id: str, ref: OrderRef) -> Result[OrderRef, StoreError]:
        match await guarded(lambda: self._stores.carts.clear(user_id)):
            case Error(err):
                return Error(err)
        return Ok(ref)

    # ─── compensators ────────────────────────────────────────────────────────

    async def _delete_order(self, ref: OrderRef) -> None:
        match await guarded(lambda: self._stores.orders.delete_order(ref.id), self._env.timeout):
            case Error(err):
                raise CompensationFailed(f"could not delete order {ref.order_number}: {err}")
        logger.info("order %s rolled back", ref.order_number)

    async def _release_usage(self, usage: CouponUsage) -> None:
        timeout = self._env.timeout
        match await guarded(lambda: self._stores.orders.delete_coupon_usage(usage.order_id), timeout):
            case Error(err):
                raise CompensationFailed(f"could not delete coupon usage of {usage.order_id}: {err}")
        match await guarded(lambda: self._stores.coupons.release_usage(usage.coupon_id), timeout):
            case Error(err):
                raise CompensationFailed(f"could not release coupon {usage.coupon_id}: {err}")

    # ─── errors ──────────────────────────────────────────────────────────────

    def _saga_error(self, error: S.SagaError[Any], placement: _Placement) -> CommitError:
        if isinstance(error.error, S.StepTimeout):
            kind = CommitErrorKind.TIMEOUT
        else:
            kind = _STEP_ERRORS.get(error.step_name, CommitErrorKind.ORDER_FAILED)

        orphaned = None
        if not error.rollback_complete and placement.order is not None:
            orphaned = placement.order.id
            logger.error(
                "order %s (%s) left behind: rollback after %s failed",
                placement.order.order_number, orphaned, error.step_name,
            )

        return CommitError(
            kind=kind,
            message=f"Could not place the order: {error.error}",
            step=error.step_name,
            rollback_complete=error.rollback_complete,
            orphaned_order_id=orphaned,
        )


__all__ = (
    "COUPON_USAGE_STEP",
    "guard_key",
    "receipt_guard_store",
    "new_order",
    "OrderCommitter",
)
