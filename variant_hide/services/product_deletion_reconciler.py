# variant_hide/services/product_deletion_reconciler.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from variant_hide.core.config import AppSettings, ArrangingPaymentRestore, get_settings
from variant_hide.domain.context import RequestContext
from variant_hide.domain.order_states import PAID_STATES, RECONCILABLE_STATES, OrderState, RefundState
from variant_hide.domain.orders import (
    CancelledOrder,
    CancelOrderInput,
    DeletedProduct,
    ImpactedOrder,
    OrderLineQuantity,
    RefundOrderInput,
)
from variant_hide.domain.results import Err
from variant_hide.metrics import LAT, ORDERS_RECONCILED, RECONCILE_RUNS
from variant_hide.ports import OrderServicePort, ReconcileRepoPort
from variant_hide.services.shipping_refund_service import ShippingRefundService

log = logging.getLogger("variant_hide.reconcile")

_PAID = {s.value for s in PAID_STATES}


@dataclass(frozen=True)
class ReconcileOptions:
    restore_policy: ArrangingPaymentRestore = ArrangingPaymentRestore.IF_LINES_REMAIN
    # True：单个订单异常只影响该订单；False：异常直接中断整批（外层兜底记日志）
    isolate_order_failures: bool = True

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None) -> "ReconcileOptions":
        s = settings or get_settings()
        return cls(
            restore_policy=ArrangingPaymentRestore(s.ARRANGING_PAYMENT_RESTORE),
            isolate_order_failures=bool(s.ISOLATE_ORDER_FAILURES),
        )


@dataclass
class ReconcileReport:
    product_id: int
    skipped: bool = False
    orders_seen: int = 0
    lines_removed: int = 0
    cancelled_order_ids: List[int] = field(default_factory=list)
    refunded_order_ids: List[int] = field(default_factory=list)
    failed_order_ids: List[int] = field(default_factory=list)
    shipping_refund_ids: List[int] = field(default_factory=list)
    error: Optional[str] = None


def deleted_reason(product_name: str) -> str:
    return f"Product {product_name} deleted"


class ProductDeletionReconciler:
    """
    商品软删除后的订单对账（队列消费端调用，不对外抛异常）：

    1) 商品必须已软删除，否则直接返回（重复 / 过早投递）
    2) 查当前渠道内仍未履约、含该商品行的订单
    3) 逐单处理：
       - ArrangingPayment 先退回 AddingItems，删完行再按策略恢复
       - 逐行删除（每行一次调用，失败不影响其余行）
       - 已付款订单：按被删行取消 → 对主支付退款 → 未结算则结算
       - 重新加载订单，状态为 Cancelled 的进入运费退款候选
    4) 候选按订单 id 去重后交给 ShippingRefundService
    """

    def __init__(
        self,
        repo: ReconcileRepoPort,
        orders: OrderServicePort,
        refunds: ShippingRefundService,
        options: Optional[ReconcileOptions] = None,
    ) -> None:
        self.repo = repo
        self.orders = orders
        self.refunds = refunds
        self.options = options or ReconcileOptions()

    async def reconcile(self, ctx: RequestContext, product_id: int) -> ReconcileReport:
        report = ReconcileReport(product_id=product_id)
        outcome = "ok"
        t0 = time.perf_counter()
        try:
            product = await self.repo.find_deleted_product(product_id)
            if product is None:
                log.error("product %s not deleted yet or not found", product_id)
                report.skipped = True
                outcome = "skipped"
                return report

            log.info("deleting product %s from all orders (trace=%s)", product.id, ctx.trace_id)
            impacted = await self.repo.find_impacted_orders(
                channel_id=ctx.channel_id,
                product_id=product.id,
                states=[s.value for s in RECONCILABLE_STATES],
            )
            report.orders_seen = len(impacted)

            candidates: List[CancelledOrder] = []
            for order in impacted:
                if not order.lines:
                    ORDERS_RECONCILED.labels("skipped").inc()
                    continue
                if self.options.isolate_order_failures:
                    try:
                        cand = await self._reconcile_order(ctx, order, product, report)
                    except Exception as e:
                        log.exception("reconcile order %s for product %s failed: %s", order.id, product.id, e)
                        report.failed_order_ids.append(order.id)
                        ORDERS_RECONCILED.labels("failed").inc()
                        continue
                else:
                    cand = await self._reconcile_order(ctx, order, product, report)
                if cand is not None:
                    candidates.append(cand)

            unique: List[CancelledOrder] = []
            seen = set()
            for c in candidates:
                if c.id not in seen:
                    seen.add(c.id)
                    unique.append(c)
            log.info("shipping refund candidates for product %s: %s", product.id, [c.id for c in unique])

            if unique:
                report.shipping_refund_ids = await self.refunds.refund_shipping(ctx, unique, product.name)
            return report
        except Exception as e:
            log.error("error deleting product with id %s from all orders: %s", product_id, e, exc_info=True)
            report.error = str(e) or type(e).__name__
            outcome = "error"
            return report
        finally:
            LAT.observe(time.perf_counter() - t0)
            RECONCILE_RUNS.labels(outcome).inc()

    # ---------- 单个订单 ----------

    async def _reconcile_order(
        self,
        ctx: RequestContext,
        order: ImpactedOrder,
        product: DeletedProduct,
        report: ReconcileReport,
    ) -> Optional[CancelledOrder]:
        transitioned = False
        if order.state == OrderState.ARRANGING_PAYMENT.value:
            res = await self.orders.transition_to_state(ctx, order.id, OrderState.ADDING_ITEMS.value)
            if isinstance(res, Err):
                log.error("order %s: cannot move back to AddingItems: %s", order.id, res)
                report.failed_order_ids.append(order.id)
                ORDERS_RECONCILED.labels("failed").inc()
                return None
            transitioned = True

        remaining = order.total_line_count
        removed = 0
        try:
            for line in order.lines:
                log.info("removing product %s (line %s) from order %s", product.id, line.id, order.id)
                res = await self.orders.remove_item_from_order(ctx, order.id, line.id)
                if isinstance(res, Err):
                    log.error("order %s: remove line %s failed: %s", order.id, line.id, res)
                    continue
                removed += 1
                remaining = len(res.value.line_ids)
        finally:
            report.lines_removed += removed
            # 删行中途抛异常也要按策略恢复 ArrangingPayment
            if transitioned:
                await self._restore_arranging_payment(ctx, order, remaining)

        if order.state in _PAID:
            if not await self._cancel_and_refund(ctx, order, product, report):
                return None
        elif removed:
            ORDERS_RECONCILED.labels("lines_removed").inc()

        current = await self.orders.find_order(ctx, order.id)
        if current is not None and current.state == OrderState.CANCELLED.value:
            return CancelledOrder(
                id=current.id,
                code=current.code,
                shipping_with_tax=current.shipping_with_tax,
                primary_payment_id=current.primary_payment_id or order.primary_payment_id,
            )
        return None

    async def _restore_arranging_payment(self, ctx: RequestContext, order: ImpactedOrder, remaining: int) -> None:
        policy = self.options.restore_policy
        if policy == ArrangingPaymentRestore.NEVER:
            log.info("order %s left in AddingItems (restore policy=never)", order.id)
            return
        if policy == ArrangingPaymentRestore.IF_LINES_REMAIN and remaining <= 0:
            log.info("order %s has no lines left, not restoring ArrangingPayment", order.id)
            return
        res = await self.orders.transition_to_state(ctx, order.id, OrderState.ARRANGING_PAYMENT.value)
        if isinstance(res, Err):
            log.error("order %s: restore ArrangingPayment failed: %s", order.id, res)

    async def _cancel_and_refund(
        self,
        ctx: RequestContext,
        order: ImpactedOrder,
        product: DeletedProduct,
        report: ReconcileReport,
    ) -> bool:
        """已付款订单：取消被删行 → 退款 → 结算。取消失败返回 False（跳过该订单）。"""
        log.info("refunding order %s due to product deletion", order.id)
        lines = [OrderLineQuantity(order_line_id=ln.id, quantity=ln.quantity) for ln in order.lines]
        reason = deleted_reason(product.name)

        cancelled = await self.orders.cancel_order(
            ctx, CancelOrderInput(order_id=order.id, lines=lines, reason=reason)
        )
        if isinstance(cancelled, Err):
            log.error("error cancelling order %s due to product deletion: %s", order.id, cancelled)
            report.failed_order_ids.append(order.id)
            ORDERS_RECONCILED.labels("failed").inc()
            return False
        report.cancelled_order_ids.append(order.id)
        ORDERS_RECONCILED.labels("cancelled").inc()

        payment_id = order.primary_payment_id
        if payment_id is None:
            log.warning("order %s has no payment, refund skipped", order.id)
            return True

        refund = await self.orders.refund_order(
            ctx,
            RefundOrderInput(
                order_id=order.id,
                lines=lines,
                reason=reason,
                payment_id=payment_id,
                shipping=0,
                adjustment=0,
            ),
        )
        if isinstance(refund, Err):
            log.error("order %s: refund failed: %s", order.id, refund)
            return True

        report.refunded_order_ids.append(order.id)
        ORDERS_RECONCILED.labels("refunded").inc()
        if refund.value.state != RefundState.SETTLED.value:
            settled = await self.orders.settle_refund(ctx, refund.value.id, transaction_id=str(payment_id))
            if isinstance(settled, Err):
                log.error("order %s: settle refund %s failed: %s", order.id, refund.value.id, settled)
        return True
