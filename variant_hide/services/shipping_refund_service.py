# variant_hide/services/shipping_refund_service.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Sequence

from variant_hide.domain.context import RequestContext
from variant_hide.domain.order_states import RefundState
from variant_hide.domain.orders import CancelledOrder, NewRefund
from variant_hide.domain.results import Err
from variant_hide.metrics import SHIPPING_REFUNDS
from variant_hide.ports import OrderServicePort, RefundRepoPort
from variant_hide.services.reconcile_repo import SHIPPING_REFUND_METHOD, SHIPPING_REFUND_REASON_SUFFIX

log = logging.getLogger("variant_hide.shipping_refund")


def format_minor_units(amount: int) -> str:
    """最小货币单位 → 展示金额（500 → '5'，550 → '5.5'，1 → '0.01'）"""
    d = Decimal(int(amount)) / Decimal(100)
    s = format(d, "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def shipping_refund_reason(product_name: str) -> str:
    return f"Final product {product_name} deleted{SHIPPING_REFUND_REASON_SUFFIX}"


def shipping_refund_note(amount: int) -> str:
    return f"Refunding shipping cost {format_minor_units(amount)} due to product deletion"


class ShippingRefundService:
    """
    已取消订单的运费退款（每个订单至多一笔）：

    - 去重键：Refund.transaction_id == str(order.id)
    - 只记账（method=manual, state=Settled），不调用支付网关
    - 落账后给订单追加一条内部备注
    """

    def __init__(self, repo: RefundRepoPort, orders: OrderServicePort) -> None:
        self.repo = repo
        self.orders = orders

    async def refund_shipping(
        self,
        ctx: RequestContext,
        orders: Sequence[CancelledOrder],
        product_name: str,
    ) -> List[int]:
        created: List[int] = []
        seen = set()
        for order in orders:
            if order.id in seen:
                continue
            seen.add(order.id)

            existing = await self.repo.find_shipping_refund(order.id)
            if existing is not None:
                log.info("shipping refund exists: order=%s refund=%s", order.id, existing)
                SHIPPING_REFUNDS.labels("duplicate").inc()
                continue

            if order.primary_payment_id is None:
                log.warning("shipping refund skipped: order %s has no payment", order.id)
                SHIPPING_REFUNDS.labels("no_payment").inc()
                continue

            amount = int(order.shipping_with_tax)
            refund_id = await self.repo.add_refund(
                NewRefund(
                    payment_id=order.primary_payment_id,
                    items=0,
                    shipping=amount,
                    adjustment=0,
                    total=amount,
                    method=SHIPPING_REFUND_METHOD,
                    reason=shipping_refund_reason(product_name),
                    state=RefundState.SETTLED.value,
                    transaction_id=str(order.id),
                    meta={},
                )
            )
            created.append(refund_id)
            SHIPPING_REFUNDS.labels("created").inc()

            res = await self.orders.add_note_to_order(ctx, order.id, shipping_refund_note(amount), is_public=False)
            if isinstance(res, Err):
                log.error("shipping refund note failed: order=%s err=%s", order.id, res)
        return created
