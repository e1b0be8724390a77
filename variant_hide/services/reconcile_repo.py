# variant_hide/services/reconcile_repo.py
"""
删除对账所需的直连查询 / 写入（Product / Order / Refund 宿主表）。

ORM 对象只在本模块内使用，对外一律返回 domain.orders 里的快照。
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from variant_hide.domain.orders import AffectedLine, DeletedProduct, ImpactedOrder, NewRefund
from variant_hide.models.catalog import Product, ProductVariant
from variant_hide.models.order import Order, OrderLine, Payment, Refund, order_channels

log = logging.getLogger("variant_hide.reconcile_repo")

SHIPPING_REFUND_METHOD = "manual"
# 运费退款 reason 的固定后缀；商品退款（"Product <name> deleted"）不带它
SHIPPING_REFUND_REASON_SUFFIX = " - Shipping cost refund"


class ReconcileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ---- Product ----
    async def find_deleted_product(self, product_id: int) -> Optional[DeletedProduct]:
        """只返回已软删除的商品；未删除 / 不存在 → None"""
        stmt = (
            select(Product)
            .options(selectinload(Product.translations))
            .where(Product.id == product_id)
            .where(Product.deleted_at.is_not(None))
        )
        res = await self.session.execute(stmt)
        product = res.scalars().first()
        if product is None:
            return None
        # 删除后的名称：取第一条翻译
        name = product.translations[0].name if product.translations else ""
        return DeletedProduct(id=product.id, name=name)

    # ---- Order ----
    async def find_impacted_orders(
        self,
        *,
        channel_id: int,
        product_id: int,
        states: Iterable[str],
    ) -> List[ImpactedOrder]:
        """
        当前渠道内、含该商品任一变体行、且处于给定状态的订单。
        每个快照只带该商品的行；total_line_count 为订单全部行数。
        """
        state_values = [getattr(s, "value", s) for s in states]

        order_ids = (
            select(Order.id)
            .join(order_channels, order_channels.c.orderId == Order.id)
            .join(OrderLine, OrderLine.order_id == Order.id)
            .join(ProductVariant, ProductVariant.id == OrderLine.product_variant_id)
            .where(order_channels.c.channelId == channel_id)
            .where(ProductVariant.product_id == product_id)
            .where(Order.state.in_(state_values))
            .distinct()
        )

        stmt = (
            select(Order)
            .options(
                selectinload(Order.lines).selectinload(OrderLine.product_variant),
                selectinload(Order.payments),
            )
            .where(Order.id.in_(order_ids))
            .order_by(Order.id.asc())
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(stmt)

        out: List[ImpactedOrder] = []
        for order in res.scalars().all():
            lines = [
                AffectedLine(id=ln.id, product_variant_id=ln.product_variant_id, quantity=ln.quantity)
                for ln in order.lines
                if ln.product_variant is not None and ln.product_variant.product_id == product_id
            ]
            out.append(
                ImpactedOrder(
                    id=order.id,
                    code=order.code,
                    state=order.state,
                    lines=lines,
                    total_line_count=len(order.lines),
                    primary_payment_id=order.payments[0].id if order.payments else None,
                )
            )
        return out

    # ---- Refund ----
    async def find_shipping_refund(self, order_id: int) -> Optional[int]:
        """
        该订单已有的运费退款 id：
          - 挂在本订单的 payment 上，method = manual，transaction_id == str(order_id)
          - items = 0 且 reason 带运费后缀（与 settle 过的商品退款区分开）
        """
        stmt = (
            select(Refund.id)
            .join(Payment, Payment.id == Refund.payment_id)
            .where(Payment.order_id == order_id)
            .where(Refund.transaction_id == str(order_id))
            .where(Refund.method == SHIPPING_REFUND_METHOD)
            .where(Refund.items == 0)
            .where(Refund.reason.endswith(SHIPPING_REFUND_REASON_SUFFIX))
            .order_by(Refund.id.asc())
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def add_refund(self, refund: NewRefund) -> int:
        row = Refund(
            payment_id=refund.payment_id,
            items=refund.items,
            shipping=refund.shipping,
            adjustment=refund.adjustment,
            total=refund.total,
            method=refund.method,
            reason=refund.reason,
            state=refund.state,
            transaction_id=refund.transaction_id,
            meta=dict(refund.meta),
        )
        self.session.add(row)
        await self.session.flush()
        refund_id = row.id
        await self.session.commit()
        log.info(
            "refund persisted: id=%s payment=%s total=%s txn=%s",
            refund_id,
            refund.payment_id,
            refund.total,
            refund.transaction_id,
        )
        return refund_id
