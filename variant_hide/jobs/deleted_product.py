# variant_hide/jobs/deleted_product.py
from __future__ import annotations

import logging
from typing import Any, AsyncContextManager, Callable, Dict, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from variant_hide.domain.context import RequestContext, SerializedRequestContext
from variant_hide.domain.errors import JobPayloadError
from variant_hide.ports import OrderServicePort
from variant_hide.services.product_deletion_reconciler import (
    ProductDeletionReconciler,
    ReconcileOptions,
    ReconcileReport,
)
from variant_hide.services.reconcile_repo import ReconcileRepo
from variant_hide.services.shipping_refund_service import ShippingRefundService

log = logging.getLogger("variant_hide.jobs")

OrderClientFactory = Callable[[], AsyncContextManager[OrderServicePort]]


class DeletedProductJob(BaseModel):
    """删除对账 WorkItem：上下文快照 + 商品 id（JSON 安全）"""

    ctx: SerializedRequestContext
    product_id: int

    @classmethod
    def build(cls, ctx: RequestContext, product_id: int) -> "DeletedProductJob":
        return cls(ctx=ctx.capture(), product_id=product_id)


def make_deleted_product_processor(
    session_maker: async_sessionmaker[AsyncSession],
    order_client_factory: OrderClientFactory,
    options: Optional[ReconcileOptions] = None,
) -> Callable[[Dict[str, Any]], Any]:
    """
    生成队列处理器：还原上下文 → 打开会话与订单 API 客户端 → 对账 → 提交。
    对账本身不抛异常；只有 payload 非法或基础设施故障才会回抛给队列。
    """

    async def process(payload: Dict[str, Any]) -> ReconcileReport:
        try:
            job = DeletedProductJob.model_validate(payload)
        except ValidationError as e:
            raise JobPayloadError(f"invalid deleted-product payload: {e}") from e

        ctx = job.ctx.restore()
        async with session_maker() as session:
            async with order_client_factory() as orders:
                repo = ReconcileRepo(session)
                reconciler = ProductDeletionReconciler(
                    repo,
                    orders,
                    ShippingRefundService(repo, orders),
                    options,
                )
                report = await reconciler.reconcile(ctx, job.product_id)
            await session.commit()

        log.info(
            "deleted product job done: product=%s skipped=%s cancelled=%s shipping_refunds=%s error=%s",
            report.product_id,
            report.skipped,
            report.cancelled_order_ids,
            report.shipping_refund_ids,
            report.error,
        )
        return report

    return process
