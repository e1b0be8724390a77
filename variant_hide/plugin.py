# variant_hide/plugin.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from variant_hide.core.config import AppSettings, get_settings
from variant_hide.domain.context import RequestContext
from variant_hide.events.bus import EventBus
from variant_hide.jobs.deleted_product import (
    DeletedProductJob,
    OrderClientFactory,
    make_deleted_product_processor,
)
from variant_hide.listeners import CatalogEventListener
from variant_hide.services.catalog_service import SqlCatalogService
from variant_hide.services.job_queue import JobQueue, JobQueueService
from variant_hide.services.order_api_client import OrderApiClient
from variant_hide.services.product_deletion_reconciler import ReconcileOptions
from variant_hide.services.variant_sync_service import VariantSyncService

log = logging.getLogger("variant_hide.plugin")

DEFAULT_QUEUE = "deleted-product-order-queue"


class VariantHidePlugin:
    """
    启动 / 关闭装配：
      - start()：创建删除对账队列（注册处理器）并启动事件监听
      - stop() ：取消订阅、注销处理器
    API 进程与 worker 进程各自 start 一次。
    """

    def __init__(
        self,
        bus: EventBus,
        job_queues: JobQueueService,
        session_maker: async_sessionmaker[AsyncSession],
        job_session_maker: async_sessionmaker[AsyncSession],
        order_client_factory: OrderClientFactory,
        options: Optional[ReconcileOptions] = None,
        queue_name: str = DEFAULT_QUEUE,
    ) -> None:
        self.bus = bus
        self.job_queues = job_queues
        self.session_maker = session_maker
        self.job_session_maker = job_session_maker
        self.order_client_factory = order_client_factory
        self.options = options or ReconcileOptions()
        self.queue_name = queue_name

        self.deleted_product_queue: Optional[JobQueue] = None
        self.listener: Optional[CatalogEventListener] = None

    @classmethod
    def from_settings(cls, bus: EventBus, settings: Optional[AppSettings] = None) -> "VariantHidePlugin":
        from variant_hide.db.session import AsyncSessionLocal, JobSessionLocal

        s = settings or get_settings()
        return cls(
            bus,
            JobQueueService(),
            AsyncSessionLocal,
            JobSessionLocal,
            lambda: OrderApiClient.from_settings(s),
            ReconcileOptions.from_settings(s),
            queue_name=s.DELETED_PRODUCT_QUEUE,
        )

    # ---- 生命周期 ----
    @property
    def started(self) -> bool:
        return self.listener is not None

    def start(self) -> None:
        if self.started:
            return
        processor = make_deleted_product_processor(
            self.job_session_maker, self.order_client_factory, self.options
        )
        self.deleted_product_queue = self.job_queues.create_queue(self.queue_name, processor)
        self.listener = CatalogEventListener(self.bus, self.sync_variants, self.deleted_product_queue)
        self.listener.start()
        log.info("variant hide plugin started: queue=%s", self.queue_name)

    def stop(self) -> None:
        if self.listener is not None:
            self.listener.stop()
            self.listener = None
        if self.deleted_product_queue is not None:
            self.deleted_product_queue.close()
            self.deleted_product_queue = None
        log.info("variant hide plugin stopped")

    # ---- 操作 ----
    async def sync_variants(self, ctx: RequestContext, variant_ids: Sequence[int]) -> List[int]:
        async with self.session_maker() as session:
            ids = await VariantSyncService(SqlCatalogService(session)).sync(ctx, variant_ids)
            await session.commit()
        return ids

    async def auto_update_variant(self, ctx: RequestContext, product_id: int) -> Optional[int]:
        async with self.session_maker() as session:
            vid = await VariantSyncService(SqlCatalogService(session)).auto_update_variant(ctx, product_id)
            await session.commit()
        return vid

    def enqueue_deleted_product(self, ctx: RequestContext, product_id: int) -> str:
        if self.deleted_product_queue is None:
            raise RuntimeError("VariantHidePlugin not started")
        job = DeletedProductJob.build(ctx, product_id)
        return self.deleted_product_queue.add(job.model_dump(mode="json"))
