# variant_hide/listeners.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Sequence

from variant_hide.domain.context import RequestContext
from variant_hide.domain.events import EventType, ProductEvent, ProductVariantEvent
from variant_hide.events.bus import EventBus, Subscription
from variant_hide.jobs.deleted_product import DeletedProductJob
from variant_hide.ports import JobQueuePort

log = logging.getLogger("variant_hide.listener")

SyncVariants = Callable[[RequestContext, Sequence[int]], Awaitable[object]]


class CatalogEventListener:
    """
    catalog 生命周期事件 → 本插件动作：
      - 变体 created：当场同步（同一请求内完成）
      - 商品 deleted：只投递 WorkItem，对账由队列消费端异步执行
    其余事件忽略。
    """

    def __init__(self, bus: EventBus, sync_variants: SyncVariants, deleted_product_queue: JobQueuePort) -> None:
        self.bus = bus
        self.sync_variants = sync_variants
        self.queue = deleted_product_queue
        self._subs: List[Subscription] = []

    @property
    def started(self) -> bool:
        return bool(self._subs)

    def start(self) -> None:
        if self._subs:
            return
        self._subs = [
            self.bus.subscribe(ProductVariantEvent, self.on_variant_event),
            self.bus.subscribe(ProductEvent, self.on_product_event),
        ]
        log.info("catalog event listener started")

    def stop(self) -> None:
        for sub in self._subs:
            sub.unsubscribe()
        self._subs = []

    async def on_variant_event(self, event: ProductVariantEvent) -> None:
        if event.type != EventType.CREATED:
            log.debug("variant event %s ignored", event.type)
            return
        await self.sync_variants(event.ctx, list(event.variant_ids))

    async def on_product_event(self, event: ProductEvent) -> None:
        if event.type != EventType.DELETED:
            log.debug("product event %s ignored", event.type)
            return
        job = DeletedProductJob.build(event.ctx, event.product_id)
        task_id = self.queue.add(job.model_dump(mode="json"))
        log.info("product %s deleted, reconcile job queued: %s", event.product_id, task_id)
