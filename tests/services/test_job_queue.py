# tests/services/test_job_queue.py
"""
队列在测试态是 eager：add() 当场在本进程执行任务。
同步用例走 asyncio.run；已在 event loop 内的调用（监听器、路由）改走独立线程。
"""
from __future__ import annotations

from typing import Any, Dict, List

import pytest

from variant_hide.domain.context import RequestContext
from variant_hide.domain.events import EventType, ProductEvent
from variant_hide.events.bus import EventBus
from variant_hide.jobs.deleted_product import DeletedProductJob
from variant_hide.listeners import CatalogEventListener
from variant_hide.services.job_queue import JobQueueService
from variant_hide.tasks import get_processor, process_job

pytestmark = pytest.mark.grp_queue


def test_add_runs_registered_processor():
    seen: List[Dict[str, Any]] = []

    async def processor(payload: Dict[str, Any]) -> None:
        seen.append(payload)

    queue = JobQueueService().create_queue("test-queue", processor)
    task_id = queue.add({"product_id": 3, "ctx": {"channel_id": 1}})

    assert task_id
    assert seen == [{"product_id": 3, "ctx": {"channel_id": 1}}]


def test_jobs_run_one_after_another_in_order():
    seen: List[int] = []

    async def processor(payload: Dict[str, Any]) -> None:
        seen.append(payload["n"])

    queue = JobQueueService().create_queue("ordered", processor)
    for n in range(3):
        queue.add({"n": n})

    assert seen == [0, 1, 2]


def test_unknown_queue_has_no_processor():
    res = process_job.apply(args=("nobody-listens", {}))
    assert res.get() == "NO_PROCESSOR"


def test_processor_error_propagates():
    async def processor(payload: Dict[str, Any]) -> None:
        raise RuntimeError("db down")

    queue = JobQueueService().create_queue("failing", processor)
    with pytest.raises(RuntimeError, match="db down"):
        queue.add({})


def test_close_unregisters_processor():
    async def processor(payload: Dict[str, Any]) -> None:
        return None

    queue = JobQueueService().create_queue("closing", processor)
    assert get_processor("closing") is processor
    queue.close()
    assert get_processor("closing") is None


@pytest.mark.asyncio
async def test_add_from_running_loop_still_runs_processor():
    seen: List[Dict[str, Any]] = []

    async def processor(payload: Dict[str, Any]) -> None:
        seen.append(payload)

    queue = JobQueueService().create_queue("in-loop", processor)
    assert queue.add({"n": 1})
    assert seen == [{"n": 1}]


@pytest.mark.asyncio
async def test_deleted_product_event_reaches_processor_through_real_queue(ctx: RequestContext):
    seen: List[DeletedProductJob] = []

    async def processor(payload: Dict[str, Any]) -> None:
        seen.append(DeletedProductJob.model_validate(payload))

    async def no_sync(ctx: RequestContext, ids) -> None:
        return None

    bus = EventBus()
    queue = JobQueueService().create_queue("deleted-product-order-queue", processor)
    listener = CatalogEventListener(bus, no_sync, queue)
    listener.start()
    try:
        await bus.publish(ProductEvent(type=EventType.DELETED, ctx=ctx, product_id=42))
    finally:
        listener.stop()
        queue.close()

    [job] = seen
    assert job.product_id == 42
    assert job.ctx.channel_id == ctx.channel_id


@pytest.mark.asyncio
async def test_processor_error_from_running_loop_propagates():
    async def processor(payload: Dict[str, Any]) -> None:
        raise RuntimeError("db down")

    queue = JobQueueService().create_queue("failing-in-loop", processor)
    with pytest.raises(RuntimeError, match="db down"):
        queue.add({})
