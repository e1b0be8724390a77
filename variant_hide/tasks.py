# variant_hide/tasks.py
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Dict, Optional

from variant_hide.metrics import JOBS
from variant_hide.worker import celery

log = logging.getLogger("variant_hide.tasks")

Processor = Callable[[Dict[str, Any]], Awaitable[None]]

# 队列名 → 处理器（进程内注册；worker 进程由 VariantHidePlugin.start() 注册）
_PROCESSORS: Dict[str, Processor] = {}


def register_processor(queue_name: str, process: Processor) -> None:
    if queue_name in _PROCESSORS and _PROCESSORS[queue_name] is not process:
        log.warning("processor for queue %s replaced", queue_name)
    _PROCESSORS[queue_name] = process


def unregister_processor(queue_name: str) -> None:
    _PROCESSORS.pop(queue_name, None)


def get_processor(queue_name: str) -> Optional[Processor]:
    return _PROCESSORS.get(queue_name)


def _run_async(fn: Processor, payload: Dict[str, Any]) -> None:
    """
    在新的 event loop 中执行处理器。
    eager 模式下 add() 可能在已运行的 loop 里被调用（事件监听 / HTTP 路由），
    此时改到独立线程里 asyncio.run，并同步等待结果。
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(fn(payload))
        return

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="variant-hide-job") as pool:
        pool.submit(asyncio.run, fn(payload)).result()


@celery.task(name="variant_hide.process_job")
def process_job(queue_name: str, payload: Dict[str, Any]) -> str:
    """
    Celery 任务入口：
      - 按队列名找处理器；未注册 → NO_PROCESSOR
      - 在新的 event loop 中执行处理器（asyncio.run）
      - 异常记日志 + 计数后回抛给 Celery
    """
    fn = get_processor(queue_name)
    if fn is None:
        log.error("no processor registered for queue %s", queue_name)
        JOBS.labels(queue_name, "NO_PROCESSOR").inc()
        return "NO_PROCESSOR"

    try:
        _run_async(fn, payload or {})
    except Exception:
        log.exception("job failed: queue=%s", queue_name)
        JOBS.labels(queue_name, "ERROR").inc()
        raise

    JOBS.labels(queue_name, "OK").inc()
    return "OK"
