# variant_hide/services/job_queue.py
from __future__ import annotations

import logging
from typing import Any, Mapping

from variant_hide.tasks import Processor, process_job, register_processor, unregister_processor

log = logging.getLogger("variant_hide.queue")


class JobQueue:
    """一个具名队列：add() 投递到 Celery 同名队列，由该名下注册的处理器消费。"""

    def __init__(self, name: str) -> None:
        self.name = name

    def add(self, payload: Mapping[str, Any]) -> str:
        res = process_job.apply_async(args=(self.name, dict(payload)), queue=self.name)
        log.info("job enqueued: queue=%s task_id=%s", self.name, res.id)
        return res.id

    def close(self) -> None:
        unregister_processor(self.name)


class JobQueueService:
    """按名称创建队列并注册处理器（任务统一走 variant_hide.process_job）"""

    def create_queue(self, name: str, process: Processor) -> JobQueue:
        register_processor(name, process)
        log.info("queue created: %s", name)
        return JobQueue(name)
