# variant_hide/worker.py
# Celery Worker（删除对账队列 + 测试态同步执行）
from __future__ import annotations

import logging
import os

from celery import Celery
from celery.signals import worker_process_init, worker_process_shutdown

from variant_hide.core.config import get_settings

log = logging.getLogger("variant_hide.worker")

_settings = get_settings()

BROKER_URL = os.getenv("REDIS_URL", _settings.REDIS_URL)
RESULT_URL = os.getenv("CELERY_RESULT_BACKEND", _settings.CELERY_RESULT_BACKEND)

# 注册任务模块（variant_hide.tasks 内含 variant_hide.process_job）
celery = Celery("variant_hide", broker=BROKER_URL, backend=RESULT_URL, include=["variant_hide.tasks"])

# 基本配置：一个 worker 进程一次只处理一个 job
celery.conf.task_acks_late = True
celery.conf.worker_prefetch_multiplier = 1
celery.conf.task_default_queue = _settings.DELETED_PRODUCT_QUEUE
celery.conf.broker_transport_options = {"visibility_timeout": 3600}

# === 测试/CI：任务在本进程直接执行，避免等待外部 worker ===
_TESTING = (
    bool(os.getenv("PYTEST_CURRENT_TEST"))
    or os.getenv("CELERY_ALWAYS_EAGER") == "1"
    or _settings.CELERY_ALWAYS_EAGER
)
if _TESTING:
    celery.conf.task_always_eager = True
    celery.conf.task_eager_propagates = True


# worker 进程内的插件实例（注册队列处理器）
_plugin = None


@worker_process_init.connect
def _on_worker_process_init(**_):
    global _plugin
    from variant_hide.core.logging import setup_logging
    from variant_hide.events.bus import EventBus
    from variant_hide.plugin import VariantHidePlugin

    setup_logging(_settings.LOG_LEVEL, json=_settings.JSON_LOG)
    _plugin = VariantHidePlugin.from_settings(EventBus())
    _plugin.start()
    log.info("worker process ready: queue=%s", _settings.DELETED_PRODUCT_QUEUE)


@worker_process_shutdown.connect
def _on_worker_process_shutdown(**_):
    global _plugin
    if _plugin is not None:
        _plugin.stop()
        _plugin = None
