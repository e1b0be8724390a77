# variant_hide/metrics.py
from __future__ import annotations

import os

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    multiprocess,
)

# 业务指标（Celery worker 多进程时需在进程启动前设置 PROMETHEUS_MULTIPROC_DIR）
RECONCILE_RUNS = Counter(
    "variant_hide_reconcile_runs_total",
    "Product deletion reconcile runs",
    ["outcome"],  # ok / skipped / error
)
ORDERS_RECONCILED = Counter(
    "variant_hide_orders_reconciled_total",
    "Orders touched by product deletion reconcile",
    ["result"],  # cancelled / refunded / lines_removed / failed / skipped
)
SHIPPING_REFUNDS = Counter(
    "variant_hide_shipping_refunds_total",
    "Shipping refunds",
    ["result"],  # created / duplicate / no_payment
)
VARIANTS_SYNCED = Counter(
    "variant_hide_variants_synced_total",
    "Variant sync outcomes",
    ["result"],  # ok / missing_variant / missing_product
)
JOBS = Counter(
    "variant_hide_jobs_total",
    "Queue jobs processed",
    ["queue", "status"],  # OK / ERROR / NO_PROCESSOR
)
LAT = Histogram(
    "variant_hide_reconcile_seconds",
    "Product deletion reconcile latency (seconds)",
)

router = APIRouter()


@router.get("/metrics")
def metrics() -> Response:
    """
    单进程：直接导出默认 REGISTRY；
    多进程：临时 CollectorRegistry + MultiProcessCollector 合并各分片。
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        payload = generate_latest(registry)
    else:
        payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
