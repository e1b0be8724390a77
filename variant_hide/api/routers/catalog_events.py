# variant_hide/api/routers/catalog_events.py
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from variant_hide.api.schemas import (
    AcceptedOut,
    ContextIn,
    EnqueuedOut,
    ProductEventIn,
    ProductVariantEventIn,
    SyncVariantOut,
)
from variant_hide.domain.events import ProductEvent, ProductVariantEvent
from variant_hide.events.bus import EventBus
from variant_hide.plugin import VariantHidePlugin

log = logging.getLogger("variant_hide.api")

router = APIRouter(tags=["catalog-events"])


def _bus(request: Request) -> EventBus:
    return request.app.state.bus


def _plugin(request: Request) -> VariantHidePlugin:
    plugin = getattr(request.app.state, "plugin", None)
    if plugin is None or not plugin.started:
        raise HTTPException(status_code=503, detail="PLUGIN_NOT_STARTED")
    return plugin


# ---- 事件入口（宿主 webhook） ----
@router.post("/events/product-variants", status_code=status.HTTP_202_ACCEPTED, response_model=AcceptedOut)
async def product_variant_event(body: ProductVariantEventIn, request: Request) -> AcceptedOut:
    ctx = body.ctx.restore()
    await _bus(request).publish(ProductVariantEvent(type=body.type, ctx=ctx, variant_ids=list(body.variant_ids)))
    return AcceptedOut(trace_id=ctx.trace_id)


@router.post("/events/products", status_code=status.HTTP_202_ACCEPTED, response_model=AcceptedOut)
async def product_event(body: ProductEventIn, request: Request) -> AcceptedOut:
    ctx = body.ctx.restore()
    await _bus(request).publish(ProductEvent(type=body.type, ctx=ctx, product_id=body.product_id))
    return AcceptedOut(trace_id=ctx.trace_id)


# ---- 运维入口 ----
@router.post(
    "/products/{product_id}/reconcile",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=EnqueuedOut,
)
async def reconcile_product(product_id: int, body: ContextIn, request: Request) -> EnqueuedOut:
    """手动重投删除对账（失败的对账不会自动重试）"""
    ctx = body.ctx.restore()
    task_id = _plugin(request).enqueue_deleted_product(ctx, product_id)
    log.info("manual reconcile queued: product=%s task=%s", product_id, task_id)
    return EnqueuedOut(product_id=product_id, task_id=task_id, trace_id=ctx.trace_id)


@router.post("/products/{product_id}/sync-variant", response_model=SyncVariantOut)
async def sync_product_variant(product_id: int, body: ContextIn, request: Request) -> SyncVariantOut:
    variant_id = await _plugin(request).auto_update_variant(body.ctx.restore(), product_id)
    return SyncVariantOut(product_id=product_id, variant_id=variant_id)
