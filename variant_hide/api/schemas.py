# variant_hide/api/schemas.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from variant_hide.domain.context import SerializedRequestContext
from variant_hide.domain.events import EventType


class ProductVariantEventIn(BaseModel):
    type: EventType
    variant_ids: List[int] = Field(..., min_length=1)
    ctx: SerializedRequestContext


class ProductEventIn(BaseModel):
    type: EventType
    product_id: int = Field(..., ge=1)
    ctx: SerializedRequestContext


class ContextIn(BaseModel):
    ctx: SerializedRequestContext


class AcceptedOut(BaseModel):
    accepted: bool = True
    trace_id: str


class EnqueuedOut(BaseModel):
    product_id: int
    task_id: str
    trace_id: str


class SyncVariantOut(BaseModel):
    product_id: int
    # 未找到商品 / 商品无变体 → None
    variant_id: Optional[int] = None
