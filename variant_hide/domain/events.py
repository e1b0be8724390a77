# variant_hide/domain/events.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from variant_hide.domain.context import RequestContext


class EventType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class ProductVariantEvent:
    """一次批量变体变更（entity 为变体 id 列表）"""

    type: EventType
    ctx: RequestContext
    variant_ids: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class ProductEvent:
    type: EventType
    ctx: RequestContext
    product_id: int
