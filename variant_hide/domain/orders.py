# variant_hide/domain/orders.py
"""
对账流程里流转的快照值对象。

ORM 对象不跨服务边界：查询结果在 repo 里立即转成这些 dataclass，
之后订单状态由宿主 API 推进，本地快照保持“查询当时”的状态（对账判断依赖这一点）。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DeletedProduct:
    id: int
    name: str


@dataclass(frozen=True)
class AffectedLine:
    id: int
    product_variant_id: int
    quantity: int


@dataclass(frozen=True)
class ImpactedOrder:
    """查询当时的订单快照：只带被删商品的行"""

    id: int
    code: str
    state: str
    lines: List[AffectedLine]
    total_line_count: int
    primary_payment_id: Optional[int] = None


@dataclass(frozen=True)
class OrderSummary:
    """宿主订单 API 返回的订单摘要"""

    id: int
    code: str
    state: str
    line_ids: List[int] = field(default_factory=list)
    shipping_with_tax: int = 0
    payment_ids: List[int] = field(default_factory=list)

    @property
    def primary_payment_id(self) -> Optional[int]:
        return self.payment_ids[0] if self.payment_ids else None


@dataclass(frozen=True)
class RefundSummary:
    id: int
    state: str
    total: int = 0


@dataclass(frozen=True)
class CancelledOrder:
    """运费退款候选（重新加载后确认为 Cancelled 的订单）"""

    id: int
    code: str
    shipping_with_tax: int
    primary_payment_id: Optional[int]


@dataclass(frozen=True)
class OrderLineQuantity:
    order_line_id: int
    quantity: int


@dataclass(frozen=True)
class CancelOrderInput:
    order_id: int
    lines: List[OrderLineQuantity]
    reason: str


@dataclass(frozen=True)
class RefundOrderInput:
    order_id: int
    lines: List[OrderLineQuantity]
    reason: str
    payment_id: int
    shipping: int = 0
    adjustment: int = 0


@dataclass(frozen=True)
class NewRefund:
    payment_id: int
    items: int
    shipping: int
    adjustment: int
    total: int
    method: str
    reason: str
    state: str
    transaction_id: str
    meta: Dict[str, Any] = field(default_factory=dict)
