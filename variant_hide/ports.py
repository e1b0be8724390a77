# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

from variant_hide.domain.catalog import VariantUpdate
from variant_hide.domain.context import RequestContext
from variant_hide.domain.orders import (
    CancelOrderInput,
    DeletedProduct,
    ImpactedOrder,
    NewRefund,
    OrderSummary,
    RefundOrderInput,
    RefundSummary,
)
from variant_hide.domain.results import Result
from variant_hide.models.catalog import Product, ProductVariant


class CatalogPort(Protocol):
    async def find_product(self, ctx: RequestContext, product_id: int) -> Optional[Product]: ...

    async def find_variant(self, ctx: RequestContext, variant_id: int) -> Optional[ProductVariant]: ...

    async def update_variant(self, ctx: RequestContext, updates: Sequence[VariantUpdate]) -> List[int]: ...


class OrderServicePort(Protocol):
    async def transition_to_state(
        self, ctx: RequestContext, order_id: int, state: str
    ) -> Result[OrderSummary]: ...

    async def remove_item_from_order(
        self, ctx: RequestContext, order_id: int, order_line_id: int
    ) -> Result[OrderSummary]: ...

    async def cancel_order(self, ctx: RequestContext, inp: CancelOrderInput) -> Result[OrderSummary]: ...

    async def refund_order(self, ctx: RequestContext, inp: RefundOrderInput) -> Result[RefundSummary]: ...

    async def settle_refund(
        self, ctx: RequestContext, refund_id: int, transaction_id: str
    ) -> Result[RefundSummary]: ...

    async def add_note_to_order(
        self, ctx: RequestContext, order_id: int, note: str, *, is_public: bool = False
    ) -> Result[OrderSummary]: ...

    async def find_order(self, ctx: RequestContext, order_id: int) -> Optional[OrderSummary]: ...


class ReconcileRepoPort(Protocol):
    async def find_deleted_product(self, product_id: int) -> Optional[DeletedProduct]: ...

    async def find_impacted_orders(
        self, *, channel_id: int, product_id: int, states: Iterable[str]
    ) -> List[ImpactedOrder]: ...


class RefundRepoPort(Protocol):
    async def find_shipping_refund(self, order_id: int) -> Optional[int]: ...

    async def add_refund(self, refund: NewRefund) -> int: ...


class JobQueuePort(Protocol):
    name: str

    def add(self, payload: Mapping[str, Any]) -> str: ...
