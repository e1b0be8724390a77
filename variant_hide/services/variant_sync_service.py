# variant_hide/services/variant_sync_service.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from variant_hide.domain.catalog import VariantUpdate, make_sku
from variant_hide.domain.context import RequestContext
from variant_hide.metrics import VARIANTS_SYNCED
from variant_hide.models.catalog import Product
from variant_hide.ports import CatalogPort
from variant_hide.services.catalog_service import product_asset_ids

log = logging.getLogger("variant_hide.variant_sync")


def build_variant_update(ctx: RequestContext, variant_id: int, product: Product) -> VariantUpdate:
    """
    由父商品生成变体更新：
    - 名称 = 商品名（ctx 语言优先），语言码取商品第一条翻译
    - SKU = make_sku(商品名)
    - 启用状态 / 图片 / 主图 与商品一致
    """
    name = product.name_for(ctx.language_code)
    lang = product.translations[0].language_code if product.translations else ctx.language_code
    return VariantUpdate(
        id=variant_id,
        translations=[(lang, name)],
        enabled=bool(product.enabled),
        sku=make_sku(name),
        asset_ids=product_asset_ids(product),
        featured_asset_id=product.featured_asset_id,
    )


class VariantSyncService:
    """新建变体 → 复制父商品的名称 / SKU / 启用状态 / 图片。重复执行结果相同。"""

    def __init__(self, catalog: CatalogPort) -> None:
        self.catalog = catalog

    async def sync(self, ctx: RequestContext, variant_ids: Sequence[int]) -> List[int]:
        synced: List[int] = []
        for vid in variant_ids:
            variant = await self.catalog.find_variant(ctx, vid)
            if variant is None:
                log.error("variant sync: variant %s not found", vid)
                VARIANTS_SYNCED.labels("missing_variant").inc()
                continue

            product = variant.product
            if product is None or product.deleted_at is not None:
                log.error("variant sync: no product for variant %s", vid)
                VARIANTS_SYNCED.labels("missing_product").inc()
                continue

            upd = build_variant_update(ctx, variant.id, product)
            ids = await self.catalog.update_variant(ctx, [upd])
            if not ids:
                log.error("variant sync: variant %s vanished before update", vid)
                VARIANTS_SYNCED.labels("missing_variant").inc()
                continue
            synced.extend(ids)
            VARIANTS_SYNCED.labels("ok").inc()
            log.info("variant sync: variant=%s product=%s sku=%s", vid, product.id, upd.sku)
        return synced

    async def auto_update_variant(self, ctx: RequestContext, product_id: int) -> Optional[int]:
        """按商品 id 同步其第一个变体（按 id 排序）。"""
        product = await self.catalog.find_product(ctx, product_id)
        if product is None:
            log.error("auto update variant: product %s not found", product_id)
            VARIANTS_SYNCED.labels("missing_product").inc()
            return None

        live = [v for v in product.variants if v.deleted_at is None]
        if not live:
            log.error("auto update variant: product %s has no variants", product_id)
            VARIANTS_SYNCED.labels("missing_variant").inc()
            return None

        variant_id = min(v.id for v in live)
        upd = build_variant_update(ctx, variant_id, product)
        ids = await self.catalog.update_variant(ctx, [upd])
        if not ids:
            log.error("auto update variant: variant %s vanished before update", variant_id)
            VARIANTS_SYNCED.labels("missing_variant").inc()
            return None
        VARIANTS_SYNCED.labels("ok").inc()
        return ids[0]
