# variant_hide/services/catalog_service.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from variant_hide.domain.catalog import VariantUpdate
from variant_hide.domain.context import RequestContext
from variant_hide.models.catalog import (
    Product,
    ProductVariant,
    ProductVariantAsset,
    ProductVariantTranslation,
)

log = logging.getLogger("variant_hide.catalog")


def _product_options():
    return (
        selectinload(Product.translations),
        selectinload(Product.assets),
        selectinload(Product.featured_asset),
        selectinload(Product.variants),
    )


class SqlCatalogService:
    """
    宿主 catalog 表的读写（Product / ProductVariant 及其翻译、图片）。

    - find_* 都排除软删除行
    - update_variant 只 flush，不 commit；事务边界由调用方（plugin）掌握
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_product(self, ctx: RequestContext, product_id: int) -> Optional[Product]:
        stmt = (
            select(Product)
            .options(*_product_options())
            .where(Product.id == product_id)
            .where(Product.deleted_at.is_(None))
        )
        res = await self.session.execute(stmt)
        return res.scalars().first()

    async def find_variant(self, ctx: RequestContext, variant_id: int) -> Optional[ProductVariant]:
        stmt = (
            select(ProductVariant)
            .options(
                selectinload(ProductVariant.translations),
                selectinload(ProductVariant.assets),
                selectinload(ProductVariant.product).options(*_product_options()),
            )
            .where(ProductVariant.id == variant_id)
            .where(ProductVariant.deleted_at.is_(None))
        )
        res = await self.session.execute(stmt)
        return res.scalars().first()

    async def update_variant(self, ctx: RequestContext, updates: Sequence[VariantUpdate]) -> List[int]:
        updated: List[int] = []
        for upd in updates:
            variant = await self.find_variant(ctx, upd.id)
            if variant is None:
                log.warning("update_variant: variant %s not found, skipped", upd.id)
                continue

            # ---- 翻译：按语言 upsert ----
            by_lang = {t.language_code: t for t in variant.translations}
            for lang, name in upd.translations:
                tr = by_lang.get(lang)
                if tr is None:
                    variant.translations.append(ProductVariantTranslation(language_code=lang, name=name))
                else:
                    tr.name = name

            # ---- 图片：整体替换为给定顺序 ----
            current = [a.asset_id for a in variant.assets]
            if current != list(upd.asset_ids):
                variant.assets.clear()
                for pos, asset_id in enumerate(upd.asset_ids):
                    variant.assets.append(ProductVariantAsset(asset_id=asset_id, position=pos))

            variant.sku = upd.sku
            variant.enabled = upd.enabled
            variant.featured_asset_id = upd.featured_asset_id
            updated.append(variant.id)

        await self.session.flush()
        return updated


def product_asset_ids(product: Product) -> List[int]:
    """商品图片 id（按 position 排序）"""
    return [a.asset_id for a in sorted(product.assets, key=lambda pa: (pa.position, pa.id))]


__all__ = ["SqlCatalogService", "product_asset_ids"]
