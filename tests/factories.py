# tests/factories.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from variant_hide.models import (
    Asset,
    Channel,
    Order,
    OrderLine,
    Payment,
    Product,
    ProductAsset,
    ProductTranslation,
    ProductVariant,
)


async def make_channel(db: AsyncSession, code: str = "default", token: str = "tok-default") -> Channel:
    ch = Channel(code=code, token=token)
    db.add(ch)
    await db.flush()
    return ch


async def make_asset(db: AsyncSession, name: str = "front.jpg") -> Asset:
    a = Asset(name=name, preview=f"/preview/{name}")
    db.add(a)
    await db.flush()
    return a


async def make_product(
    db: AsyncSession,
    name: str = "Blue Shirt",
    *,
    language_code: str = "en",
    extra_translations: Iterable[Tuple[str, str]] = (),
    enabled: bool = True,
    asset_ids: Sequence[int] = (),
    featured_asset_id: Optional[int] = None,
    variants: int = 1,
    deleted: bool = False,
) -> Product:
    p = Product(enabled=enabled, featured_asset_id=featured_asset_id)
    p.translations.append(ProductTranslation(language_code=language_code, name=name, slug=name.lower()))
    for lang, tr_name in extra_translations:
        p.translations.append(ProductTranslation(language_code=lang, name=tr_name, slug=tr_name.lower()))
    for pos, aid in enumerate(asset_ids):
        p.assets.append(ProductAsset(asset_id=aid, position=pos))
    for i in range(variants):
        p.variants.append(ProductVariant(sku=f"tmp-{i}", enabled=False))
    if deleted:
        p.deleted_at = datetime.now(timezone.utc)
    db.add(p)
    await db.flush()
    return p


async def soft_delete(db: AsyncSession, product: Product) -> None:
    product.deleted_at = datetime.now(timezone.utc)
    await db.flush()


async def make_order(
    db: AsyncSession,
    *,
    channel: Channel,
    code: str,
    state: str,
    lines: Sequence[Tuple[ProductVariant, int]],
    shipping_with_tax: int = 0,
    with_payment: bool = True,
    payment_method: str = "standard-payment",
) -> Order:
    o = Order(code=code, state=state, shipping_with_tax=shipping_with_tax)
    o.channels.append(channel)
    for variant, qty in lines:
        o.lines.append(OrderLine(product_variant_id=variant.id, quantity=qty))
    db.add(o)
    await db.flush()
    if with_payment:
        db.add(Payment(order_id=o.id, method=payment_method, amount=1000, state="Settled"))
        await db.flush()
    return o
