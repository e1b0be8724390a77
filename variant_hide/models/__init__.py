"""
统一导出 ORM 模型（宿主平台的 catalog / order 表）。
"""

from variant_hide.models.catalog import (
    CUSTOM_PRODUCT_FIELDS,
    Asset,
    Product,
    ProductAsset,
    ProductTranslation,
    ProductVariant,
    ProductVariantAsset,
    ProductVariantTranslation,
)
from variant_hide.models.order import Channel, Order, OrderLine, Payment, Refund, order_channels

__all__ = [
    "CUSTOM_PRODUCT_FIELDS",
    "Asset",
    "Product",
    "ProductAsset",
    "ProductTranslation",
    "ProductVariant",
    "ProductVariantAsset",
    "ProductVariantTranslation",
    "Channel",
    "Order",
    "OrderLine",
    "Payment",
    "Refund",
    "order_channels",
]
