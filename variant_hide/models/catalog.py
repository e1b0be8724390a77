from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from variant_hide.db.base import Base

# 宿主在 Product 上注册的自定义字段（catalog schema 配置面，不参与对账）
CUSTOM_PRODUCT_FIELDS = [
    {
        "name": "weightInKg",
        "type": "float",
        "label": [{"languageCode": "en", "value": "Weight (kg)"}],
    },
]


class Asset(Base):
    __tablename__ = "asset"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    preview: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Asset id={self.id} name={self.name!r}>"


class Product(Base):
    """
    商品主档（宿主表，列名保持与现库一致：camelCase）
    - deleted_at 非空即软删除；软删除后仍可读，供删除对账使用
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        "deletedAt", DateTime(timezone=True), nullable=True
    )
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    featured_asset_id: Mapped[Optional[int]] = mapped_column(
        "featuredAssetId", ForeignKey("asset.id"), nullable=True
    )

    # 自定义字段 weightInKg
    weight_in_kg: Mapped[Optional[float]] = mapped_column(
        "customFieldsWeightinkg", Float, nullable=True
    )

    translations: Mapped[List["ProductTranslation"]] = relationship(
        back_populates="product",
        order_by="ProductTranslation.id",
        cascade="all, delete-orphan",
    )
    assets: Mapped[List["ProductAsset"]] = relationship(
        back_populates="product",
        order_by="ProductAsset.position",
        cascade="all, delete-orphan",
    )
    featured_asset: Mapped[Optional[Asset]] = relationship(foreign_keys=[featured_asset_id])
    variants: Mapped[List["ProductVariant"]] = relationship(
        back_populates="product",
        order_by="ProductVariant.id",
    )

    def name_for(self, language_code: Optional[str] = None) -> str:
        """当前语言的名称；没有对应语言则回退第一条翻译。"""
        if not self.translations:
            return ""
        if language_code:
            for t in self.translations:
                if t.language_code == language_code:
                    return t.name
        return self.translations[0].name

    def __repr__(self) -> str:
        return f"<Product id={self.id} enabled={self.enabled} deleted_at={self.deleted_at}>"


class ProductTranslation(Base):
    __tablename__ = "product_translation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_id: Mapped[int] = mapped_column("baseId", ForeignKey("product.id"), nullable=False, index=True)
    language_code: Mapped[str] = mapped_column("languageCode", String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    product: Mapped[Product] = relationship(back_populates="translations")


class ProductAsset(Base):
    __tablename__ = "product_asset"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column("productId", ForeignKey("product.id"), nullable=False, index=True)
    asset_id: Mapped[int] = mapped_column("assetId", ForeignKey("asset.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped[Product] = relationship(back_populates="assets")


class ProductVariant(Base):
    """商品变体：强引用所属 Product；名称/SKU/启用/图片由 VariantSyncService 与 Product 保持一致"""

    __tablename__ = "product_variant"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column("productId", ForeignKey("product.id"), nullable=False, index=True)
    sku: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    featured_asset_id: Mapped[Optional[int]] = mapped_column(
        "featuredAssetId", ForeignKey("asset.id"), nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        "deletedAt", DateTime(timezone=True), nullable=True
    )

    product: Mapped[Product] = relationship(back_populates="variants")
    translations: Mapped[List["ProductVariantTranslation"]] = relationship(
        back_populates="variant",
        order_by="ProductVariantTranslation.id",
        cascade="all, delete-orphan",
    )
    assets: Mapped[List["ProductVariantAsset"]] = relationship(
        back_populates="variant",
        order_by="ProductVariantAsset.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} product_id={self.product_id} sku={self.sku!r}>"


class ProductVariantTranslation(Base):
    __tablename__ = "product_variant_translation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_id: Mapped[int] = mapped_column(
        "baseId", ForeignKey("product_variant.id"), nullable=False, index=True
    )
    language_code: Mapped[str] = mapped_column("languageCode", String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    variant: Mapped[ProductVariant] = relationship(back_populates="translations")


class ProductVariantAsset(Base):
    __tablename__ = "product_variant_asset"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_variant_id: Mapped[int] = mapped_column(
        "productVariantId", ForeignKey("product_variant.id"), nullable=False, index=True
    )
    asset_id: Mapped[int] = mapped_column("assetId", ForeignKey("asset.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    variant: Mapped[ProductVariant] = relationship(back_populates="assets")
