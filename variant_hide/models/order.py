from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from variant_hide.db.base import Base

if TYPE_CHECKING:
    from variant_hide.models.catalog import ProductVariant


class Channel(Base):
    __tablename__ = "channel"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


# 订单 ↔ 渠道（多对多，宿主 join 表）
order_channels = Table(
    "order_channels_channel",
    Base.metadata,
    Column("orderId", ForeignKey("order.id", ondelete="CASCADE"), primary_key=True),
    Column("channelId", ForeignKey("channel.id", ondelete="CASCADE"), primary_key=True),
)


class Order(Base):
    """
    订单主档（宿主表）
    - state 直接存宿主状态机名称（Created / AddingItems / PaymentSettled / Cancelled ...）
    - 金额一律为最小货币单位（分）
    """

    __tablename__ = "order"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    state: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    shipping_with_tax: Mapped[int] = mapped_column("shippingWithTax", Integer, nullable=False, default=0)
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

    channels: Mapped[List[Channel]] = relationship(secondary=order_channels)
    lines: Mapped[List["OrderLine"]] = relationship(
        back_populates="order",
        order_by="OrderLine.id",
        cascade="all, delete-orphan",
    )
    # 第一条 payment 视为主支付
    payments: Mapped[List["Payment"]] = relationship(
        back_populates="order",
        order_by="Payment.id",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} code={self.code!r} state={self.state}>"


class OrderLine(Base):
    __tablename__ = "order_line"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column("orderId", ForeignKey("order.id"), nullable=False, index=True)
    product_variant_id: Mapped[int] = mapped_column(
        "productVariantId", ForeignKey("product_variant.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    order: Mapped[Order] = relationship(back_populates="lines")
    product_variant: Mapped["ProductVariant"] = relationship()

    def __repr__(self) -> str:
        return f"<OrderLine id={self.id} order_id={self.order_id} variant={self.product_variant_id} qty={self.quantity}>"


class Payment(Base):
    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column("orderId", ForeignKey("order.id"), nullable=False, index=True)
    method: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    state: Mapped[str] = mapped_column(String(64), nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column("transactionId", String(255), nullable=True)

    order: Mapped[Order] = relationship(back_populates="payments")
    refunds: Mapped[List["Refund"]] = relationship(back_populates="payment", order_by="Refund.id")


class Refund(Base):
    """
    退款记录（宿主表）
    - transaction_id 作为关联键：运费退款固定写 str(order.id)，据此去重
    - metadata 列名与 Declarative 保留属性冲突，属性名用 meta
    """

    __tablename__ = "refund"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_id: Mapped[int] = mapped_column("paymentId", ForeignKey("payment.id"), nullable=False, index=True)
    items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shipping: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    adjustment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    method: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    state: Mapped[str] = mapped_column(String(64), nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column(
        "transactionId", String(255), nullable=True, index=True
    )
    meta: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    payment: Mapped[Payment] = relationship(back_populates="refunds")

    def __repr__(self) -> str:
        return (
            f"<Refund id={self.id} payment_id={self.payment_id} total={self.total} "
            f"state={self.state} txn={self.transaction_id!r}>"
        )
