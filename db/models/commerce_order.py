"""
db/models/commerce_order.py

Persisted Shopify order lines.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, UploadOwnedMixin


class CommerceOrderRow(Base, UploadOwnedMixin):
    __tablename__ = "commerce_orders"

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    order_id: Mapped[str] = mapped_column(Text, nullable=False, default="")
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    financial_status: Mapped[str] = mapped_column(Text, nullable=False, default="")
    paid_at: Mapped[str] = mapped_column(Text, nullable=False, default="")
    fulfillment_status: Mapped[str] = mapped_column(Text, nullable=False, default="")
    fulfilled_at: Mapped[str] = mapped_column(Text, nullable=False, default="")
    accepts_marketing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="INR")
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    shipping: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    taxes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount_code: Mapped[str] = mapped_column(Text, nullable=False, default="")
    discount_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    shipping_method: Mapped[str] = mapped_column(Text, nullable=False, default="")
    lineitem_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lineitem_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    lineitem_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    lineitem_sku: Mapped[str] = mapped_column(Text, nullable=False, default="")
    lineitem_discount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    billing_province: Mapped[str] = mapped_column(Text, nullable=False, default="")
    shipping_city: Mapped[str] = mapped_column(Text, nullable=False, default="")
    shipping_province: Mapped[str] = mapped_column(Text, nullable=False, default="")
    shipping_country: Mapped[str] = mapped_column(Text, nullable=False, default="")
    payment_method: Mapped[str] = mapped_column(Text, nullable=False, default="")
    refunded_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(Text, nullable=False, default="")
    vendor: Mapped[str] = mapped_column(Text, nullable=False, default="")
    risk_level: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cancelled_at: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_commerce_orders_upload_id", "upload_id"),
        Index("ix_commerce_orders_user_created_at", "user_id", "created_at"),
        Index("ix_commerce_orders_user_fulfillment", "user_id", "fulfillment_status"),
    )
