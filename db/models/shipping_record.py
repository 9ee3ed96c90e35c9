"""
db/models/shipping_record.py

Persisted shipment rows. Rows without a tracking id are stored but carry
has_identifier = false and are left out of dashboard metrics.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, UploadOwnedMixin


class ShippingRecordRow(Base, UploadOwnedMixin):
    __tablename__ = "shipping_records"

    ship_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    order_id: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tracking_id: Mapped[str] = mapped_column(Text, nullable=False, default="")
    channel: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="")
    channel_sku: Mapped[str] = mapped_column(Text, nullable=False, default="")
    master_sku: Mapped[str] = mapped_column(Text, nullable=False, default="")
    product_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    product_category: Mapped[str] = mapped_column(Text, nullable=False, default="")
    product_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    customer_email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    customer_mobile: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address_line1: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address_line2: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address_city: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address_state: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address_pincode: Mapped[str] = mapped_column(Text, nullable=False, default="")
    payment_method: Mapped[str] = mapped_column(Text, nullable=False, default="")
    product_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    order_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    charged_weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    courier_company: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pickup_location_id: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cod_payable_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    remitted_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cod_charges: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    shipping_charges: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    freight_total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    pickup_pincode: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_shipping_records_upload_id", "upload_id"),
        Index("ix_shipping_records_user_ship_date", "user_id", "ship_date"),
        Index("ix_shipping_records_user_status", "user_id", "status"),
        Index("ix_shipping_records_user_courier", "user_id", "courier_company"),
    )
