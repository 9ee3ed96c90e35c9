"""
db/models/ad_record.py

Persisted ad-performance rows.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, UploadOwnedMixin


class AdRecordRow(Base, UploadOwnedMixin):
    __tablename__ = "ad_records"

    date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    campaign_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ad_set_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    objective: Mapped[str] = mapped_column(Text, nullable=False, default="")
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ctr: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cpc: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    spend: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    results: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_per_result: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    purchases: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchase_conversion_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    purchase_roas: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("ix_ad_records_upload_id", "upload_id"),
        Index("ix_ad_records_user_date", "user_id", "date"),
        Index("ix_ad_records_user_campaign", "user_id", "campaign_name"),
    )
