"""
db/models/mapping_config.py

Saved column mappings, one per user, source and name.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class MappingConfig(Base, TimestampMixin):
    __tablename__ = "mapping_configs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="ads, shipping, commerce",
    )
    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="Human-readable config name",
    )
    field_mapping_json: Mapped[dict[str, str]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Canonical field -> source column overrides",
    )
    alias_overrides_json: Mapped[dict[str, list[str]] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Optional canonical field alias overrides",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("user_id", "source", "name", name="uq_mapping_configs_user_source_name"),
        Index("ix_mapping_configs_user_source_active", "user_id", "source", "is_active"),
    )
