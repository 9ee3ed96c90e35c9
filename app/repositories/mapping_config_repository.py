"""
app/repositories/mapping_config_repository.py

Persistence helpers for saved column mappings.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.mapping_config import MappingConfig


class MappingConfigRepository:
    """
    Repository for saved mappings scoped by user and data source.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_active(
        self,
        *,
        user_id: str,
        source: str,
        name: str | None = None,
    ) -> MappingConfig | None:
        """
        Return the named active mapping, or the most recently updated one.
        """

        stmt = select(MappingConfig).where(
            MappingConfig.is_active.is_(True),
            MappingConfig.user_id == user_id,
            MappingConfig.source == source,
        )
        if name:
            stmt = stmt.where(MappingConfig.name == name.strip())
        stmt = stmt.order_by(MappingConfig.updated_at.desc())
        return self._session.execute(stmt).scalars().first()

    def save(
        self,
        *,
        user_id: str,
        source: str,
        name: str,
        field_mapping: dict[str, str],
        alias_overrides: dict[str, list[str]] | None = None,
    ) -> MappingConfig:
        """
        Insert or update the mapping keyed by (user_id, source, name).

        Flushes but does not commit; the caller owns the transaction.
        """

        normalized_name = name.strip()
        stmt = select(MappingConfig).where(
            MappingConfig.user_id == user_id,
            MappingConfig.source == source,
            MappingConfig.name == normalized_name,
        )
        existing = self._session.execute(stmt).scalars().first()

        if existing is None:
            existing = MappingConfig(
                user_id=user_id,
                source=source,
                name=normalized_name,
                field_mapping_json=field_mapping,
                alias_overrides_json=alias_overrides,
                is_active=True,
            )
            self._session.add(existing)
        else:
            existing.field_mapping_json = field_mapping
            existing.alias_overrides_json = alias_overrides
            existing.is_active = True

        self._session.flush()
        return existing
