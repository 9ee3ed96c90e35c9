"""
db/repositories/record_repository.py

Read and write access to the three record tables.

Domain records are converted to ORM rows on insert and back on read; the
storage id, upload id, owner and row position stay on the ORM side.
"""

from __future__ import annotations

import uuid
from datetime import datetime, time, timedelta
from typing import Any, Mapping, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.base import Base
from db.models.ad_record import AdRecordRow
from db.models.commerce_order import CommerceOrderRow
from db.models.shipping_record import ShippingRecordRow
from db.repositories.errors import RecordStoreUnavailableError
from metrics.filters import FilterSpec, validate_spec
from metrics.records import DomainRecord
from metrics.schema import DataSource, RecordSchema, get_schema

_ROW_MODELS: dict[DataSource, type[Base]] = {
    DataSource.ADS: AdRecordRow,
    DataSource.SHIPPING: ShippingRecordRow,
    DataSource.COMMERCE: CommerceOrderRow,
}


def row_model_for(source: DataSource | str) -> type[Base]:
    return _ROW_MODELS[DataSource(source)]


def to_row(
    record: DomainRecord,
    *,
    model: type[Base],
    upload_id: uuid.UUID,
    user_id: str,
    row_number: int,
) -> Base:
    return model(
        **record.business_fields(),
        upload_id=upload_id,
        user_id=user_id,
        row_number=row_number,
        has_identifier=record.has_identifier,
        date_is_fallback=record.date_is_fallback,
    )


def to_domain(row: Any, schema: RecordSchema) -> DomainRecord:
    values = {name: getattr(row, name) for name in schema.field_names}
    return schema.record_type(
        **values,
        has_identifier=row.has_identifier,
        date_is_fallback=row.date_is_fallback,
    )


class RecordRepository:
    """
    Repository for one source's record table.

    Writes flush only; the caller commits or rolls back each batch.
    """

    def __init__(self, session: Session, source: DataSource | str) -> None:
        self._session = session
        self._schema = get_schema(source)
        self._model = row_model_for(source)

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    def bulk_insert(
        self,
        records: Sequence[tuple[int, DomainRecord]],
        *,
        upload_id: uuid.UUID,
        user_id: str,
    ) -> int:
        """
        Stage ``(row_number, record)`` pairs for insert; returns the count.
        """

        rows = [
            to_row(
                record,
                model=self._model,
                upload_id=upload_id,
                user_id=user_id,
                row_number=row_number,
            )
            for row_number, record in records
        ]
        self._session.add_all(rows)
        self._session.flush()
        return len(rows)

    def query(
        self,
        *,
        user_id: str,
        spec: FilterSpec | None = None,
        upload_id: uuid.UUID | None = None,
        limit: int | None = None,
    ) -> list[DomainRecord]:
        """
        Load records with date range and equality predicates pushed into SQL.

        Results are ordered by record date, then by file position.
        """

        model = self._model
        date_column = getattr(model, self._schema.date_field)
        stmt = select(model).where(model.user_id == user_id)
        if upload_id is not None:
            stmt = stmt.where(model.upload_id == upload_id)

        if spec is not None:
            validate_spec(spec, self._schema.record_type)
            if spec.date_range is not None:
                if spec.date_range.start is not None:
                    stmt = stmt.where(date_column >= datetime.combine(spec.date_range.start, time.min))
                if spec.date_range.end is not None:
                    upper = datetime.combine(spec.date_range.end, time.min) + timedelta(days=1)
                    stmt = stmt.where(date_column < upper)
            for name, value in spec.equals.items():
                stmt = stmt.where(getattr(model, name) == value)

        stmt = stmt.order_by(date_column, model.ingested_at, model.row_number)
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise RecordStoreUnavailableError(
                f"Failed to load {self._schema.source.value} records."
            ) from exc
        return [to_domain(row, self._schema) for row in rows]

    def exists_any(self, *, user_id: str) -> bool:
        """
        True when the user has at least one stored record, ignoring filters.
        """

        stmt = select(self._model.id).where(self._model.user_id == user_id).limit(1)
        try:
            return self._session.execute(stmt).first() is not None
        except SQLAlchemyError as exc:
            raise RecordStoreUnavailableError(
                f"Failed to check {self._schema.source.value} records."
            ) from exc

    def distinct_values(
        self,
        *,
        user_id: str,
        field_name: str,
        equals: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """
        Sorted non-blank values of *field_name*, narrowed by *equals*.
        """

        model = self._model
        column = getattr(model, field_name)
        stmt = select(column).where(model.user_id == user_id, column != "")
        for name, value in (equals or {}).items():
            stmt = stmt.where(getattr(model, name) == value)
        stmt = stmt.distinct().order_by(column)
        try:
            return list(self._session.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            raise RecordStoreUnavailableError(
                f"Failed to load distinct {field_name} values."
            ) from exc

    def delete_by_upload(self, upload_id: uuid.UUID, *, batch_size: int) -> int:
        """
        Delete every record of *upload_id* in bounded batches.

        Runs inside the caller's transaction; returns the number deleted.
        """

        model = self._model
        deleted = 0
        while True:
            ids = list(
                self._session.execute(
                    select(model.id).where(model.upload_id == upload_id).limit(batch_size)
                ).scalars()
            )
            if not ids:
                return deleted
            self._session.execute(delete(model).where(model.id.in_(ids)))
            deleted += len(ids)
