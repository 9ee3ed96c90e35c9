"""
app/services/export_service.py

CSV export of stored records and blank upload templates.

Exports use the canonical headers of each source so a downloaded file can
be uploaded again without a manual mapping.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.config import get_export_settings
from db.repositories.record_repository import RecordRepository
from metrics.export import record_to_row, to_delimited_text
from metrics.filters import FilterSpec
from metrics.schema import DataSource, get_schema
from metrics.template import template_csv, template_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportResult:
    text: str
    row_count: int
    filename: str
    truncated: bool = False


class ExportService:
    """
    Renders a user's records of one source as CSV text.
    """

    def __init__(
        self,
        *,
        max_rows: int,
        record_repository_factory: Callable[[Session, DataSource], Any] = RecordRepository,
    ) -> None:
        self._max_rows = max(1, max_rows)
        self._record_repository_factory = record_repository_factory

    def export(
        self,
        db: Session,
        *,
        source: DataSource | str,
        user_id: str,
        spec: FilterSpec | None = None,
        upload_id: uuid.UUID | None = None,
    ) -> ExportResult:
        source = DataSource(source)
        schema = get_schema(source)
        repository = self._record_repository_factory(db, source)

        # One extra row tells us whether the cap cut anything off.
        records = repository.query(
            user_id=user_id,
            spec=spec,
            upload_id=upload_id,
            limit=self._max_rows + 1,
        )
        truncated = len(records) > self._max_rows
        if truncated:
            logger.warning(
                "Export truncated source=%s user_id=%s max_rows=%d",
                source.value,
                user_id,
                self._max_rows,
            )
            records = records[: self._max_rows]

        rows = [record_to_row(record, schema) for record in records]
        text = to_delimited_text(rows, exclude=())
        if not rows:
            # Header-only file, so an empty export is still a valid template.
            text = to_delimited_text([{header: None for header in schema.headers}], exclude=())
            text = text.split("\r\n", 1)[0] + "\r\n"

        suffix = f"_{upload_id}" if upload_id is not None else ""
        return ExportResult(
            text=text,
            row_count=len(rows),
            filename=f"adpulse_{source.value}{suffix}_export.csv",
            truncated=truncated,
        )

    def template(self, source: DataSource | str) -> ExportResult:
        text = template_csv(source)
        return ExportResult(
            text=text,
            row_count=max(0, text.count("\r\n") - 1),
            filename=template_filename(source),
        )


@lru_cache(maxsize=1)
def get_export_service() -> ExportService:
    return ExportService(max_rows=get_export_settings().max_rows)
