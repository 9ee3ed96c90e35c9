"""
metrics/export.py

Delimited-text rendering of record collections.

Columns are the union of all row keys in first-seen order, minus internal
storage fields. Quoting follows RFC 4180 via ``csv.QUOTE_MINIMAL``: cells
containing the delimiter, a quote or a line break are quoted and inner
quotes doubled. Missing and None values render as empty cells.
"""

from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Sequence

from metrics.records import DomainRecord
from metrics.schema import FieldKind, RecordSchema

INTERNAL_FIELDS: tuple[str, ...] = ("id", "upload_id", "user_id")


def collect_fields(rows: Sequence[Mapping[str, Any]], *, exclude: Iterable[str] = ()) -> list[str]:
    """
    Union all keys across rows while preserving first-seen insertion order.
    """

    excluded = set(exclude)
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            if key not in excluded:
                seen.setdefault(key, None)
    return list(seen)


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return str(value)


def to_delimited_text(
    rows: Sequence[Mapping[str, Any]],
    *,
    exclude: Iterable[str] = INTERNAL_FIELDS,
    delimiter: str = ",",
) -> str:
    """
    Render *rows* as CSV text with a header line and CRLF line endings.
    """

    columns = collect_fields(rows, exclude=exclude)
    if not columns:
        return ""

    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=columns,
        delimiter=delimiter,
        extrasaction="ignore",
        restval="",
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\r\n",
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({key: format_cell(row.get(key)) for key in columns})
    return buffer.getvalue()


def record_to_row(record: DomainRecord, schema: RecordSchema) -> dict[str, Any]:
    """
    Render one record under its canonical CSV headers.

    Derived flags are not written; they are recomputed on re-import.
    """

    row: dict[str, Any] = {}
    for spec in schema.fields:
        value = getattr(record, spec.name)
        if spec.kind is FieldKind.BOOLEAN:
            value = "yes" if value else "no"
        row[spec.header] = value
    return row


def records_to_delimited_text(records: Sequence[DomainRecord], schema: RecordSchema) -> str:
    return to_delimited_text([record_to_row(record, schema) for record in records], exclude=())
