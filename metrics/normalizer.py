"""
metrics/normalizer.py

Raw CSV row -> typed domain record.

Fallback rules
--------------
- Empty values: absent keys, None, "", "N/A" and "NULL" (any case) are one
  equivalence class, see ``is_empty_value``.
- Numbers: currency symbols, thousands separators, whitespace and percent
  signs are stripped before parsing; empty or unparseable input becomes 0.
- Identifiers: emptiness is preserved as "" and summarised in the record's
  ``has_identifier`` flag.
- Dates: ISO-8601 and common locale formats are accepted; offsets are
  dropped without conversion. Unparseable input becomes the fallback
  timestamp and sets ``date_is_fallback``.

Every defaulted non-empty value is reported as a FieldIssue so the upload
pipeline can count rows with formatting problems.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

from metrics.records import DomainRecord
from metrics.schema import FieldKind, FieldSpec, RecordSchema

EMPTY_TOKENS: frozenset[str] = frozenset({"", "n/a", "null"})

_NUMBER_NOISE = re.compile(r"(?i)(?:inr|rs\.?|usd|[\s,%₹$€£¥'])")
_TRUE_TOKENS: frozenset[str] = frozenset({"yes", "true", "1", "y"})

_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
)


def is_empty_value(value: Any) -> bool:
    """
    True for None and for strings in the empty equivalence class.
    """

    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().casefold() in EMPTY_TOKENS
    return False


def clean_text(value: Any) -> str:
    if is_empty_value(value):
        return ""
    return str(value).strip()


def parse_number(value: Any) -> float | None:
    """
    Parse a formatted numeric cell; None when empty or unparseable.
    """

    if is_empty_value(value):
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NUMBER_NOISE.sub("", str(value))
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def parse_date(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 or locale date string into a naive datetime.

    Timezone offsets are discarded as written: the wall-clock value of the
    source is kept as the calendar label.
    """

    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if is_empty_value(value):
        return None

    text = str(value).strip()
    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso_text).replace(tzinfo=None)
    except ValueError:
        pass

    for pattern in _DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern).replace(tzinfo=None)
        except ValueError:
            continue
    return None


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return clean_text(value).casefold() in _TRUE_TOKENS


@dataclass(frozen=True)
class FieldIssue:
    """
    A non-empty raw value that had to be replaced by a fallback.
    """

    field: str
    raw_value: str
    message: str


@dataclass(frozen=True)
class NormalizedRow:
    record: DomainRecord
    issues: tuple[FieldIssue, ...] = field(default_factory=tuple)


def convert_field(spec: FieldSpec, raw_value: Any) -> tuple[Any, FieldIssue | None]:
    """
    Convert one raw cell according to its field kind.

    Dates that cannot be parsed come back as None; the caller applies the
    fallback timestamp.
    """

    empty = is_empty_value(raw_value)

    if spec.kind in (FieldKind.TEXT, FieldKind.IDENTIFIER):
        text = clean_text(raw_value)
        if not text and spec.default is not None:
            return spec.default, None
        return text, None

    if spec.kind is FieldKind.BOOLEAN:
        return parse_bool(raw_value), None

    if spec.kind is FieldKind.DATE:
        parsed = parse_date(raw_value)
        if parsed is None and not empty:
            return None, FieldIssue(spec.name, str(raw_value), "Unparseable date; fallback applied.")
        return parsed, None

    number = parse_number(raw_value)
    issue = None
    if number is None:
        if not empty:
            issue = FieldIssue(spec.name, str(raw_value), "Unparseable number; defaulted to 0.")
        number = 0.0
    if spec.kind is FieldKind.INTEGER:
        return int(number), issue
    return number, issue


class RecordNormalizer:
    """
    Converts raw rows of one data source into domain records.

    The fallback clock is injectable so tests can pin "now".
    """

    def __init__(
        self,
        schema: RecordSchema,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._schema = schema
        self._clock = clock or datetime.now

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    def normalize_row(
        self,
        raw_row: Mapping[str, Any],
        column_mapping: Mapping[str, str] | None = None,
    ) -> NormalizedRow:
        """
        Normalize one raw row; *column_mapping* maps canonical field -> raw header.

        A missing or empty mapping means the raw row is keyed by the schema's
        canonical headers. Fields the mapping omits take their defaults.
        """

        mapping = dict(column_mapping) if column_mapping else self._schema.default_mapping()
        values: dict[str, Any] = {}
        issues: list[FieldIssue] = []
        date_is_fallback = False

        for spec in self._schema.fields:
            header = mapping.get(spec.name)
            raw_value = raw_row.get(header) if header is not None else None
            value, issue = convert_field(spec, raw_value)
            if issue is not None:
                issues.append(issue)
            if spec.kind is FieldKind.DATE and value is None:
                value = self._clock().replace(tzinfo=None)
                if spec.name == self._schema.date_field:
                    date_is_fallback = True
            values[spec.name] = value

        identifier = self._schema.identifier_field
        has_identifier = bool(values[identifier]) if identifier else True
        record = self._schema.record_type(
            **values,
            has_identifier=has_identifier,
            date_is_fallback=date_is_fallback,
        )
        return NormalizedRow(record=record, issues=tuple(issues))


def normalize(
    raw_row: Mapping[str, Any],
    column_mapping: Mapping[str, str] | None,
    schema: RecordSchema,
    *,
    now: datetime | None = None,
) -> DomainRecord:
    """
    Normalize one raw row into the domain record type of *schema*.
    """

    clock = (lambda: now) if now is not None else None
    return RecordNormalizer(schema, clock=clock).normalize_row(raw_row, column_mapping).record
