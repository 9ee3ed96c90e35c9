"""
metrics/filters.py

Record selection applied before aggregation.

A FilterSpec holds an optional inclusive date range and conjunctive
equality filters. Dates are compared as ``YYYY-MM-DD`` strings, which is
both the calendar-day truncation and a chronological ordering.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Sequence

from metrics.records import DomainRecord


class FilterSpecError(ValueError):
    """
    Raised when a filter names a field the record type does not have,
    or when a date range is inverted.
    """


def day_key(value: date | datetime | str) -> str:
    """
    Canonical ``YYYY-MM-DD`` form of a date-like value.
    """

    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value).strip()[:10]


@dataclass(frozen=True)
class DateRange:
    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and day_key(self.start) > day_key(self.end):
            raise FilterSpecError("Date range start must not be later than its end.")

    def contains(self, value: date | datetime) -> bool:
        key = day_key(value)
        if self.start is not None and key < day_key(self.start):
            return False
        if self.end is not None and key > day_key(self.end):
            return False
        return True


@dataclass(frozen=True)
class FilterSpec:
    """
    Predicate configuration for one dashboard query.
    """

    date_range: DateRange | None = None
    equals: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.date_range is None and not self.equals

    @classmethod
    def from_params(
        cls,
        *,
        date_from: date | None = None,
        date_to: date | None = None,
        equals: Mapping[str, Any] | None = None,
    ) -> "FilterSpec":
        """
        Build a spec from optional query parameters, dropping empty values.
        """

        date_range = None
        if date_from is not None or date_to is not None:
            date_range = DateRange(start=date_from, end=date_to)
        cleaned = {
            name: value
            for name, value in (equals or {}).items()
            if value is not None and value != ""
        }
        return cls(date_range=date_range, equals=cleaned)


def validate_spec(spec: FilterSpec, record_type: type[DomainRecord]) -> None:
    known = {item.name for item in fields(record_type)}
    unknown = sorted(name for name in spec.equals if name not in known)
    if unknown:
        raise FilterSpecError(
            f"Unknown filter field(s) for {record_type.__name__}: {', '.join(unknown)}."
        )


def matches(record: DomainRecord, spec: FilterSpec, *, date_field: str) -> bool:
    """
    True when *record* satisfies every predicate of *spec*.
    """

    if spec.date_range is not None and not spec.date_range.contains(getattr(record, date_field)):
        return False
    for name, expected in spec.equals.items():
        if not hasattr(record, name):
            raise FilterSpecError(f"Unknown filter field {name!r} for {type(record).__name__}.")
        if getattr(record, name) != expected:
            return False
    return True


def filter_records(
    records: Iterable[DomainRecord],
    spec: FilterSpec,
    *,
    date_field: str,
) -> list[DomainRecord]:
    """
    Return the matching records as a new list in their original order.
    """

    if spec.is_empty:
        return list(records)
    return [record for record in records if matches(record, spec, date_field=date_field)]


def distinct_values(records: Sequence[DomainRecord], field_name: str) -> list[Any]:
    """
    Distinct non-empty values of *field_name* in first-seen order.
    """

    seen: dict[Any, None] = {}
    for record in records:
        value = getattr(record, field_name)
        if value in ("", None):
            continue
        seen.setdefault(value, None)
    return list(seen)
