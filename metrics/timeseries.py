"""
metrics/timeseries.py

Calendar-day bucketing.

Buckets are keyed by the record date formatted as ``YYYY-MM-DD`` with no
timezone conversion, emitted in ascending key order, and never gap-filled.
Records whose date is a normalizer fallback are left out unless
``include_fallback_dates`` is set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from metrics.records import Accessor, DomainRecord, read_value


@dataclass(frozen=True)
class DayBucket:
    date: str
    count: int
    sums: dict[str, float] = field(default_factory=dict)

    def to_dict(self, *, count_name: str = "count") -> dict[str, Any]:
        return {"date": self.date, count_name: self.count, **self.sums}


def bucket_by_day(
    records: Iterable[DomainRecord],
    *,
    date_field: str,
    sums: Mapping[str, Accessor] | None = None,
    include_fallback_dates: bool = False,
) -> list[DayBucket]:
    """
    Group *records* by calendar day and accumulate per-day sums.
    """

    measures = dict(sums or {})
    counts: dict[str, int] = {}
    totals: dict[str, dict[str, float]] = {}

    for record in records:
        if record.date_is_fallback and not include_fallback_dates:
            continue
        key = getattr(record, date_field).strftime("%Y-%m-%d")
        if key not in counts:
            counts[key] = 0
            totals[key] = {name: 0 for name in measures}
        counts[key] += 1
        bucket_totals = totals[key]
        for name, accessor in measures.items():
            bucket_totals[name] += read_value(record, accessor)

    return [
        DayBucket(date=key, count=counts[key], sums=totals[key])
        for key in sorted(counts)
    ]
