"""
metrics/aggregator.py

One aggregation engine for every data source.

A MetricsProfile declares what to compute: an optional identifier gate,
ordered scalar measures, categorical distributions, grouped breakdowns
(rankings included) and a daily series. ``aggregate`` evaluates a profile
over a record collection.

Rules shared by every profile:

- The gate is applied once, first; every figure uses the gated set.
- Ratios are ``numerator / denominator`` with ``denominator == 0 -> 0``.
  Rates across groups are therefore weighted means (sum over sum).
- Missing category labels become ``UNKNOWN_LABEL``.
- Distributions keep first-seen order; rankings are stable descending sorts.

No I/O. Debug logging only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, Union

from metrics.normalizer import is_empty_value
from metrics.records import Accessor, DomainRecord, read_value
from metrics.timeseries import bucket_by_day

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Unknown"
DEFAULT_TOP_N = 10

Predicate = Callable[[Any], bool]


# ---------------------------------------------------------------------------
# Measure specs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Sum:
    name: str
    field: Accessor
    where: Predicate | None = None
    section: str | None = None


@dataclass(frozen=True)
class Count:
    name: str
    where: Predicate | None = None
    section: str | None = None


@dataclass(frozen=True)
class Ratio:
    """
    ``numerator / denominator * scale`` over already computed measures.
    """

    name: str
    numerator: str
    denominator: str
    scale: float = 1.0
    section: str | None = None


@dataclass(frozen=True)
class UniqueCount:
    """
    Number of distinct keys seen at least ``min_occurrences`` times.
    """

    name: str
    key: Accessor
    min_occurrences: int = 1
    section: str | None = None


@dataclass(frozen=True)
class First:
    """
    Value of *field* on the first record of the set (breakdown attributes).
    """

    name: str
    field: Accessor
    section: str | None = None


Measure = Union[Sum, Count, Ratio, UniqueCount, First]


@dataclass(frozen=True)
class Distribution:
    """
    Category label -> record count, or summed *measure* when given.
    """

    name: str
    key: Accessor
    measure: Accessor | None = None


@dataclass(frozen=True)
class Breakdown:
    """
    Per-group measures, optionally ranked by *sort_by* and cut to top N.
    """

    name: str
    key: Accessor
    measures: tuple[Measure, ...]
    label: str = "name"
    sort_by: str | None = None
    ranked: bool = False


@dataclass(frozen=True)
class SeriesSpec:
    """
    Daily buckets with per-day sums; *ratios* are evaluated over each
    bucket's own sums and count.
    """

    name: str
    count_name: str = "count"
    sums: tuple[tuple[str, Accessor], ...] = ()
    ratios: tuple[Ratio, ...] = ()


@dataclass(frozen=True)
class MetricsProfile:
    source: str
    date_field: str
    measures: tuple[Measure, ...]
    distributions: tuple[Distribution, ...] = ()
    breakdowns: tuple[Breakdown, ...] = ()
    series: tuple[SeriesSpec, ...] = ()
    gate: str | None = None


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregateMetrics:
    """
    Derived dashboard metrics; recomputed on every read, never stored.
    """

    source: str
    total_count: int
    excluded_count: int = 0
    fallback_date_count: int = 0
    values: dict[str, Any] = field(default_factory=dict)
    sections: dict[str, dict[str, Any]] = field(default_factory=dict)
    distributions: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    breakdowns: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    series: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "source": self.source,
            "record_count": self.total_count,
            "excluded_count": self.excluded_count,
            "fallback_date_count": self.fallback_date_count,
        }
        payload.update(self.values)
        payload.update(self.sections)
        payload.update(self.distributions)
        payload.update(self.breakdowns)
        payload.update(self.series)
        return payload


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def category_label(value: Any) -> str:
    if is_empty_value(value):
        return UNKNOWN_LABEL
    text = str(value).strip()
    return text if text else UNKNOWN_LABEL


def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator * scale


def evaluate_measures(records: Sequence[Any], measures: Sequence[Measure]) -> dict[str, Any]:
    """
    Evaluate *measures* in order; ratios may read any earlier result.
    """

    results: dict[str, Any] = {}
    for measure in measures:
        if isinstance(measure, Sum):
            total: float = 0
            for record in records:
                if measure.where is None or measure.where(record):
                    total += read_value(record, measure.field)
            results[measure.name] = total
        elif isinstance(measure, Count):
            if measure.where is None:
                results[measure.name] = len(records)
            else:
                results[measure.name] = sum(1 for record in records if measure.where(record))
        elif isinstance(measure, Ratio):
            results[measure.name] = safe_ratio(
                results[measure.numerator],
                results[measure.denominator],
                measure.scale,
            )
        elif isinstance(measure, UniqueCount):
            occurrences: dict[Any, int] = {}
            for record in records:
                key = read_value(record, measure.key)
                occurrences[key] = occurrences.get(key, 0) + 1
            results[measure.name] = sum(
                1 for count in occurrences.values() if count >= measure.min_occurrences
            )
        elif isinstance(measure, First):
            results[measure.name] = read_value(records[0], measure.field) if records else ""
        else:
            raise TypeError(f"Unsupported measure type: {type(measure).__name__}")
    return results


def _split_sections(
    measures: Sequence[Measure],
    results: dict[str, Any],
) -> tuple[dict[str, Any], dict[str, dict[str, Any]]]:
    values: dict[str, Any] = {}
    sections: dict[str, dict[str, Any]] = {}
    for measure in measures:
        if measure.name.startswith("_"):
            continue
        if measure.section is None:
            values[measure.name] = results[measure.name]
        else:
            sections.setdefault(measure.section, {})[measure.name] = results[measure.name]
    return values, sections


def _distribution(records: Sequence[Any], spec: Distribution) -> list[dict[str, Any]]:
    buckets: dict[str, float] = {}
    for record in records:
        label = category_label(read_value(record, spec.key))
        increment = 1 if spec.measure is None else read_value(record, spec.measure)
        buckets[label] = buckets.get(label, 0) + increment
    return [{"name": label, "value": value} for label, value in buckets.items()]


def _breakdown(records: Sequence[Any], spec: Breakdown, top_n: int) -> list[dict[str, Any]]:
    groups: dict[str, list[Any]] = {}
    for record in records:
        groups.setdefault(category_label(read_value(record, spec.key)), []).append(record)

    rows: list[dict[str, Any]] = []
    for label, members in groups.items():
        results = evaluate_measures(members, spec.measures)
        row: dict[str, Any] = {spec.label: label}
        row.update({name: value for name, value in results.items() if not name.startswith("_")})
        rows.append(row)

    if spec.sort_by is not None:
        # sorted() is stable, so ties keep first-seen order.
        rows = sorted(rows, key=lambda row: row[spec.sort_by], reverse=True)
    if spec.ranked:
        rows = rows[:top_n]
    return rows


def _series_row(row: dict[str, Any], spec: SeriesSpec) -> dict[str, Any]:
    for ratio in spec.ratios:
        row[ratio.name] = safe_ratio(row[ratio.numerator], row[ratio.denominator], ratio.scale)
    return row


def aggregate(
    records: Sequence[DomainRecord],
    profile: MetricsProfile,
    *,
    top_n: int = DEFAULT_TOP_N,
    include_fallback_dates: bool = False,
) -> AggregateMetrics:
    """
    Compute the metrics declared by *profile* over *records*.

    Empty input yields zero totals and empty distributions, breakdowns and
    series; callers detect "no data" with ``total_count == 0``.
    """

    records = list(records)
    if profile.gate is not None:
        used = [record for record in records if getattr(record, profile.gate)]
    else:
        used = records
    excluded = len(records) - len(used)

    results = evaluate_measures(used, profile.measures)
    values, sections = _split_sections(profile.measures, results)

    distributions = {spec.name: _distribution(used, spec) for spec in profile.distributions}
    breakdowns = {spec.name: _breakdown(used, spec, top_n) for spec in profile.breakdowns}

    series: dict[str, list[dict[str, Any]]] = {}
    for spec in profile.series:
        buckets = bucket_by_day(
            used,
            date_field=profile.date_field,
            sums=dict(spec.sums),
            include_fallback_dates=include_fallback_dates,
        )
        series[spec.name] = [_series_row(bucket.to_dict(count_name=spec.count_name), spec) for bucket in buckets]

    fallback_count = sum(1 for record in used if record.date_is_fallback)
    logger.debug(
        "Aggregated source=%s records=%d excluded=%d fallback_dates=%d",
        profile.source,
        len(used),
        excluded,
        fallback_count,
    )
    return AggregateMetrics(
        source=profile.source,
        total_count=len(used),
        excluded_count=excluded,
        fallback_date_count=fallback_count,
        values=values,
        sections=sections,
        distributions=distributions,
        breakdowns=breakdowns,
        series=series,
    )
