"""
app/services/dashboard_service.py

Dashboard reads: load a user's records, filter, aggregate.

Metrics are recomputed from stored records on every call; nothing derived
is persisted. Store failures surface as RecordStoreUnavailableError so the
API can answer "retryable" instead of rendering an empty dashboard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Any, Callable, Iterable

from sqlalchemy.orm import Session

from app.config import get_aggregation_settings
from db.repositories.record_repository import RecordRepository
from metrics.aggregator import AggregateMetrics
from metrics.filters import FilterSpec, FilterSpecError, filter_records
from metrics.normalizer import convert_field
from metrics.profiles import aggregate_source
from metrics.schema import DataSource, get_schema

logger = logging.getLogger(__name__)

# Categorical fields offered as dashboard filters per source.
DIMENSION_FIELDS: dict[DataSource, tuple[str, ...]] = {
    DataSource.ADS: ("campaign_name", "ad_set_name", "objective"),
    DataSource.SHIPPING: (
        "status",
        "courier_company",
        "payment_method",
        "address_state",
        "channel",
    ),
    DataSource.COMMERCE: (
        "fulfillment_status",
        "financial_status",
        "payment_method",
        "shipping_province",
    ),
}


@dataclass(frozen=True)
class DashboardResult:
    """
    Aggregated metrics plus the context needed to pick an empty state.
    """

    source: str
    metrics: AggregateMetrics
    has_any_data: bool
    filters_applied: bool

    @property
    def empty_state(self) -> str | None:
        """
        "no_data" when the user never uploaded this source, "no_matches"
        when filters excluded everything, None otherwise.
        """

        if self.metrics.total_count > 0:
            return None
        if not self.has_any_data:
            return "no_data"
        return "no_matches" if self.filters_applied else "no_data"


def parse_filter_params(
    source: DataSource | str,
    raw_filters: Iterable[str] | None,
) -> dict[str, Any]:
    """
    Parse ``field:value`` strings into typed equality filters.

    Values are converted with the field's own rules so ``spend:1,200`` and
    a stored 1200.0 compare equal.
    """

    schema = get_schema(source)
    known = set(schema.field_names)
    equals: dict[str, Any] = {}
    for raw in raw_filters or ():
        name, separator, value = raw.partition(":")
        name = name.strip()
        if not separator or not name:
            raise FilterSpecError(f"Filter {raw!r} must look like 'field:value'.")
        if name not in known:
            raise FilterSpecError(f"Unknown filter field {name!r} for {schema.source.value} records.")
        converted, issue = convert_field(schema.field(name), value)
        if issue is not None:
            raise FilterSpecError(f"Filter value {value!r} is not valid for {name!r}.")
        equals[name] = converted
    return equals


class DashboardService:
    """
    Loads filtered records for one user and source and aggregates them.
    """

    def __init__(
        self,
        *,
        top_n: int,
        include_fallback_dates: bool,
        record_repository_factory: Callable[[Session, DataSource], Any] = RecordRepository,
    ) -> None:
        self._top_n = top_n
        self._include_fallback_dates = include_fallback_dates
        self._record_repository_factory = record_repository_factory

    def build_spec(
        self,
        source: DataSource | str,
        *,
        date_from: date | None = None,
        date_to: date | None = None,
        filters: Iterable[str] | None = None,
    ) -> FilterSpec:
        return FilterSpec.from_params(
            date_from=date_from,
            date_to=date_to,
            equals=parse_filter_params(source, filters),
        )

    def load(
        self,
        db: Session,
        *,
        source: DataSource | str,
        user_id: str,
        spec: FilterSpec | None = None,
    ) -> DashboardResult:
        source = DataSource(source)
        spec = spec or FilterSpec()
        schema = get_schema(source)
        repository = self._record_repository_factory(db, source)

        records = repository.query(user_id=user_id, spec=spec)
        # Re-applied in memory so the result does not depend on how much
        # of the spec the store could evaluate.
        selected = filter_records(records, spec, date_field=schema.date_field)
        metrics = aggregate_source(
            source,
            selected,
            top_n=self._top_n,
            include_fallback_dates=self._include_fallback_dates,
        )

        has_any_data = bool(selected) or repository.exists_any(user_id=user_id)
        logger.info(
            "Dashboard loaded source=%s user_id=%s records=%d filtered=%s",
            source.value,
            user_id,
            metrics.total_count,
            not spec.is_empty,
        )
        return DashboardResult(
            source=source.value,
            metrics=metrics,
            has_any_data=has_any_data,
            filters_applied=not spec.is_empty,
        )

    def dimensions(
        self,
        db: Session,
        *,
        source: DataSource | str,
        user_id: str,
        filters: Iterable[str] | None = None,
    ) -> dict[str, list[Any]]:
        """
        Distinct values per filterable field, for building filter pickers.

        *filters* (``field:value`` strings) narrow every other field's values,
        so picking a campaign lists only its ad sets. A field is never
        narrowed by its own filter.
        """

        source = DataSource(source)
        scope = parse_filter_params(source, filters)
        repository = self._record_repository_factory(db, source)
        return {
            name: repository.distinct_values(
                user_id=user_id,
                field_name=name,
                equals={other: value for other, value in scope.items() if other != name},
            )
            for name in DIMENSION_FIELDS[source]
        }


@lru_cache(maxsize=1)
def get_dashboard_service() -> DashboardService:
    settings = get_aggregation_settings()
    return DashboardService(
        top_n=settings.top_n,
        include_fallback_dates=settings.include_fallback_dates,
    )
