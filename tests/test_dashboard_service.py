"""
tests/test_dashboard_service.py

Pytest unit tests for DashboardService and ExportService over fake
record repositories.
"""

from __future__ import annotations

import csv
import io
import uuid
from datetime import date, datetime
from typing import Any

import pytest

from app.services.dashboard_service import DashboardService, parse_filter_params
from app.services.export_service import ExportService
from metrics.filters import FilterSpecError
from metrics.records import AdRecord
from metrics.schema import AD_SCHEMA, get_schema


class FakeRecordRepository:
    def __init__(self, records: list[Any], *, stored: bool | None = None) -> None:
        self.records = records
        self.stored = bool(records) if stored is None else stored
        self.calls: list[dict[str, Any]] = []

    def query(self, *, user_id: str, spec=None, upload_id=None, limit=None) -> list[Any]:
        self.calls.append({"user_id": user_id, "spec": spec, "upload_id": upload_id, "limit": limit})
        return self.records if limit is None else self.records[:limit]

    def exists_any(self, *, user_id: str) -> bool:
        return self.stored

    def distinct_values(self, *, user_id: str, field_name: str, equals=None) -> list[Any]:
        scoped = [
            record
            for record in self.records
            if all(getattr(record, name) == value for name, value in (equals or {}).items())
        ]
        return sorted({getattr(record, field_name) for record in scoped if getattr(record, field_name)})


def _ad(day: int, campaign: str = "Winter", spend: float = 100.0) -> AdRecord:
    return AdRecord(
        date=datetime(2024, 1, day),
        campaign_name=campaign,
        ad_set_name="Set",
        impressions=1000,
        clicks=10,
        spend=spend,
    )


@pytest.fixture()
def records() -> list[AdRecord]:
    return [_ad(1), _ad(2, campaign="Summer", spend=50.0), _ad(5)]


def _dashboard(repository: FakeRecordRepository) -> DashboardService:
    return DashboardService(
        top_n=10,
        include_fallback_dates=False,
        record_repository_factory=lambda db, source: repository,
    )


class TestParseFilterParams:
    def test_values_are_converted_by_field_kind(self) -> None:
        equals = parse_filter_params("ads", ["campaign_name: Winter ", "spend:1,200"])
        assert equals == {"campaign_name": "Winter", "spend": 1200.0}

    def test_missing_separator(self) -> None:
        with pytest.raises(FilterSpecError):
            parse_filter_params("ads", ["campaign_name"])

    def test_unknown_field(self) -> None:
        with pytest.raises(FilterSpecError, match="Unknown filter field"):
            parse_filter_params("shipping", ["campaign_name:Winter"])

    def test_invalid_value(self) -> None:
        with pytest.raises(FilterSpecError):
            parse_filter_params("ads", ["spend:lots"])

    def test_none(self) -> None:
        assert parse_filter_params("ads", None) == {}


class TestDashboardService:
    def test_load_aggregates_filtered_records(self, records: list[AdRecord]) -> None:
        service = _dashboard(FakeRecordRepository(records))
        spec = service.build_spec("ads", filters=["campaign_name:Winter"])

        result = service.load(None, source="ads", user_id="user-1", spec=spec)

        assert result.metrics.total_count == 2
        assert result.metrics.values["total_spend"] == 200.0
        assert result.filters_applied is True
        assert result.empty_state is None

    def test_date_range_is_inclusive(self, records: list[AdRecord]) -> None:
        service = _dashboard(FakeRecordRepository(records))
        spec = service.build_spec("ads", date_from=date(2024, 1, 2), date_to=date(2024, 1, 5))

        result = service.load(None, source="ads", user_id="user-1", spec=spec)

        assert result.metrics.total_count == 2

    def test_empty_state_no_data(self) -> None:
        result = _dashboard(FakeRecordRepository([])).load(None, source="ads", user_id="user-1")

        assert result.metrics.total_count == 0
        assert result.empty_state == "no_data"

    def test_empty_state_no_matches(self, records: list[AdRecord]) -> None:
        service = _dashboard(FakeRecordRepository(records))
        spec = service.build_spec("ads", filters=["campaign_name:Spring"])

        result = service.load(None, source="ads", user_id="user-1", spec=spec)

        assert result.has_any_data is True
        assert result.empty_state == "no_matches"

    def test_inverted_date_range_is_rejected(self, records: list[AdRecord]) -> None:
        service = _dashboard(FakeRecordRepository(records))
        with pytest.raises(FilterSpecError):
            service.build_spec("ads", date_from=date(2024, 2, 1), date_to=date(2024, 1, 1))

    def test_dimensions(self, records: list[AdRecord]) -> None:
        dimensions = _dashboard(FakeRecordRepository(records)).dimensions(None, source="ads", user_id="user-1")

        assert dimensions["campaign_name"] == ["Summer", "Winter"]
        assert set(dimensions) == {"campaign_name", "ad_set_name", "objective"}

    def test_dimensions_narrowed_by_filters(self) -> None:
        records = [
            AdRecord(date=datetime(2024, 1, 1), campaign_name="Winter", ad_set_name="Women"),
            AdRecord(date=datetime(2024, 1, 1), campaign_name="Winter", ad_set_name="Men"),
            AdRecord(date=datetime(2024, 1, 2), campaign_name="Summer", ad_set_name="Kids"),
        ]

        dimensions = _dashboard(FakeRecordRepository(records)).dimensions(
            None,
            source="ads",
            user_id="user-1",
            filters=["campaign_name:Winter"],
        )

        assert dimensions["ad_set_name"] == ["Men", "Women"]
        assert dimensions["campaign_name"] == ["Summer", "Winter"]

    def test_dimensions_reject_unknown_filter_field(self, records: list[AdRecord]) -> None:
        with pytest.raises(FilterSpecError):
            _dashboard(FakeRecordRepository(records)).dimensions(
                None, source="ads", user_id="user-1", filters=["budget:10"]
            )


class TestExportService:
    def test_export_rows_use_canonical_headers(self, records: list[AdRecord]) -> None:
        service = ExportService(max_rows=100, record_repository_factory=lambda db, source: FakeRecordRepository(records))

        result = service.export(None, source="ads", user_id="user-1")

        rows = list(csv.DictReader(io.StringIO(result.text, newline="")))
        assert result.row_count == 3
        assert result.truncated is False
        assert result.filename == "adpulse_ads_export.csv"
        assert [row["Campaign name"] for row in rows] == ["Winter", "Summer", "Winter"]
        assert tuple(rows[0]) == AD_SCHEMA.headers

    def test_export_is_capped(self, records: list[AdRecord]) -> None:
        repository = FakeRecordRepository(records)
        service = ExportService(max_rows=2, record_repository_factory=lambda db, source: repository)

        result = service.export(None, source="ads", user_id="user-1")

        assert result.row_count == 2
        assert result.truncated is True
        assert repository.calls[0]["limit"] == 3

    def test_empty_export_is_header_only(self) -> None:
        service = ExportService(max_rows=10, record_repository_factory=lambda db, source: FakeRecordRepository([]))
        upload_id = uuid.uuid4()

        result = service.export(None, source="shipping", user_id="user-1", upload_id=upload_id)

        assert result.row_count == 0
        assert result.text == ",".join(get_schema("shipping").headers) + "\r\n"
        assert result.filename == f"adpulse_shipping_{upload_id}_export.csv"

    def test_template(self) -> None:
        result = ExportService(max_rows=10).template("commerce")

        assert result.filename == "adpulse_commerce_template.csv"
        assert result.row_count == 1
