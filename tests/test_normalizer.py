"""
tests/test_normalizer.py

Pytest unit tests for the record normalizer.

Coverage
--------
- Number parsing with currency symbols, separators and percent signs
- Empty-value equivalence class (N/A, NULL, "", absent)
- Identifier emptiness and the has_identifier flag
- Date parsing, offset stripping and the fallback flag
- Formatting issues reported for non-empty unparseable cells
"""

from __future__ import annotations

from datetime import datetime

import pytest

from metrics.normalizer import (
    RecordNormalizer,
    is_empty_value,
    normalize,
    parse_date,
    parse_number,
)
from metrics.records import AdRecord, CommerceOrderRecord, ShippingRecord
from metrics.schema import AD_SCHEMA, COMMERCE_SCHEMA, SHIPPING_SCHEMA

FIXED_NOW = datetime(2024, 6, 30, 12, 0, 0)


@pytest.fixture()
def ad_normalizer() -> RecordNormalizer:
    return RecordNormalizer(AD_SCHEMA, clock=lambda: FIXED_NOW)


@pytest.fixture()
def shipping_normalizer() -> RecordNormalizer:
    return RecordNormalizer(SHIPPING_SCHEMA, clock=lambda: FIXED_NOW)


# ---------------------------------------------------------------------------
# Primitive parsers
# ---------------------------------------------------------------------------


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1,234.50", 1234.5),
            ("₹1,234.50", 1234.5),
            ("$ 99", 99.0),
            ("12.5%", 12.5),
            ("INR 2,000", 2000.0),
            ("-15", -15.0),
            (42, 42.0),
        ],
    )
    def test_strips_locale_formatting(self, raw: object, expected: float) -> None:
        assert parse_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "N/A", "null", "NULL", None, "abc", "nan", "inf"])
    def test_empty_or_unparseable_is_none(self, raw: object) -> None:
        assert parse_number(raw) is None


class TestEmptyValues:
    @pytest.mark.parametrize("raw", [None, "", "  ", "N/A", "n/a", "NULL", "null"])
    def test_equivalence_class(self, raw: object) -> None:
        assert is_empty_value(raw)

    @pytest.mark.parametrize("raw", ["0", "NA", "none", "-"])
    def test_other_values_are_not_empty(self, raw: str) -> None:
        assert not is_empty_value(raw)


class TestParseDate:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2024-01-05", datetime(2024, 1, 5)),
            ("2024-01-05T10:30:00", datetime(2024, 1, 5, 10, 30)),
            ("2024-01-05T10:30:00Z", datetime(2024, 1, 5, 10, 30)),
            ("2024-01-05 10:14:32 +0530", datetime(2024, 1, 5, 10, 14, 32)),
            ("01/05/2024", datetime(2024, 1, 5)),
            ("05-Jan-2024", datetime(2024, 1, 5)),
            ("Jan 5, 2024", datetime(2024, 1, 5)),
        ],
    )
    def test_accepts_iso_and_locale_formats(self, raw: str, expected: datetime) -> None:
        assert parse_date(raw) == expected

    def test_offset_is_dropped_without_conversion(self) -> None:
        parsed = parse_date("2024-01-01T23:30:00+05:30")
        assert parsed == datetime(2024, 1, 1, 23, 30)
        assert parsed.tzinfo is None

    @pytest.mark.parametrize("raw", ["", "N/A", "yesterday", "2024-13-45"])
    def test_unparseable_is_none(self, raw: str) -> None:
        assert parse_date(raw) is None


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


class TestNormalizeRow:
    def test_malformed_currency_cells(self, ad_normalizer: RecordNormalizer) -> None:
        """N/A in a currency field becomes 0; a formatted amount is parsed."""
        row = {"Date": "2024-01-01", "Amount spent (INR)": "N/A", "Purchases conversion value": "1,234.50"}

        record = ad_normalizer.normalize_row(row).record

        assert isinstance(record, AdRecord)
        assert record.spend == 0
        assert record.purchase_conversion_value == pytest.approx(1234.5)

    def test_empty_tokens_are_equivalent_to_absent_keys(self, ad_normalizer: RecordNormalizer) -> None:
        with_tokens = {
            "Date": "2024-01-01",
            "Campaign name": "N/A",
            "Objective": "NULL",
            "Impressions": "",
        }
        absent = {"Date": "2024-01-01"}

        assert ad_normalizer.normalize_row(with_tokens).record == ad_normalizer.normalize_row(absent).record

    def test_column_mapping_reads_user_headers(self, ad_normalizer: RecordNormalizer) -> None:
        row = {"Day": "2024-02-01", "Camp": "Spring", "Cost": "250"}
        mapping = {"date": "Day", "campaign_name": "Camp", "spend": "Cost"}

        record = ad_normalizer.normalize_row(row, mapping).record

        assert record.date == datetime(2024, 2, 1)
        assert record.campaign_name == "Spring"
        assert record.spend == 250.0
        assert record.clicks == 0

    def test_integer_fields_are_ints(self, ad_normalizer: RecordNormalizer) -> None:
        record = ad_normalizer.normalize_row({"Date": "2024-01-01", "Impressions": "12,500"}).record
        assert record.impressions == 12500
        assert isinstance(record.impressions, int)

    def test_unparseable_number_reports_issue(self, ad_normalizer: RecordNormalizer) -> None:
        normalized = ad_normalizer.normalize_row({"Date": "2024-01-01", "Amount spent (INR)": "lots"})

        assert normalized.record.spend == 0
        assert [issue.field for issue in normalized.issues] == ["spend"]

    def test_empty_cells_do_not_report_issues(self, ad_normalizer: RecordNormalizer) -> None:
        normalized = ad_normalizer.normalize_row({"Date": "2024-01-01", "Amount spent (INR)": "N/A"})
        assert normalized.issues == ()


class TestIdentifierGate:
    def test_empty_tracking_id_is_preserved(self, shipping_normalizer: RecordNormalizer) -> None:
        record = shipping_normalizer.normalize_row(
            {"Order ID": "A1", "Tracking ID": "N/A", "Ship Date": "2024-01-01"}
        ).record

        assert isinstance(record, ShippingRecord)
        assert record.tracking_id == ""
        assert record.has_identifier is False

    def test_present_tracking_id_sets_flag(self, shipping_normalizer: RecordNormalizer) -> None:
        record = shipping_normalizer.normalize_row(
            {"Order ID": "A1", "Tracking ID": " AWB1 ", "Ship Date": "2024-01-01"}
        ).record

        assert record.tracking_id == "AWB1"
        assert record.has_identifier is True

    def test_sources_without_identifier_always_pass(self, ad_normalizer: RecordNormalizer) -> None:
        assert ad_normalizer.normalize_row({"Date": "2024-01-01"}).record.has_identifier is True


class TestDateFallback:
    def test_unparseable_date_uses_clock_and_flags(self, shipping_normalizer: RecordNormalizer) -> None:
        normalized = shipping_normalizer.normalize_row({"Tracking ID": "AWB1", "Ship Date": "someday"})

        assert normalized.record.ship_date == FIXED_NOW
        assert normalized.record.date_is_fallback is True
        assert [issue.field for issue in normalized.issues] == ["ship_date"]

    def test_missing_date_uses_clock_and_flags(self, shipping_normalizer: RecordNormalizer) -> None:
        record = shipping_normalizer.normalize_row({"Tracking ID": "AWB1"}).record

        assert record.ship_date == FIXED_NOW
        assert record.date_is_fallback is True

    def test_parsed_date_is_not_flagged(self, shipping_normalizer: RecordNormalizer) -> None:
        record = shipping_normalizer.normalize_row({"Ship Date": "2024-03-01"}).record
        assert record.date_is_fallback is False


class TestCommerceDefaults:
    def test_currency_default_and_boolean(self) -> None:
        record = normalize(
            {"Id": "55", "Created at": "2024-01-01 10:14:32 +0530", "Accepts Marketing": "yes"},
            None,
            COMMERCE_SCHEMA,
            now=FIXED_NOW,
        )

        assert isinstance(record, CommerceOrderRecord)
        assert record.currency == "INR"
        assert record.accepts_marketing is True
        assert record.created_at == datetime(2024, 1, 1, 10, 14, 32)

    def test_normalize_is_pure(self) -> None:
        row = {"Id": "55", "Created at": "2024-01-01", "Total": "₹1,058.00"}
        first = normalize(row, None, COMMERCE_SCHEMA, now=FIXED_NOW)
        second = normalize(row, None, COMMERCE_SCHEMA, now=FIXED_NOW)

        assert first == second
        assert row == {"Id": "55", "Created at": "2024-01-01", "Total": "₹1,058.00"}
