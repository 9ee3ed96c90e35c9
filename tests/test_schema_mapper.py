from __future__ import annotations

import unittest

from app.mappers.schema_mapper import SchemaMapper, normalize_header
from app.validators.mapping_validator import SchemaMappingError
from db.models.mapping_config import MappingConfig
from metrics.schema import AD_SCHEMA, COMMERCE_SCHEMA


def _ad_headers(*, replace: dict[str, str] | None = None, drop: tuple[str, ...] = ()) -> list[str]:
    replace = replace or {}
    return [replace.get(header, header) for header in AD_SCHEMA.headers if header not in drop]


class TestSchemaMapper(unittest.TestCase):
    def setUp(self) -> None:
        self.mapper = SchemaMapper(AD_SCHEMA)

    def test_normalize_header(self) -> None:
        self.assertEqual(normalize_header(" Amount spent (INR) "), "amountspentinr")

    def test_platform_export_headers_map_exactly(self) -> None:
        resolution = self.mapper.resolve_mapping(_ad_headers())

        self.assertEqual(resolution.canonical_to_source, AD_SCHEMA.default_mapping())
        self.assertEqual(set(resolution.match_strategies.values()), {"exact_or_alias"})
        self.assertEqual(resolution.unmapped_headers, [])

    def test_aliases_are_detected(self) -> None:
        headers = _ad_headers(replace={"Amount spent (INR)": "Spend", "Date": "Reporting starts"})

        resolution = self.mapper.resolve_mapping(headers)

        self.assertEqual(resolution.canonical_to_source["spend"], "Spend")
        self.assertEqual(resolution.canonical_to_source["date"], "Reporting starts")

    def test_auto_detects_columns_with_fuzzy_matching(self) -> None:
        headers = _ad_headers(replace={"Campaign name": "Campain name"})

        resolution = self.mapper.resolve_mapping(headers)

        self.assertEqual(resolution.canonical_to_source["campaign_name"], "Campain name")
        self.assertEqual(resolution.match_strategies["campaign_name"], "fuzzy")

    def test_manual_override_mapping_takes_precedence(self) -> None:
        headers = [*_ad_headers(), "Spend (USD)"]

        resolution = self.mapper.resolve_mapping(headers, manual_overrides={"spend": "Spend (USD)"})

        self.assertEqual(resolution.canonical_to_source["spend"], "Spend (USD)")
        self.assertEqual(resolution.match_strategies["spend"], "override")
        self.assertIn("Amount spent (INR)", resolution.unmapped_headers)

    def test_invalid_manual_override_raises_structured_error(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.mapper.resolve_mapping(_ad_headers(), manual_overrides={"unknown_field": "Date"})

        error_codes = {error.code for error in ctx.exception.errors}
        self.assertIn("invalid_override_field", error_codes)

    def test_override_to_missing_header_raises(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.mapper.resolve_mapping(_ad_headers(), manual_overrides={"spend": "Not There"})

        error_codes = {error.code for error in ctx.exception.errors}
        self.assertIn("override_source_not_found", error_codes)

    def test_missing_required_mapping_raises_structured_error(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.mapper.resolve_mapping(_ad_headers(drop=("Date",)))

        self.assertEqual(ctx.exception.missing_required, ["date"])
        self.assertIn("date", str(ctx.exception))

    def test_missing_optional_field_is_allowed(self) -> None:
        resolution = self.mapper.resolve_mapping(_ad_headers(drop=("Objective", "Purchases")))

        self.assertNotIn("objective", resolution.canonical_to_source)
        self.assertNotIn("purchases", resolution.canonical_to_source)

    def test_preview_mode_collects_errors(self) -> None:
        resolution = self.mapper.resolve_mapping(["Date", "Something else"], validate=False)

        missing = {
            error.canonical_field
            for error in resolution.errors
            if error.code == "required_field_unmapped"
        }
        self.assertIn("spend", missing)
        self.assertNotIn("date", missing)

    def test_empty_headers_raise(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.mapper.resolve_mapping(["", "  "])

        self.assertEqual([error.code for error in ctx.exception.errors], ["empty_headers"])

    def test_uses_db_mapping_config_overrides(self) -> None:
        headers = _ad_headers(replace={"Amount spent (INR)": "Budget used"})
        mapping_config = MappingConfig(
            user_id="user-1",
            source="ads",
            name="agency_export",
            field_mapping_json={"spend": "Budget used"},
            alias_overrides_json=None,
            is_active=True,
        )

        resolution = self.mapper.resolve_mapping(headers, mapping_config=mapping_config)

        self.assertEqual(resolution.canonical_to_source["spend"], "Budget used")
        self.assertEqual(resolution.match_strategies["spend"], "override")

    def test_config_alias_overrides_feed_fuzzy_pass(self) -> None:
        headers = _ad_headers(replace={"Campaign name": "Kampagne"})
        mapping_config = MappingConfig(
            user_id="user-1",
            source="ads",
            name="de_export",
            field_mapping_json={},
            alias_overrides_json={"campaign_name": ["Kampagne"]},
            is_active=True,
        )

        resolution = self.mapper.resolve_mapping(headers, mapping_config=mapping_config)

        self.assertEqual(resolution.canonical_to_source["campaign_name"], "Kampagne")

    def test_commerce_province_alias(self) -> None:
        mapper = SchemaMapper(COMMERCE_SCHEMA)
        headers = [header for header in COMMERCE_SCHEMA.headers if header != "Shipping Province Name"]
        headers.append("Shipping Province")

        resolution = mapper.resolve_mapping(headers)

        self.assertEqual(resolution.canonical_to_source["shipping_province"], "Shipping Province")


if __name__ == "__main__":
    unittest.main()
