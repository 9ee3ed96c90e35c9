from __future__ import annotations

import unittest

from app.validators.mapping_validator import MappingErrorDetail, MappingValidator, SchemaMappingError
from metrics.schema import SHIPPING_SCHEMA


class TestMappingValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = MappingValidator(
            required_fields=SHIPPING_SCHEMA.required_fields,
            canonical_fields=SHIPPING_SCHEMA.field_names,
            source="shipping",
        )
        self.complete = {
            "order_id": "Order ID",
            "ship_date": "Ship Date",
            "status": "Status",
            "order_total": "Order Total",
        }

    def test_accepts_complete_mapping(self) -> None:
        self.validator.validate(mapping=self.complete, source_headers=tuple(self.complete.values()))

    def test_raises_on_missing_required_fields(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.validator.validate(
                mapping={"order_id": "Order ID", "tracking_id": "AWB"},
                source_headers=("Order ID", "AWB"),
            )

        codes = {error.code for error in ctx.exception.errors}
        self.assertIn("required_field_unmapped", codes)
        self.assertEqual(ctx.exception.missing_required, ["order_total", "ship_date", "status"])
        self.assertTrue(str(ctx.exception).startswith("shipping column mapping validation failed"))

    def test_raises_on_invalid_source_column(self) -> None:
        mapping = dict(self.complete, status="Missing Column")
        with self.assertRaises(SchemaMappingError) as ctx:
            self.validator.validate(
                mapping=mapping,
                source_headers=("Order ID", "Ship Date", "Order Total"),
                pre_errors=[
                    MappingErrorDetail(
                        code="override_source_not_found",
                        message="manual override missing header",
                        canonical_field="status",
                        source_column="Missing Column",
                    )
                ],
            )

        codes = [error.code for error in ctx.exception.errors]
        self.assertIn("unknown_source_column", codes)
        self.assertIn("override_source_not_found", codes)

    def test_collect_errors_does_not_raise(self) -> None:
        errors = self.validator.collect_errors(
            mapping={"bogus": "Order ID"},
            source_headers=("Order ID",),
        )

        codes = {error.code for error in errors}
        self.assertEqual(codes, {"invalid_canonical_field", "required_field_unmapped"})

    def test_error_to_dict(self) -> None:
        error = SchemaMappingError(
            message="bad",
            errors=[MappingErrorDetail(code="empty_headers", message="No CSV headers were provided.")],
        )

        self.assertEqual(
            error.to_dict(),
            {
                "message": "bad",
                "errors": [
                    {
                        "code": "empty_headers",
                        "message": "No CSV headers were provided.",
                        "canonical_field": None,
                        "source_column": None,
                        "context": None,
                    }
                ],
            },
        )


if __name__ == "__main__":
    unittest.main()
