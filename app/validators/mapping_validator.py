"""
app/validators/mapping_validator.py

Validation for column mapping resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

EMPTY_HEADERS = "empty_headers"
INVALID_CANONICAL_FIELD = "invalid_canonical_field"
INVALID_OVERRIDE_FIELD = "invalid_override_field"
OVERRIDE_SOURCE_NOT_FOUND = "override_source_not_found"
REQUIRED_FIELD_UNMAPPED = "required_field_unmapped"
UNKNOWN_SOURCE_COLUMN = "unknown_source_column"


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "canonical_field": self.canonical_field,
            "source_column": self.source_column,
            "context": self.context,
        }


class SchemaMappingError(ValueError):
    """
    Raised when a column mapping cannot be resolved safely.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    @property
    def missing_required(self) -> list[str]:
        return sorted(
            {
                error.canonical_field
                for error in self.errors
                if error.code == REQUIRED_FIELD_UNMAPPED and error.canonical_field
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [error.to_dict() for error in self.errors],
        }


class MappingValidator:
    """
    Validates a resolved canonical-field -> CSV-header mapping for one source.
    """

    def __init__(
        self,
        *,
        required_fields: Sequence[str],
        canonical_fields: Sequence[str],
        source: str | None = None,
    ) -> None:
        self._required_fields = tuple(required_fields)
        self._canonical_set = frozenset(canonical_fields)
        self._source = source

    def collect_errors(
        self,
        *,
        mapping: dict[str, str],
        source_headers: Sequence[str],
    ) -> list[MappingErrorDetail]:
        """
        Return every problem with *mapping* without raising.
        """

        errors: list[MappingErrorDetail] = []
        headers_set = set(source_headers)

        for canonical_field, source_column in mapping.items():
            if canonical_field not in self._canonical_set:
                errors.append(
                    MappingErrorDetail(
                        code=INVALID_CANONICAL_FIELD,
                        message="Unknown canonical field in mapping.",
                        canonical_field=canonical_field,
                        source_column=source_column,
                    )
                )
            if source_column not in headers_set:
                errors.append(
                    MappingErrorDetail(
                        code=UNKNOWN_SOURCE_COLUMN,
                        message="Mapped source column does not exist in CSV headers.",
                        canonical_field=canonical_field,
                        source_column=source_column,
                    )
                )

        for required in self._required_fields:
            if required not in mapping:
                errors.append(
                    MappingErrorDetail(
                        code=REQUIRED_FIELD_UNMAPPED,
                        message="Required canonical field is not mapped.",
                        canonical_field=required,
                        context={"source_headers": list(source_headers)},
                    )
                )
        return errors

    def validate(
        self,
        *,
        mapping: dict[str, str],
        source_headers: Sequence[str],
        pre_errors: Sequence[MappingErrorDetail] | None = None,
    ) -> None:
        """
        Validate mapping and raise structured errors if invalid.
        """

        errors = list(pre_errors or [])
        errors.extend(self.collect_errors(mapping=mapping, source_headers=source_headers))
        if not errors:
            return

        error = SchemaMappingError(message="", errors=errors)
        missing_csv = ", ".join(error.missing_required) or "none"
        prefix = f"{self._source} column mapping" if self._source else "Column mapping"
        error.message = f"{prefix} validation failed. Missing required fields: {missing_csv}."
        error.args = (error.message,)
        raise error
