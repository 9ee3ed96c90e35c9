"""
tests/test_models.py

Pytest checks on the record table definitions.
"""

from __future__ import annotations

import pytest
from sqlalchemy import Text

from db.repositories.record_repository import row_model_for
from metrics.schema import DataSource, FieldKind, get_schema

_TEXT_KINDS = (FieldKind.TEXT, FieldKind.IDENTIFIER)


@pytest.mark.parametrize("source", list(DataSource))
def test_text_fields_are_unbounded(source: DataSource) -> None:
    columns = row_model_for(source).__table__.columns
    text_fields = [spec.name for spec in get_schema(source).fields if spec.kind in _TEXT_KINDS]

    assert text_fields
    for name in text_fields:
        column_type = columns[name].type
        assert isinstance(column_type, Text), name
        assert column_type.length is None, name
