"""
app/schemas/uploads.py

Request and response schemas for upload endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class RowIssueResponse(BaseModel):
    """
    One row-level formatting problem that was resolved by a fallback.
    """

    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class MappingPreviewResponse(BaseModel):
    source: str
    headers: list[str]
    mapping: dict[str, str]
    match_strategies: dict[str, str]
    missing_required: list[str]
    unmapped_headers: list[str]
    sample_rows: list[dict[str, Any]] = Field(default_factory=list)
    mapping_config_id: str | None = None
    can_ingest: bool


class UploadSummaryResponse(BaseModel):
    """
    API response model for one ingest call.

    ``outcome`` is always present: saved, partial or not_saved.
    """

    upload_id: uuid.UUID | None = None
    source: str
    outcome: str
    rows_total: int = Field(..., ge=0)
    records_saved: int = Field(..., ge=0)
    rows_failed: int = Field(..., ge=0)
    rows_skipped: int = Field(..., ge=0)
    rows_with_issues: int = Field(..., ge=0)
    batches_committed: int = Field(..., ge=0)
    batches_failed: int = Field(..., ge=0)
    timed_out: bool = False
    error_message: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    issues: list[RowIssueResponse] = Field(default_factory=list)


class UploadResponse(BaseModel):
    """
    One upload history entry.
    """

    id: uuid.UUID
    source: str
    file_name: str
    status: str
    rows_total: int
    records_saved: int
    rows_failed: int
    rows_with_issues: int
    batches_failed: int
    timed_out: bool
    date_from: datetime | None = None
    date_to: datetime | None = None
    error_message: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UploadDeletedResponse(BaseModel):
    upload_id: uuid.UUID
    records_deleted: int = Field(..., ge=0)
