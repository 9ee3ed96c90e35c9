"""
app/domain/uploads.py

Domain models used by the CSV upload flow.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime


class UploadOutcome(str, enum.Enum):
    """
    What happened to the user's data, as reported on every upload response.
    """

    SAVED = "saved"
    PARTIAL = "partial"
    NOT_SAVED = "not_saved"


@dataclass(frozen=True)
class RowIssue:
    """
    One row-level formatting problem resolved by a fallback value.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class MappingPreview:
    """
    Header detection result shown to the user before ingestion.
    """

    source: str
    headers: list[str]
    mapping: dict[str, str]
    match_strategies: dict[str, str]
    missing_required: list[str]
    unmapped_headers: list[str]
    sample_rows: list[dict[str, str]] = field(default_factory=list)
    mapping_config_id: str | None = None

    @property
    def can_ingest(self) -> bool:
        return not self.missing_required


@dataclass(frozen=True)
class UploadSummary:
    """
    End-of-run upload summary.

    ``rows_total`` counts data rows attempted; rows after a timeout or a
    mid-file parse error are not attempted and not counted.
    """

    upload_id: uuid.UUID | None
    source: str
    rows_total: int
    records_saved: int
    rows_failed: int
    rows_skipped: int
    rows_with_issues: int
    batches_committed: int
    batches_failed: int
    timed_out: bool = False
    error_message: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    issues: list[RowIssue] = field(default_factory=list)

    @property
    def outcome(self) -> UploadOutcome:
        if self.records_saved == 0 and (self.rows_failed or self.timed_out or self.error_message):
            return UploadOutcome.NOT_SAVED
        if self.rows_failed or self.timed_out or self.error_message:
            return UploadOutcome.PARTIAL
        return UploadOutcome.SAVED
