"""
app/api/routers/uploads.py

CSV upload HTTP endpoints: mapping preview, ingestion, history, deletion.
"""

from __future__ import annotations

import json
import uuid

from fastapi import APIRouter, Depends, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload, require_access
from app.domain.uploads import UploadOutcome, UploadSummary
from app.schemas.uploads import (
    MappingPreviewResponse,
    RowIssueResponse,
    UploadDeletedResponse,
    UploadResponse,
    UploadSummaryResponse,
)
from app.services.access import AuthContext, Section
from app.services.upload_service import (
    CSVHeaderValidationError,
    CSVPersistenceError,
    CSVSchemaMappingError,
    UploadService,
    get_upload_service,
)
from db.repositories.errors import (
    RecordStoreUnavailableError,
    UploadDeletionError,
    UploadNotFoundError,
)
from db.session import get_db
from metrics.schema import DataSource

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _not_saved(status_code: int, detail: dict[str, object]) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"outcome": UploadOutcome.NOT_SAVED.value, **detail},
    )


def _parse_manual_mapping(raw: str | None) -> dict[str, str] | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise _not_saved(
            status.HTTP_400_BAD_REQUEST,
            {"message": "manual_mapping must be a JSON object."},
        ) from exc
    if not isinstance(parsed, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in parsed.items()
    ):
        raise _not_saved(
            status.HTTP_400_BAD_REQUEST,
            {"message": "manual_mapping must map canonical field names to CSV headers."},
        )
    return parsed


def _summary_response(summary: UploadSummary) -> UploadSummaryResponse:
    return UploadSummaryResponse(
        upload_id=summary.upload_id,
        source=summary.source,
        outcome=summary.outcome.value,
        rows_total=summary.rows_total,
        records_saved=summary.records_saved,
        rows_failed=summary.rows_failed,
        rows_skipped=summary.rows_skipped,
        rows_with_issues=summary.rows_with_issues,
        batches_committed=summary.batches_committed,
        batches_failed=summary.batches_failed,
        timed_out=summary.timed_out,
        error_message=summary.error_message,
        date_from=summary.date_from,
        date_to=summary.date_to,
        issues=[
            RowIssueResponse(
                row_number=issue.row_number,
                column=issue.column,
                message=issue.message,
                value=issue.value,
            )
            for issue in summary.issues
        ],
    )


@router.post("/{source}/preview", response_model=MappingPreviewResponse)
def preview_upload(
    source: DataSource,
    file: UploadFile = Depends(get_csv_upload),
    mapping_config_name: str | None = Query(default=None, description="Saved mapping to apply"),
    context: AuthContext = Depends(require_access(Section.UPLOAD)),
    db: Session = Depends(get_db),
    upload_service: UploadService = Depends(get_upload_service),
) -> MappingPreviewResponse:
    """
    Detect headers and propose a column mapping without saving anything.
    """

    try:
        preview = upload_service.preview(
            raw_file=file.file,
            source=source,
            db=db,
            user_id=context.user_id,
            mapping_config_name=mapping_config_name,
        )
    except CSVSchemaMappingError as exc:
        raise _not_saved(status.HTTP_400_BAD_REQUEST, exc.to_dict()) from exc
    except CSVHeaderValidationError as exc:
        raise _not_saved(status.HTTP_400_BAD_REQUEST, {"message": str(exc)}) from exc
    finally:
        file.file.close()

    return MappingPreviewResponse(
        source=preview.source,
        headers=preview.headers,
        mapping=preview.mapping,
        match_strategies=preview.match_strategies,
        missing_required=preview.missing_required,
        unmapped_headers=preview.unmapped_headers,
        sample_rows=preview.sample_rows,
        mapping_config_id=preview.mapping_config_id,
        can_ingest=preview.can_ingest,
    )


@router.post("/{source}", response_model=UploadSummaryResponse)
def ingest_upload(
    source: DataSource,
    file: UploadFile = Depends(get_csv_upload),
    manual_mapping: str | None = Form(default=None, description="JSON object: canonical field -> CSV header"),
    mapping_config_name: str | None = Query(default=None, description="Saved mapping to apply"),
    save_mapping_as: str | None = Query(default=None, description="Save the resolved mapping under this name"),
    context: AuthContext = Depends(require_access(Section.UPLOAD)),
    db: Session = Depends(get_db),
    upload_service: UploadService = Depends(get_upload_service),
) -> UploadSummaryResponse:
    """
    Ingest one CSV file as records of *source*.

    A response with outcome "partial" means some batches were saved and
    others were not; the counts say which.
    """

    try:
        summary = upload_service.ingest(
            raw_file=file.file,
            file_name=file.filename or f"{source.value}.csv",
            source=source,
            db=db,
            user_id=context.user_id,
            manual_mapping=_parse_manual_mapping(manual_mapping),
            mapping_config_name=mapping_config_name,
            save_mapping_as=save_mapping_as,
        )
    except CSVSchemaMappingError as exc:
        raise _not_saved(status.HTTP_400_BAD_REQUEST, exc.to_dict()) from exc
    except CSVHeaderValidationError as exc:
        raise _not_saved(status.HTTP_400_BAD_REQUEST, {"message": str(exc)}) from exc
    except CSVPersistenceError as exc:
        raise _not_saved(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            {"message": str(exc), "retryable": True},
        ) from exc
    finally:
        file.file.close()

    return _summary_response(summary)


@router.get("", response_model=list[UploadResponse])
def list_uploads(
    source: DataSource | None = Query(default=None),
    context: AuthContext = Depends(require_access(Section.UPLOAD)),
    db: Session = Depends(get_db),
    upload_service: UploadService = Depends(get_upload_service),
) -> list[UploadResponse]:
    try:
        uploads = upload_service.list_uploads(
            db=db,
            user_id=context.user_id,
            source=source.value if source is not None else None,
        )
    except RecordStoreUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(exc), "retryable": True},
        ) from exc
    return [UploadResponse.model_validate(upload) for upload in uploads]


@router.delete("/{upload_id}", response_model=UploadDeletedResponse)
def delete_upload(
    upload_id: uuid.UUID,
    context: AuthContext = Depends(require_access(Section.UPLOAD)),
    db: Session = Depends(get_db),
    upload_service: UploadService = Depends(get_upload_service),
) -> UploadDeletedResponse:
    """
    Delete an upload and all records it produced.
    """

    try:
        deleted = upload_service.delete_upload(db=db, upload_id=upload_id, user_id=context.user_id)
    except UploadNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except UploadDeletionError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(exc), "retryable": True},
        ) from exc
    return UploadDeletedResponse(upload_id=upload_id, records_deleted=deleted)
