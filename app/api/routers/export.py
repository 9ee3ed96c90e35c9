"""
app/api/routers/export.py

CSV export and template download endpoints.

GET /export/{source}

Query parameters
----------------
upload_id : optional, export only the records of one upload
date_from : optional ISO date lower bound (YYYY-MM-DD, inclusive)
date_to   : optional ISO date upper bound (YYYY-MM-DD, inclusive)
filter    : repeatable ``field:value`` equality filter

Responses
---------
StreamingResponse, Content-Type: text/csv
Content-Disposition: attachment; filename=<source>_export.csv
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.dependencies import require_access
from app.services.access import AuthContext, Section
from app.services.dashboard_service import parse_filter_params
from app.services.export_service import ExportResult, ExportService, get_export_service
from db.repositories.errors import RecordStoreUnavailableError
from db.session import get_db
from metrics.filters import FilterSpec, FilterSpecError
from metrics.schema import DataSource

logger = logging.getLogger(__name__)

router = APIRouter(tags=["export"])


def _to_csv_streaming(result: ExportResult) -> StreamingResponse:
    """Stream *result* as a UTF-8 CSV file download."""

    def _generate() -> Iterator[str]:
        yield result.text

    return StreamingResponse(
        content=_generate(),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Row-Count": str(result.row_count),
            "X-Truncated": "true" if result.truncated else "false",
        },
    )


@router.get("/export/{source}", summary="Download stored records as CSV")
def export_records(
    source: DataSource,
    upload_id: uuid.UUID | None = Query(default=None, description="Limit the export to one upload."),
    date_from: date | None = Query(default=None, description="Inclusive start date (YYYY-MM-DD)."),
    date_to: date | None = Query(default=None, description="Inclusive end date (YYYY-MM-DD)."),
    filters: list[str] | None = Query(default=None, alias="filter"),
    context: AuthContext = Depends(require_access(Section.REPORTS)),
    db: Session = Depends(get_db),
    service: ExportService = Depends(get_export_service),
) -> StreamingResponse:
    try:
        spec = FilterSpec.from_params(
            date_from=date_from,
            date_to=date_to,
            equals=parse_filter_params(source, filters),
        )
        result = service.export(
            db,
            source=source,
            user_id=context.user_id,
            spec=spec,
            upload_id=upload_id,
        )
    except FilterSpecError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RecordStoreUnavailableError as exc:
        logger.exception("Export failed source=%s", source.value)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(exc), "retryable": True},
        ) from exc

    logger.info("Export source=%s rows=%d", source.value, result.row_count)
    return _to_csv_streaming(result)


@router.get("/templates/{source}", summary="Download an example upload file")
def download_template(
    source: DataSource,
    context: AuthContext = Depends(require_access(Section.UPLOAD)),
    service: ExportService = Depends(get_export_service),
) -> StreamingResponse:
    return _to_csv_streaming(service.template(source))
