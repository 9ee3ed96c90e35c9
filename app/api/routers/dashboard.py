"""
app/api/routers/dashboard.py

Dashboard metrics endpoints.

GET /dashboard/{source}

Query parameters
----------------
date_from : optional ISO date lower bound (YYYY-MM-DD, inclusive)
date_to   : optional ISO date upper bound (YYYY-MM-DD, inclusive)
filter    : repeatable ``field:value`` equality filter, all must match

GET /dashboard/{source}/dimensions

filter    : same form; narrows the values offered for every other field
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import require_access
from app.schemas.dashboard import DashboardResponse, DimensionsResponse
from app.services.access import AuthContext, Section
from app.services.dashboard_service import DashboardService, get_dashboard_service
from db.repositories.errors import RecordStoreUnavailableError
from db.session import get_db
from metrics.filters import FilterSpecError
from metrics.schema import DataSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _unavailable(exc: RecordStoreUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"message": str(exc), "retryable": True},
    )


@router.get("/{source}", response_model=DashboardResponse)
def get_dashboard(
    source: DataSource,
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    filters: list[str] | None = Query(default=None, alias="filter"),
    context: AuthContext = Depends(require_access(Section.DASHBOARD)),
    db: Session = Depends(get_db),
    dashboard_service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    try:
        spec = dashboard_service.build_spec(
            source,
            date_from=date_from,
            date_to=date_to,
            filters=filters,
        )
        result = dashboard_service.load(db, source=source, user_id=context.user_id, spec=spec)
    except FilterSpecError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RecordStoreUnavailableError as exc:
        logger.exception("Dashboard read failed source=%s", source.value)
        raise _unavailable(exc) from exc

    return DashboardResponse(
        source=result.source,
        empty_state=result.empty_state,
        filters_applied=result.filters_applied,
        metrics=result.metrics.to_dict(),
    )


@router.get("/{source}/dimensions", response_model=DimensionsResponse)
def get_dimensions(
    source: DataSource,
    filters: list[str] | None = Query(default=None, alias="filter"),
    context: AuthContext = Depends(require_access(Section.DASHBOARD)),
    db: Session = Depends(get_db),
    dashboard_service: DashboardService = Depends(get_dashboard_service),
) -> DimensionsResponse:
    try:
        dimensions = dashboard_service.dimensions(
            db,
            source=source,
            user_id=context.user_id,
            filters=filters,
        )
    except FilterSpecError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RecordStoreUnavailableError as exc:
        logger.exception("Dimension read failed source=%s", source.value)
        raise _unavailable(exc) from exc
    return DimensionsResponse(source=source.value, dimensions=dimensions)
