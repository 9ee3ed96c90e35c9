"""
app/main.py

FastAPI application factory for the AdPulse analytics API.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import MAX_UPLOAD_BATCH_SIZE, get_app_settings

logger = logging.getLogger(__name__)


def _validate_env() -> None:
    """
    Validate startup configuration, reporting every problem at once.

    Rules:
    - A PostgreSQL database URL must resolve.
    - Numeric upload and export limits, when set, must be positive integers.
    - UPLOAD_BATCH_SIZE may not exceed the per-transaction write limit.
    """

    from db.config import load_env_files, resolve_database_url

    load_env_files()
    errors: list[str] = []

    try:
        resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))

    for name in ("UPLOAD_BATCH_SIZE", "UPLOAD_DELETE_BATCH_SIZE", "EXPORT_MAX_ROWS", "AGGREGATION_TOP_N"):
        raw = os.getenv(name, "").strip()
        if not raw:
            continue
        if not raw.isdigit() or int(raw) < 1:
            errors.append(f"{name}={raw!r} must be a positive integer.")
        elif name.endswith("BATCH_SIZE") and int(raw) > MAX_UPLOAD_BATCH_SIZE:
            errors.append(f"{name}={raw} exceeds the write limit of {MAX_UPLOAD_BATCH_SIZE} per batch.")

    if errors:
        raise RuntimeError(
            "Startup validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    logging.basicConfig(
        level=getattr(logging, get_app_settings().log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_store() -> None:
    """
    Verify the store is reachable and every ORM table exists.

    Missing tables abort startup; run ``alembic upgrade head`` first.
    Nothing is created or migrated here.
    """

    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    import db.models  # noqa: F401  registers the record tables on Base.metadata
    from db.base import Base
    from db.session import get_engine

    engine = get_engine()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            present = set(sa_inspect(connection).get_table_names())
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc

    missing = sorted(set(Base.metadata.tables) - present)
    if missing:
        logger.critical(
            "Schema mismatch: %d table(s) missing from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(missing),
        )
        raise RuntimeError(f"Schema mismatch: missing tables {', '.join(missing)}.")


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    if get_app_settings().check_db_on_startup:
        _check_store()
        logger.info("Database connectivity and schema confirmed")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    settings = get_app_settings()
    if settings.check_db_on_startup:
        _validate_env()
    _configure_logging()

    application = FastAPI(
        title=settings.title,
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import dashboard_router, export_router, uploads_router

    application.include_router(uploads_router)
    application.include_router(dashboard_router)
    application.include_router(export_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok", "service": settings.title}

    return application


app = create_app()
