"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

# Upper bound on records written per transaction.
MAX_UPLOAD_BATCH_SIZE = 500


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application settings.
    """

    title: str = "AdPulse Analytics API"
    log_level: str = "INFO"
    check_db_on_startup: bool = True


@dataclass(frozen=True)
class UploadSettings:
    """
    Runtime settings for CSV uploads.
    """

    batch_size: int = 400
    timeout_seconds: float = 120.0
    max_validation_errors: int = 200
    log_validation_errors: bool = True
    delete_batch_size: int = 400


@dataclass(frozen=True)
class AggregationSettings:
    """
    Dashboard aggregation settings.
    """

    top_n: int = 10
    include_fallback_dates: bool = False


@dataclass(frozen=True)
class ExportSettings:
    """
    CSV export settings.
    """

    max_rows: int = 50_000


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.
    """

    return AppSettings(
        title=_get_str_env("APP_TITLE", "AdPulse Analytics API"),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
        check_db_on_startup=_get_bool_env("APP_CHECK_DB_ON_STARTUP", True),
    )


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached upload settings from environment variables.
    """

    return UploadSettings(
        batch_size=min(MAX_UPLOAD_BATCH_SIZE, max(1, _get_int_env("UPLOAD_BATCH_SIZE", 400))),
        timeout_seconds=max(1.0, _get_float_env("UPLOAD_TIMEOUT_SECONDS", 120.0)),
        max_validation_errors=max(1, _get_int_env("UPLOAD_MAX_VALIDATION_ERRORS", 200)),
        log_validation_errors=_get_bool_env("UPLOAD_LOG_VALIDATION_ERRORS", True),
        delete_batch_size=min(
            MAX_UPLOAD_BATCH_SIZE,
            max(1, _get_int_env("UPLOAD_DELETE_BATCH_SIZE", 400)),
        ),
    )


@lru_cache(maxsize=1)
def get_aggregation_settings() -> AggregationSettings:
    """
    Return cached aggregation settings from environment variables.
    """

    return AggregationSettings(
        top_n=max(1, _get_int_env("AGGREGATION_TOP_N", 10)),
        include_fallback_dates=_get_bool_env("AGGREGATION_INCLUDE_FALLBACK_DATES", False),
    )


@lru_cache(maxsize=1)
def get_export_settings() -> ExportSettings:
    """
    Return cached export settings from environment variables.
    """

    return ExportSettings(
        max_rows=max(1, _get_int_env("EXPORT_MAX_ROWS", 50_000)),
    )
