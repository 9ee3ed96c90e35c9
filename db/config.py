"""
db/config.py

Environment-driven database configuration shared by the API and Alembic.

The record store is PostgreSQL only: the record tables use JSONB and
UUID columns and the migrations target that dialect.
"""

from __future__ import annotations

import os
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_ENV_FILES = (".env", ".env.local")
_CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
_DRIVER_PREFIXES = ("postgres://", "postgresql://")


def load_env_files() -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` in the project root.

    Variables already set in the process environment win.
    """

    for filename in _ENV_FILES:
        env_path = _PROJECT_ROOT / filename
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            key, separator, value = raw_line.strip().partition("=")
            key = key.strip()
            if not separator or not key or key.startswith("#"):
                continue
            os.environ.setdefault(key, value.strip().strip("\"'"))


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite bare postgres URLs to the psycopg 3 driver form.
    """

    url = url.strip()
    for prefix in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def require_postgres_url(url: str) -> str:
    url = normalize_postgres_url(url)
    if not url.startswith("postgresql"):
        raise RuntimeError("The analytics store supports PostgreSQL URLs only.")
    return url


def _candidate_env_names() -> list[str]:
    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    names = ["DATABASE_URL"]
    if environment in _CLOUD_ENVIRONMENTS:
        names.append("CLOUD_DATABASE_URL")
    names.append("LOCAL_DATABASE_URL")
    return names


def resolve_database_url() -> str:
    """
    Return the configured database URL.

    Checked in order: DATABASE_URL, CLOUD_DATABASE_URL (only when
    ENVIRONMENT is prod/production/staging/cloud), LOCAL_DATABASE_URL.
    """

    load_env_files()
    for name in _candidate_env_names():
        value = (os.getenv(name) or "").strip()
        if value:
            return require_postgres_url(value)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
