"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and authorization.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, File, Header, HTTPException, UploadFile, status

from app.services.access import AuthContext, Role, Section, has_access

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_auth_context(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> AuthContext:
    """
    Resolve the caller from headers set by the authenticating gateway.
    """

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )
    try:
        role = Role((x_user_role or "").strip().lower())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or unknown X-User-Role header.",
        ) from exc
    return AuthContext(user_id=user_id, role=role)


def require_access(section: Section) -> Callable[..., AuthContext]:
    """
    Dependency factory: 403 unless the caller's role may open *section*.
    """

    def _dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not has_access(context, section):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{context.role.value}' cannot access '{section.value}'.",
            )
        return context

    return _dependency
