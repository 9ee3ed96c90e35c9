"""
db/repositories/upload_repository.py

Upload repository: upload history rows and cascade deletion.

Storage only: does not parse files or compute metrics.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.upload import Upload, UploadStatus
from db.repositories.errors import RecordStoreUnavailableError, UploadNotFoundError
from db.repositories.record_repository import RecordRepository


class UploadRepository:
    """
    Repository for upload metadata.

    Methods flush but never commit; the service decides transaction scope.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, *, user_id: str, source: str, file_name: str) -> Upload:
        upload = Upload(
            user_id=user_id,
            source=source,
            file_name=file_name,
            status=UploadStatus.PROCESSING,
        )
        self._session.add(upload)
        self._session.flush()
        return upload

    def get(self, upload_id: uuid.UUID, *, user_id: str) -> Upload:
        stmt = select(Upload).where(Upload.id == upload_id, Upload.user_id == user_id)
        upload = self._session.execute(stmt).scalars().first()
        if upload is None:
            raise UploadNotFoundError(f"Upload {upload_id} was not found.")
        return upload

    def list_for_user(self, *, user_id: str, source: str | None = None) -> list[Upload]:
        stmt = select(Upload).where(Upload.user_id == user_id)
        if source:
            stmt = stmt.where(Upload.source == source)
        stmt = stmt.order_by(Upload.created_at.desc())
        try:
            return list(self._session.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            raise RecordStoreUnavailableError("Failed to load upload history.") from exc

    def finalize(
        self,
        upload: Upload,
        *,
        status: str,
        rows_total: int,
        records_saved: int,
        rows_failed: int,
        rows_with_issues: int,
        batches_failed: int,
        timed_out: bool,
        date_from: datetime | None,
        date_to: datetime | None,
        error_message: str | None = None,
    ) -> Upload:
        upload.status = status
        upload.rows_total = rows_total
        upload.records_saved = records_saved
        upload.rows_failed = rows_failed
        upload.rows_with_issues = rows_with_issues
        upload.batches_failed = batches_failed
        upload.timed_out = timed_out
        upload.date_from = date_from
        upload.date_to = date_to
        upload.error_message = error_message
        self._session.add(upload)
        self._session.flush()
        return upload

    def delete_with_records(
        self,
        upload_id: uuid.UUID,
        *,
        user_id: str,
        batch_size: int,
    ) -> int:
        """
        Delete the upload's records in bounded batches, then the upload row.

        Both steps run in the caller's transaction so they commit or roll
        back together. Returns the number of records deleted.
        """

        upload = self.get(upload_id, user_id=user_id)
        deleted = RecordRepository(self._session, upload.source).delete_by_upload(
            upload.id,
            batch_size=batch_size,
        )
        self._session.delete(upload)
        self._session.flush()
        return deleted
