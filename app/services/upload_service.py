"""
app/services/upload_service.py

Service layer for the CSV upload pipeline.

    preview  -> read the header row, propose a column mapping
    ingest   -> resolve the mapping, stream rows through the normalizer and
                write them in bounded batches

Failure semantics:

- Header or mapping problems are raised before anything is written.
- Each batch commits on its own. A failed batch is rolled back, counted
  and skipped; later batches still run.
- The timeout is checked before each batch starts. The running batch is
  allowed to finish, no further batches start, and the summary reports
  ``timed_out``.
- The upload row is finalized as completed, partial or failed so upload
  history tells the user what was saved.
"""

from __future__ import annotations

import csv
import io
import logging
import time
import uuid
from datetime import datetime
from functools import lru_cache
from typing import Any, BinaryIO, Callable, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_upload_settings
from app.domain.uploads import MappingPreview, RowIssue, UploadOutcome, UploadSummary
from app.mappers.schema_mapper import MappingResolution, SchemaMapper
from app.repositories.mapping_config_repository import MappingConfigRepository
from app.validators.mapping_validator import MappingErrorDetail, SchemaMappingError
from db.models.upload import Upload, UploadStatus
from db.repositories.errors import UploadDeletionError, UploadNotFoundError
from db.repositories.record_repository import RecordRepository
from db.repositories.upload_repository import UploadRepository
from metrics.normalizer import RecordNormalizer, is_empty_value
from metrics.records import DomainRecord
from metrics.schema import DataSource, get_schema

logger = logging.getLogger(__name__)

_PREVIEW_SAMPLE_ROWS = 5

_STATUS_BY_OUTCOME: dict[UploadOutcome, str] = {
    UploadOutcome.SAVED: UploadStatus.COMPLETED,
    UploadOutcome.PARTIAL: UploadStatus.PARTIAL,
    UploadOutcome.NOT_SAVED: UploadStatus.FAILED,
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CSVHeaderValidationError(ValueError):
    """
    Raised when the CSV cannot be read or has no header row; nothing was saved.
    """


class CSVPersistenceError(RuntimeError):
    """
    Raised when the upload record itself cannot be created; nothing was saved.
    """


class CSVSchemaMappingError(CSVHeaderValidationError):
    """
    Raised when column mapping resolution fails with structured details.
    """

    def __init__(self, *, message: str, errors: list[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, object]:
        return {
            "message": str(self),
            "errors": [error.to_dict() for error in self.errors],
        }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class _UploadRun:
    """
    Mutable counters for one ingest call.
    """

    def __init__(self) -> None:
        self.rows_total = 0
        self.records_saved = 0
        self.rows_failed = 0
        self.rows_skipped = 0
        self.rows_with_issues = 0
        self.batches_committed = 0
        self.batches_failed = 0
        self.timed_out = False
        self.error_message: str | None = None
        self.date_from: datetime | None = None
        self.date_to: datetime | None = None
        self.issues: list[RowIssue] = []
        self._pending_issue_rows = 0
        self._pending_issues: list[RowIssue] = []

    def hold_issues(self, issues: list[RowIssue]) -> None:
        """
        Keep one row's issues until its batch is attempted.
        """

        self._pending_issue_rows += 1
        self._pending_issues.extend(issues)

    def release_issues(self) -> list[RowIssue]:
        self.rows_with_issues += self._pending_issue_rows
        released = self._pending_issues
        self.discard_issues()
        return released

    def discard_issues(self) -> None:
        self._pending_issue_rows = 0
        self._pending_issues = []

    def track_dates(self, records: list[tuple[int, DomainRecord]], date_field: str) -> None:
        for _, record in records:
            if record.date_is_fallback:
                continue
            value = getattr(record, date_field)
            if self.date_from is None or value < self.date_from:
                self.date_from = value
            if self.date_to is None or value > self.date_to:
                self.date_to = value


class UploadService:
    """
    Coordinates CSV parsing, mapping, normalization, and batched persistence.
    """

    def __init__(
        self,
        *,
        batch_size: int,
        timeout_seconds: float,
        max_validation_errors: int,
        log_validation_errors: bool,
        delete_batch_size: int = 400,
        monotonic: Callable[[], float] = time.monotonic,
        clock: Callable[[], datetime] | None = None,
        upload_repository_factory: Callable[[Session], Any] = UploadRepository,
        record_repository_factory: Callable[[Session, DataSource], Any] = RecordRepository,
        mapping_repository_factory: Callable[[Session], Any] = MappingConfigRepository,
    ) -> None:
        self._batch_size = max(1, batch_size)
        self._timeout_seconds = timeout_seconds
        self._max_validation_errors = max(1, max_validation_errors)
        self._log_validation_errors = log_validation_errors
        self._delete_batch_size = max(1, delete_batch_size)
        self._monotonic = monotonic
        self._clock = clock
        self._upload_repository_factory = upload_repository_factory
        self._record_repository_factory = record_repository_factory
        self._mapping_repository_factory = mapping_repository_factory

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview(
        self,
        *,
        raw_file: BinaryIO,
        source: DataSource | str,
        db: Session,
        user_id: str,
        mapping_config_name: str | None = None,
    ) -> MappingPreview:
        """
        Read the header and a few rows; propose a mapping without validating it.
        """

        source = DataSource(source)
        mapper = SchemaMapper(get_schema(source))
        raw_file.seek(0)
        text_stream: io.TextIOWrapper | None = None
        try:
            text_stream = io.TextIOWrapper(raw_file, encoding="utf-8-sig", newline="")
            reader = csv.DictReader(text_stream)
            headers = reader.fieldnames or []
            if not headers:
                raise CSVHeaderValidationError("CSV header row is missing.")

            samples: list[dict[str, str]] = []
            for raw_row in reader:
                samples.append({key: value for key, value in raw_row.items() if key is not None})
                if len(samples) >= _PREVIEW_SAMPLE_ROWS:
                    break

            mapping_config = self._mapping_repository_factory(db).get_active(
                user_id=user_id,
                source=source.value,
                name=mapping_config_name,
            )
            try:
                resolution = mapper.resolve_mapping(
                    headers,
                    mapping_config=mapping_config,
                    validate=False,
                )
            except SchemaMappingError as exc:
                raise CSVSchemaMappingError(message=exc.message, errors=list(exc.errors)) from exc
        except UnicodeDecodeError as exc:
            raise CSVHeaderValidationError("CSV must be UTF-8 encoded.") from exc
        except csv.Error as exc:
            raise CSVHeaderValidationError(f"Invalid CSV format: {exc}") from exc
        finally:
            _detach(text_stream)

        missing = sorted(
            error.canonical_field
            for error in resolution.errors
            if error.code == "required_field_unmapped" and error.canonical_field
        )
        return MappingPreview(
            source=source.value,
            headers=list(resolution.source_headers),
            mapping=resolution.canonical_to_source,
            match_strategies=resolution.match_strategies,
            missing_required=missing,
            unmapped_headers=resolution.unmapped_headers,
            sample_rows=samples,
            mapping_config_id=resolution.mapping_config_id,
        )

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def ingest(
        self,
        *,
        raw_file: BinaryIO,
        file_name: str,
        source: DataSource | str,
        db: Session,
        user_id: str,
        manual_mapping: Mapping[str, str] | None = None,
        mapping_config_name: str | None = None,
        save_mapping_as: str | None = None,
        timeout_seconds: float | None = None,
    ) -> UploadSummary:
        """
        Stream a CSV file into records of *source*, committing per batch.

        Raises CSVHeaderValidationError / CSVSchemaMappingError before any
        write, and CSVPersistenceError if the upload row cannot be created.
        Every later failure is reported on the returned summary.
        """

        source = DataSource(source)
        schema = get_schema(source)
        mapper = SchemaMapper(schema)
        normalizer = RecordNormalizer(schema, clock=self._clock)
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        deadline = self._monotonic() + timeout

        raw_file.seek(0)
        text_stream: io.TextIOWrapper | None = None
        run = _UploadRun()
        upload: Upload | None = None

        try:
            text_stream = io.TextIOWrapper(raw_file, encoding="utf-8-sig", newline="")
            reader = csv.DictReader(text_stream)
            try:
                headers = reader.fieldnames or []
            except (UnicodeDecodeError, csv.Error) as exc:
                raise CSVHeaderValidationError(f"CSV header row could not be read: {exc}") from exc
            if not headers:
                raise CSVHeaderValidationError("CSV header row is missing.")

            mapping = self._resolve_mapping(
                db=db,
                mapper=mapper,
                headers=headers,
                user_id=user_id,
                source=source,
                mapping_config_name=mapping_config_name,
                manual_mapping=manual_mapping,
            )
            upload = self._create_upload(db=db, user_id=user_id, source=source, file_name=file_name)
            records = self._record_repository_factory(db, source)
            column_mapping = mapping.canonical_to_source

            batch: list[tuple[int, DomainRecord]] = []
            try:
                for row_number, raw_row in enumerate(reader, start=1):
                    if all(is_empty_value(value) for key, value in raw_row.items() if key is not None):
                        run.rows_skipped += 1
                        continue

                    normalized = normalizer.normalize_row(raw_row, column_mapping)
                    if normalized.issues:
                        run.hold_issues(
                            [
                                RowIssue(
                                    row_number=row_number,
                                    column=column_mapping.get(issue.field),
                                    message=issue.message,
                                    value=issue.raw_value,
                                )
                                for issue in normalized.issues
                            ]
                        )
                    batch.append((row_number, normalized.record))

                    if len(batch) >= self._batch_size:
                        flushed = self._flush_batch(
                            db=db, records=records, upload=upload, batch=batch, run=run, deadline=deadline
                        )
                        if not flushed:
                            break
            except (UnicodeDecodeError, csv.Error) as exc:
                # Rows parsed before the malformed one still go through the final flush.
                logger.warning("CSV parsing stopped upload_id=%s: %s", upload.id, exc)
                run.error_message = f"CSV parsing stopped at a malformed row: {exc}"

            if batch:
                self._flush_batch(db=db, records=records, upload=upload, batch=batch, run=run, deadline=deadline)
        finally:
            _detach(text_stream)

        if run.timed_out:
            logger.warning(
                "Upload timed out upload_id=%s saved=%d after %.1fs",
                upload.id,
                run.records_saved,
                timeout,
            )

        summary = UploadSummary(
            upload_id=upload.id,
            source=source.value,
            rows_total=run.rows_total,
            records_saved=run.records_saved,
            rows_failed=run.rows_failed,
            rows_skipped=run.rows_skipped,
            rows_with_issues=run.rows_with_issues,
            batches_committed=run.batches_committed,
            batches_failed=run.batches_failed,
            timed_out=run.timed_out,
            error_message=run.error_message,
            date_from=run.date_from,
            date_to=run.date_to,
            issues=run.issues,
        )
        self._finalize_upload(db=db, upload=upload, summary=summary)
        if save_mapping_as:
            self._save_mapping(
                db=db,
                user_id=user_id,
                source=source,
                name=save_mapping_as,
                mapping=mapping,
            )
        logger.info(
            "Upload finished upload_id=%s source=%s rows=%d saved=%d failed=%d outcome=%s",
            upload.id,
            source.value,
            summary.rows_total,
            summary.records_saved,
            summary.rows_failed,
            summary.outcome.value,
        )
        return summary

    # ------------------------------------------------------------------
    # History and deletion
    # ------------------------------------------------------------------

    def list_uploads(self, *, db: Session, user_id: str, source: str | None = None) -> list[Upload]:
        if source is not None:
            source = DataSource(source).value
        return self._upload_repository_factory(db).list_for_user(user_id=user_id, source=source)

    def delete_upload(self, *, db: Session, upload_id: uuid.UUID, user_id: str) -> int:
        """
        Delete an upload and every record it produced in one transaction.

        Raises UploadNotFoundError for unknown or foreign uploads and
        UploadDeletionError when the store rejects the delete; in that case
        nothing is removed.
        """

        try:
            deleted = self._upload_repository_factory(db).delete_with_records(
                upload_id,
                user_id=user_id,
                batch_size=self._delete_batch_size,
            )
            db.commit()
        except UploadNotFoundError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to delete upload upload_id=%s", upload_id)
            raise UploadDeletionError(f"Upload {upload_id} could not be deleted.") from exc

        logger.info("Upload deleted upload_id=%s records=%d", upload_id, deleted)
        return deleted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _deadline_passed(self, deadline: float) -> bool:
        return self._monotonic() >= deadline

    def _resolve_mapping(
        self,
        *,
        db: Session,
        mapper: SchemaMapper,
        headers: list[str],
        user_id: str,
        source: DataSource,
        mapping_config_name: str | None,
        manual_mapping: Mapping[str, str] | None,
    ) -> MappingResolution:
        mapping_config = self._mapping_repository_factory(db).get_active(
            user_id=user_id,
            source=source.value,
            name=mapping_config_name,
        )
        try:
            return mapper.resolve_mapping(
                headers,
                manual_overrides=manual_mapping,
                mapping_config=mapping_config,
            )
        except SchemaMappingError as exc:
            raise CSVSchemaMappingError(message=exc.message, errors=list(exc.errors)) from exc

    def _create_upload(
        self,
        *,
        db: Session,
        user_id: str,
        source: DataSource,
        file_name: str,
    ) -> Upload:
        try:
            upload = self._upload_repository_factory(db).create(
                user_id=user_id,
                source=source.value,
                file_name=file_name,
            )
            db.commit()
            return upload
        except SQLAlchemyError as exc:
            db.rollback()
            raise CSVPersistenceError("Failed to create the upload record.") from exc

    def _flush_batch(
        self,
        *,
        db: Session,
        records: Any,
        upload: Upload,
        batch: list[tuple[int, DomainRecord]],
        run: _UploadRun,
        deadline: float,
    ) -> bool:
        """
        Attempt *batch* unless the deadline has passed; False means timed out.

        Rows and their formatting issues are counted only once their batch is
        attempted, so a dropped batch leaves no trace in the summary.
        """

        if self._deadline_passed(deadline):
            run.timed_out = True
            run.discard_issues()
            batch.clear()
            return False

        run.rows_total += len(batch)
        for issue in run.release_issues():
            self._record_issue(run, issue)
        self._persist_batch(db=db, records=records, upload=upload, batch=batch, run=run)
        batch.clear()
        return True

    def _persist_batch(
        self,
        *,
        db: Session,
        records: Any,
        upload: Upload,
        batch: list[tuple[int, DomainRecord]],
        run: _UploadRun,
    ) -> None:
        try:
            inserted = records.bulk_insert(batch, upload_id=upload.id, user_id=upload.user_id)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            run.batches_failed += 1
            run.rows_failed += len(batch)
            logger.warning(
                "Upload batch failed upload_id=%s rows=%d-%d: %s",
                upload.id,
                batch[0][0],
                batch[-1][0],
                exc,
            )
            return

        run.batches_committed += 1
        run.records_saved += inserted
        run.track_dates(batch, records.schema.date_field)
        logger.info(
            "Upload batch committed upload_id=%s batch=%d saved_total=%d",
            upload.id,
            run.batches_committed,
            run.records_saved,
        )

    def _finalize_upload(self, *, db: Session, upload: Upload, summary: UploadSummary) -> None:
        status = _STATUS_BY_OUTCOME[summary.outcome]
        try:
            self._upload_repository_factory(db).finalize(
                upload,
                status=status,
                rows_total=summary.rows_total,
                records_saved=summary.records_saved,
                rows_failed=summary.rows_failed,
                rows_with_issues=summary.rows_with_issues,
                batches_failed=summary.batches_failed,
                timed_out=summary.timed_out,
                date_from=summary.date_from,
                date_to=summary.date_to,
                error_message=summary.error_message,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to finalize upload upload_id=%s", upload.id)

    def _save_mapping(
        self,
        *,
        db: Session,
        user_id: str,
        source: DataSource,
        name: str,
        mapping: MappingResolution,
    ) -> None:
        try:
            self._mapping_repository_factory(db).save(
                user_id=user_id,
                source=source.value,
                name=name,
                field_mapping=dict(mapping.canonical_to_source),
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Failed to save column mapping name=%r: %s", name, exc)

    def _record_issue(self, run: _UploadRun, issue: RowIssue) -> None:
        if self._log_validation_errors:
            logger.warning(
                "CSV formatting issue row=%s column=%s message=%s value=%r",
                issue.row_number,
                issue.column,
                issue.message,
                issue.value,
            )

        if len(run.issues) < self._max_validation_errors:
            run.issues.append(issue)


def _detach(text_stream: io.TextIOWrapper | None) -> None:
    # Leave the underlying upload file open; the router closes it.
    if text_stream is not None:
        try:
            text_stream.detach()
        except ValueError:
            pass


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_upload_service() -> UploadService:
    """
    Build and cache the upload service with env-driven settings.
    """
    settings = get_upload_settings()
    return UploadService(
        batch_size=settings.batch_size,
        timeout_seconds=settings.timeout_seconds,
        max_validation_errors=settings.max_validation_errors,
        log_validation_errors=settings.log_validation_errors,
        delete_batch_size=settings.delete_batch_size,
    )
