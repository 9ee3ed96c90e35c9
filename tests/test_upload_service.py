"""
tests/test_upload_service.py

Pytest unit tests for UploadService.

The database is replaced by in-memory fakes so batch commits, rollbacks and
timeouts can be observed deterministically.

Coverage
--------
- Mapping validation failures raised before any write
- Batched commits with per-batch failure isolation
- Timeout checked before each batch
- Skipped blank rows and formatting issue counts
- Upload finalization status and date range
- Saved mapping reuse and preview
- Cascade delete error mapping
"""

from __future__ import annotations

import io
import uuid
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Iterator

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.uploads import UploadOutcome
from app.services.upload_service import (
    CSVHeaderValidationError,
    CSVPersistenceError,
    CSVSchemaMappingError,
    UploadService,
)
from db.models.upload import UploadStatus
from db.repositories.errors import UploadDeletionError, UploadNotFoundError
from metrics.schema import AD_SCHEMA, get_schema

AD_HEADER = ",".join(AD_SCHEMA.headers)


def _ad_line(day: int, spend: str = "100", campaign: str = "Winter") -> str:
    values = {
        "Date": f"2024-01-{day:02d}",
        "Campaign name": campaign,
        "Ad set name": "Set",
        "Objective": "Sales",
        "Impressions": "1000",
        "Link clicks": "10",
        "CTR (All)": "1",
        "CPC (cost per link click)": "10",
        "Amount spent (INR)": spend,
        "Results": "1",
        "Cost per result": "100",
        "Purchases": "1",
        "Purchases conversion value": "300",
        "Purchase ROAS": "3",
    }
    return ",".join(values[header] for header in AD_SCHEMA.headers)


def _csv(*lines: str, header: str = AD_HEADER) -> io.BytesIO:
    return io.BytesIO(("\n".join([header, *lines]) + "\n").encode("utf-8"))


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class FakeStore:
    """
    Shared state behind the fake repositories of one test.
    """

    def __init__(self, *, failing_batches: set[int] | None = None) -> None:
        self.failing_batches = failing_batches or set()
        self.insert_calls = 0
        self.saved: list[tuple[int, Any]] = []
        self.uploads: dict[uuid.UUID, SimpleNamespace] = {}
        self.saved_mappings: list[dict[str, Any]] = []
        self.active_mapping: Any = None
        self.delete_error: Exception | None = None


class FakeUploadRepository:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def create(self, *, user_id: str, source: str, file_name: str) -> SimpleNamespace:
        upload = SimpleNamespace(
            id=uuid.uuid4(),
            user_id=user_id,
            source=source,
            file_name=file_name,
            status=UploadStatus.PROCESSING,
        )
        self._store.uploads[upload.id] = upload
        return upload

    def finalize(self, upload: SimpleNamespace, **fields: Any) -> SimpleNamespace:
        for name, value in fields.items():
            setattr(upload, name, value)
        return upload

    def list_for_user(self, *, user_id: str, source: str | None = None) -> list[SimpleNamespace]:
        return [
            upload
            for upload in self._store.uploads.values()
            if upload.user_id == user_id and (source is None or upload.source == source)
        ]

    def delete_with_records(self, upload_id: uuid.UUID, *, user_id: str, batch_size: int) -> int:
        if self._store.delete_error is not None:
            raise self._store.delete_error
        upload = self._store.uploads.get(upload_id)
        if upload is None or upload.user_id != user_id:
            raise UploadNotFoundError(f"Upload {upload_id} was not found.")
        del self._store.uploads[upload_id]
        deleted = len(self._store.saved)
        self._store.saved.clear()
        return deleted


class FakeRecordRepository:
    def __init__(self, store: FakeStore, source: str) -> None:
        self._store = store
        self.schema = get_schema(source)

    def bulk_insert(self, records, *, upload_id: uuid.UUID, user_id: str) -> int:
        self._store.insert_calls += 1
        if self._store.insert_calls in self._store.failing_batches:
            raise OperationalError("INSERT", {}, Exception("connection dropped"))
        self._store.saved.extend(records)
        return len(records)


class FakeMappingRepository:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_active(self, *, user_id: str, source: str, name: str | None = None) -> Any:
        return self._store.active_mapping

    def save(self, **fields: Any) -> None:
        self._store.saved_mappings.append(fields)


def _ticks(*values: float) -> Iterator[float]:
    yield from values
    while True:
        yield values[-1]


def _service(store: FakeStore, *, batch_size: int = 2, ticks: tuple[float, ...] = (0.0,), **kwargs: Any) -> UploadService:
    clock = _ticks(*ticks)
    return UploadService(
        batch_size=batch_size,
        timeout_seconds=kwargs.pop("timeout_seconds", 10.0),
        max_validation_errors=kwargs.pop("max_validation_errors", 50),
        log_validation_errors=False,
        monotonic=lambda: next(clock),
        clock=lambda: datetime(2024, 6, 30),
        upload_repository_factory=lambda db: FakeUploadRepository(store),
        record_repository_factory=lambda db, source: FakeRecordRepository(store, source),
        mapping_repository_factory=lambda db: FakeMappingRepository(store),
        **kwargs,
    )


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def db() -> FakeSession:
    return FakeSession()


def _ingest(service: UploadService, db: FakeSession, raw_file: io.BytesIO, **kwargs: Any):
    return service.ingest(
        raw_file=raw_file,
        file_name="ads.csv",
        source="ads",
        db=db,
        user_id="user-1",
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Validation before writes
# ---------------------------------------------------------------------------


class TestValidationBeforeWrites:
    def test_missing_required_column_writes_nothing(self, store: FakeStore, db: FakeSession) -> None:
        header = ",".join(h for h in AD_SCHEMA.headers if h != "Amount spent (INR)")

        with pytest.raises(CSVSchemaMappingError) as ctx:
            _ingest(_service(store), db, _csv("x", header=header))

        assert "spend" in {error.canonical_field for error in ctx.value.errors}
        assert store.uploads == {}
        assert store.insert_calls == 0
        assert db.commits == 0

    def test_missing_header_row(self, store: FakeStore, db: FakeSession) -> None:
        with pytest.raises(CSVHeaderValidationError):
            _ingest(_service(store), db, io.BytesIO(b""))
        assert store.uploads == {}

    def test_upload_row_failure_is_not_saved(self, store: FakeStore, db: FakeSession) -> None:
        class BrokenUploadRepository(FakeUploadRepository):
            def create(self, **kwargs: Any) -> SimpleNamespace:
                raise OperationalError("INSERT", {}, Exception("down"))

        service = _service(store)
        service._upload_repository_factory = lambda session: BrokenUploadRepository(store)

        with pytest.raises(CSVPersistenceError):
            _ingest(service, db, _csv(_ad_line(1)))
        assert db.rollbacks == 1
        assert store.insert_calls == 0


# ---------------------------------------------------------------------------
# Batching
# ---------------------------------------------------------------------------


class TestBatching:
    def test_all_batches_committed(self, store: FakeStore, db: FakeSession) -> None:
        summary = _ingest(_service(store), db, _csv(*[_ad_line(day) for day in range(1, 6)]))

        assert summary.outcome is UploadOutcome.SAVED
        assert summary.rows_total == 5
        assert summary.records_saved == 5
        assert summary.batches_committed == 3
        assert [row_number for row_number, _ in store.saved] == [1, 2, 3, 4, 5]
        upload = store.uploads[summary.upload_id]
        assert upload.status == UploadStatus.COMPLETED
        assert upload.records_saved == 5

    def test_failed_batch_does_not_abort_others(self, db: FakeSession) -> None:
        store = FakeStore(failing_batches={2})

        summary = _ingest(_service(store), db, _csv(*[_ad_line(day) for day in range(1, 6)]))

        assert summary.outcome is UploadOutcome.PARTIAL
        assert summary.records_saved == 3
        assert summary.rows_failed == 2
        assert summary.batches_failed == 1
        assert summary.batches_committed == 2
        assert [row_number for row_number, _ in store.saved] == [1, 2, 5]
        assert db.rollbacks == 1
        assert store.uploads[summary.upload_id].status == UploadStatus.PARTIAL

    def test_every_batch_failing_is_not_saved(self, db: FakeSession) -> None:
        store = FakeStore(failing_batches={1, 2})

        summary = _ingest(_service(store), db, _csv(_ad_line(1), _ad_line(2), _ad_line(3)))

        assert summary.outcome is UploadOutcome.NOT_SAVED
        assert summary.records_saved == 0
        assert store.uploads[summary.upload_id].status == UploadStatus.FAILED

    def test_blank_rows_are_skipped(self, store: FakeStore, db: FakeSession) -> None:
        blank = "," * (len(AD_SCHEMA.headers) - 1)

        summary = _ingest(_service(store), db, _csv(_ad_line(1), blank, _ad_line(2)))

        assert summary.rows_skipped == 1
        assert summary.rows_total == 2
        assert summary.records_saved == 2

    def test_formatting_issues_are_counted(self, store: FakeStore, db: FakeSession) -> None:
        summary = _ingest(_service(store), db, _csv(_ad_line(1, spend="lots"), _ad_line(2)))

        assert summary.outcome is UploadOutcome.SAVED
        assert summary.rows_with_issues == 1
        (issue,) = summary.issues
        assert issue.row_number == 1
        assert issue.column == "Amount spent (INR)"
        assert issue.value == "lots"

    def test_issue_list_is_capped(self, store: FakeStore, db: FakeSession) -> None:
        lines = [_ad_line(day, spend="bad") for day in range(1, 6)]

        summary = _ingest(_service(store, max_validation_errors=2), db, _csv(*lines))

        assert summary.rows_with_issues == 5
        assert len(summary.issues) == 2

    def test_date_range_is_recorded(self, store: FakeStore, db: FakeSession) -> None:
        summary = _ingest(_service(store), db, _csv(_ad_line(7), _ad_line(3), _ad_line(5)))

        assert summary.date_from == datetime(2024, 1, 3)
        assert summary.date_to == datetime(2024, 1, 7)

    def test_mid_file_decode_error_keeps_committed_batches(self, store: FakeStore, db: FakeSession) -> None:
        good = ("\n".join([AD_HEADER, *[_ad_line(1 + day % 28) for day in range(400)]]) + "\n").encode()
        raw_file = io.BytesIO(good + b"\xff\xfe,broken\n")

        summary = _ingest(_service(store, batch_size=50), db, raw_file)

        assert summary.error_message is not None
        assert summary.records_saved > 0
        assert summary.rows_total == summary.records_saved
        assert summary.outcome is UploadOutcome.PARTIAL

    def test_rows_pending_at_decode_error_are_saved(self, store: FakeStore, db: FakeSession) -> None:
        good = ("\n".join([AD_HEADER, *[_ad_line(1 + day % 28) for day in range(300)]]) + "\n").encode()
        raw_file = io.BytesIO(good + b"\xff\xfe,broken\n")

        summary = _ingest(_service(store, batch_size=400), db, raw_file)

        assert summary.error_message is not None
        assert summary.records_saved > 0
        assert summary.rows_total == summary.records_saved
        assert store.insert_calls == 1
        assert summary.outcome is UploadOutcome.PARTIAL


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


class TestTimeout:
    def test_no_batch_starts_after_deadline(self, store: FakeStore, db: FakeSession) -> None:
        # deadline = 0 + 10; first batch checked at t=1, second at t=20.
        service = _service(store, ticks=(0.0, 1.0, 20.0), timeout_seconds=10.0)

        summary = _ingest(service, db, _csv(*[_ad_line(day) for day in range(1, 6)]))

        assert summary.timed_out is True
        assert summary.records_saved == 2
        assert summary.rows_total == 2
        assert store.insert_calls == 1
        assert summary.outcome is UploadOutcome.PARTIAL

    def test_timeout_before_first_batch_is_not_saved(self, store: FakeStore, db: FakeSession) -> None:
        service = _service(store, ticks=(0.0, 50.0), timeout_seconds=10.0)

        summary = _ingest(service, db, _csv(_ad_line(1)))

        assert summary.timed_out is True
        assert summary.outcome is UploadOutcome.NOT_SAVED
        assert store.uploads[summary.upload_id].status == UploadStatus.FAILED

    def test_issues_in_dropped_batch_are_not_reported(self, store: FakeStore, db: FakeSession) -> None:
        service = _service(store, ticks=(0.0, 1.0, 20.0), timeout_seconds=10.0)
        lines = [_ad_line(day, spend="bad") for day in range(1, 5)]

        summary = _ingest(service, db, _csv(*lines))

        assert summary.timed_out is True
        assert summary.rows_total == 2
        assert summary.rows_with_issues == 2
        assert [issue.row_number for issue in summary.issues] == [1, 2]


# ---------------------------------------------------------------------------
# Mappings and preview
# ---------------------------------------------------------------------------


class TestMappings:
    def test_manual_mapping_and_save(self, store: FakeStore, db: FakeSession) -> None:
        header = AD_HEADER.replace("Amount spent (INR)", "Budget")

        summary = _ingest(
            _service(store),
            db,
            _csv(_ad_line(1), header=header),
            manual_mapping={"spend": "Budget"},
            save_mapping_as="agency",
        )

        assert summary.records_saved == 1
        assert store.saved[0][1].spend == 100.0
        (saved,) = store.saved_mappings
        assert saved["name"] == "agency"
        assert saved["field_mapping"]["spend"] == "Budget"

    def test_saved_mapping_is_applied(self, store: FakeStore, db: FakeSession) -> None:
        store.active_mapping = SimpleNamespace(
            id=uuid.uuid4(),
            field_mapping_json={"spend": "Budget"},
            alias_overrides_json=None,
        )
        header = AD_HEADER.replace("Amount spent (INR)", "Budget")

        summary = _ingest(_service(store), db, _csv(_ad_line(1, spend="75"), header=header))

        assert store.saved[0][1].spend == 75.0
        assert summary.outcome is UploadOutcome.SAVED

    def test_preview_proposes_mapping_without_writes(self, store: FakeStore, db: FakeSession) -> None:
        header = ",".join(h for h in AD_SCHEMA.headers if h != "Date") + ",Extra"
        lines = [",".join(["x"] * (len(AD_SCHEMA.headers))) for _ in range(8)]

        preview = _service(store).preview(
            raw_file=_csv(*lines, header=header),
            source="ads",
            db=db,
            user_id="user-1",
        )

        assert preview.missing_required == ["date"]
        assert preview.can_ingest is False
        assert len(preview.sample_rows) == 5
        assert "Extra" in preview.unmapped_headers
        assert store.uploads == {}
        assert db.commits == 0


# ---------------------------------------------------------------------------
# History and deletion
# ---------------------------------------------------------------------------


class TestDeletion:
    def test_delete_commits(self, store: FakeStore, db: FakeSession) -> None:
        service = _service(store)
        summary = _ingest(service, db, _csv(_ad_line(1), _ad_line(2)))
        commits_before = db.commits

        deleted = service.delete_upload(db=db, upload_id=summary.upload_id, user_id="user-1")

        assert deleted == 2
        assert db.commits == commits_before + 1
        assert service.list_uploads(db=db, user_id="user-1") == []

    def test_delete_unknown_upload(self, store: FakeStore, db: FakeSession) -> None:
        with pytest.raises(UploadNotFoundError):
            _service(store).delete_upload(db=db, upload_id=uuid.uuid4(), user_id="user-1")
        assert db.rollbacks == 1

    def test_delete_store_failure_rolls_back(self, store: FakeStore, db: FakeSession) -> None:
        store.delete_error = OperationalError("DELETE", {}, Exception("down"))

        with pytest.raises(UploadDeletionError):
            _service(store).delete_upload(db=db, upload_id=uuid.uuid4(), user_id="user-1")
        assert db.rollbacks == 1
        assert db.commits == 0
