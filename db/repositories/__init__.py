"""
Repository layer exports.
"""

from db.repositories.errors import (
    RecordStoreUnavailableError,
    RepositoryError,
    UploadDeletionError,
    UploadNotFoundError,
)
from db.repositories.record_repository import RecordRepository, row_model_for
from db.repositories.upload_repository import UploadRepository

__all__ = [
    "RecordRepository",
    "UploadRepository",
    "row_model_for",
    "RepositoryError",
    "RecordStoreUnavailableError",
    "UploadNotFoundError",
    "UploadDeletionError",
]
