"""
Repository-layer exceptions for upload and record storage flows.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository failures."""


class RecordStoreUnavailableError(RepositoryError):
    """Raised when records cannot be read; the caller may retry."""



class UploadNotFoundError(RepositoryError):
    """Raised when an upload does not exist for the requesting user."""


class UploadDeletionError(RepositoryError):
    """Raised when an upload and its records cannot be deleted together."""
