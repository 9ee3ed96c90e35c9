"""
app/domain package marker.
"""

from app.domain.uploads import MappingPreview, RowIssue, UploadOutcome, UploadSummary

__all__ = [
    "MappingPreview",
    "RowIssue",
    "UploadOutcome",
    "UploadSummary",
]
