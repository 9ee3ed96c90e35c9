"""
app/schemas package marker.
"""

from app.schemas.dashboard import DashboardResponse, DimensionsResponse
from app.schemas.uploads import (
    MappingPreviewResponse,
    RowIssueResponse,
    UploadDeletedResponse,
    UploadResponse,
    UploadSummaryResponse,
)

__all__ = [
    "DashboardResponse",
    "DimensionsResponse",
    "MappingPreviewResponse",
    "RowIssueResponse",
    "UploadDeletedResponse",
    "UploadResponse",
    "UploadSummaryResponse",
]
