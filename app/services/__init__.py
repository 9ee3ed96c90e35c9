"""
app/services package marker.
"""

from app.services.access import AuthContext, Role, Section, has_access
from app.services.dashboard_service import DashboardResult, DashboardService, get_dashboard_service
from app.services.export_service import ExportResult, ExportService, get_export_service
from app.services.upload_service import (
    CSVHeaderValidationError,
    CSVPersistenceError,
    CSVSchemaMappingError,
    UploadService,
    get_upload_service,
)

__all__ = [
    "AuthContext",
    "CSVHeaderValidationError",
    "CSVPersistenceError",
    "CSVSchemaMappingError",
    "DashboardResult",
    "DashboardService",
    "ExportResult",
    "ExportService",
    "Role",
    "Section",
    "UploadService",
    "get_dashboard_service",
    "get_export_service",
    "get_upload_service",
    "has_access",
]
