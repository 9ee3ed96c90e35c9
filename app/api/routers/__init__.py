"""
app/api/routers package marker.
"""

from app.api.routers.dashboard import router as dashboard_router
from app.api.routers.export import router as export_router
from app.api.routers.uploads import router as uploads_router

__all__ = [
    "dashboard_router",
    "export_router",
    "uploads_router",
]
