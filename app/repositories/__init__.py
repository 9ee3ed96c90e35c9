"""
app/repositories package marker.
"""

from app.repositories.mapping_config_repository import MappingConfigRepository

__all__ = [
    "MappingConfigRepository",
]
