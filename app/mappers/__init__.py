"""
app/mappers package marker.
"""

from app.mappers.schema_mapper import MappingResolution, SchemaMapper, normalize_header

__all__ = [
    "MappingResolution",
    "SchemaMapper",
    "normalize_header",
]
