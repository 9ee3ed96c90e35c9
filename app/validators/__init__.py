"""
app/validators package marker.
"""

from app.validators.mapping_validator import MappingErrorDetail, MappingValidator, SchemaMappingError

__all__ = [
    "MappingErrorDetail",
    "MappingValidator",
    "SchemaMappingError",
]
