"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.ad_record import AdRecordRow
from db.models.commerce_order import CommerceOrderRow
from db.models.mapping_config import MappingConfig
from db.models.shipping_record import ShippingRecordRow
from db.models.upload import Upload, UploadStatus

__all__ = [
    "AdRecordRow",
    "CommerceOrderRow",
    "MappingConfig",
    "ShippingRecordRow",
    "Upload",
    "UploadStatus",
]
