"""SQLModel schema and database management."""

from .engine import DatabaseConfig, DatabaseManager, SCHEMA_VERSION
from .mapper import attachment_to_record, record_to_attachment
from .models import CachedAttachmentRecord, SchemaVersion

__all__ = [
    "DatabaseConfig",
    "DatabaseManager",
    "SCHEMA_VERSION",
    "CachedAttachmentRecord",
    "SchemaVersion",
    "attachment_to_record",
    "record_to_attachment",
]
