"""Data layer: domain models, memory tier, and persistent stores."""

from .memory import MemoryCache, preview_key, thumbnail_key
from .models import AttachmentMetadata, CacheStats, CachedAttachment, CleanupResult
from .sql import DatabaseConfig, DatabaseManager
from .storage import (
    AttachmentStore,
    FileAttachmentStore,
    InMemoryAttachmentStore,
    SqlAttachmentStore,
)

__all__ = [
    "AttachmentMetadata",
    "AttachmentStore",
    "CacheStats",
    "CachedAttachment",
    "CleanupResult",
    "DatabaseConfig",
    "DatabaseManager",
    "FileAttachmentStore",
    "InMemoryAttachmentStore",
    "MemoryCache",
    "SqlAttachmentStore",
    "preview_key",
    "thumbnail_key",
]
