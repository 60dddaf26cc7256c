"""Two-tier thumbnail and preview cache for email attachments."""

from preview_cache.config import CacheConfig
from preview_cache.data.models import (
    AttachmentMetadata,
    CacheStats,
    CachedAttachment,
    CleanupResult,
)
from preview_cache.services import AttachmentCacheService

__all__ = [
    "AttachmentCacheService",
    "AttachmentMetadata",
    "CacheConfig",
    "CacheStats",
    "CachedAttachment",
    "CleanupResult",
]

__version__ = "0.1.0"
