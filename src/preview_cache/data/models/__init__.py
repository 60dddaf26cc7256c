"""Domain models for cached attachment previews."""

from .attachment import AttachmentMetadata, CacheStats, CachedAttachment, CleanupResult
from .common import CacheBaseModel

__all__ = [
    "AttachmentMetadata",
    "CacheBaseModel",
    "CacheStats",
    "CachedAttachment",
    "CleanupResult",
]
