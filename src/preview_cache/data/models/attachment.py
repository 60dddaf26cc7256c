from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import Field

from .common import CacheBaseModel


class AttachmentMetadata(CacheBaseModel):
    """Descriptive metadata of an original attachment."""

    id: str
    email_id: str
    filename: str
    mime_type: str
    size: int = Field(ge=0)


class CachedAttachment(AttachmentMetadata):
    """One durable cache record per attachment id.

    Immutable once written: ``last_accessed`` is the only field refreshed in
    place, and ``expires_at`` is fixed at write time.
    """

    thumbnail_blob: bytes | None = None
    preview_blob: bytes | None = None
    cached_at: datetime
    last_accessed: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def blob_bytes(self) -> int:
        total = 0
        if self.thumbnail_blob:
            total += len(self.thumbnail_blob)
        if self.preview_blob:
            total += len(self.preview_blob)
        return total

    def footprint(self) -> int:
        """Original size plus every cached derivative."""
        return self.size + self.blob_bytes()

    def metadata(self) -> AttachmentMetadata:
        return AttachmentMetadata(
            id=self.id,
            email_id=self.email_id,
            filename=self.filename,
            mime_type=self.mime_type,
            size=self.size,
        )


@dataclass(slots=True, frozen=True)
class CleanupResult:
    removed: int = 0
    freed_bytes: int = 0


@dataclass(slots=True, frozen=True)
class CacheStats:
    total_items: int = 0
    total_size_mb: float = 0.0
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None


__all__ = ["AttachmentMetadata", "CacheStats", "CachedAttachment", "CleanupResult"]
