from __future__ import annotations

from datetime import UTC, datetime

from preview_cache.data.models import CachedAttachment

from .models import CachedAttachmentRecord


def _as_utc(value: datetime) -> datetime:
    # Bound aware; SQLite keeps no offset, so values read back naive.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def attachment_to_record(attachment: CachedAttachment) -> CachedAttachmentRecord:
    return CachedAttachmentRecord(
        id=attachment.id,
        email_id=attachment.email_id,
        filename=attachment.filename,
        mime_type=attachment.mime_type,
        size=attachment.size,
        thumbnail_blob=attachment.thumbnail_blob,
        preview_blob=attachment.preview_blob,
        cached_at=_as_utc(attachment.cached_at),
        last_accessed=_as_utc(attachment.last_accessed),
        expires_at=_as_utc(attachment.expires_at),
    )


def record_to_attachment(record: CachedAttachmentRecord) -> CachedAttachment:
    return CachedAttachment(
        id=record.id,
        email_id=record.email_id,
        filename=record.filename,
        mime_type=record.mime_type,
        size=record.size,
        thumbnail_blob=record.thumbnail_blob,
        preview_blob=record.preview_blob,
        cached_at=_as_utc(record.cached_at),
        last_accessed=_as_utc(record.last_accessed),
        expires_at=_as_utc(record.expires_at),
    )


def to_storage_timestamp(value: datetime) -> datetime:
    return _as_utc(value)


__all__ = ["attachment_to_record", "record_to_attachment", "to_storage_timestamp"]
