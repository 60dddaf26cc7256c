from __future__ import annotations

import io
from datetime import UTC, datetime, timedelta

from PIL import Image

from preview_cache.data.models import AttachmentMetadata, CachedAttachment


BASE_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


def make_metadata(
    attachment_id: str = "a1",
    *,
    email_id: str = "email-1",
    filename: str = "photo.jpg",
    mime_type: str = "image/jpeg",
    size: int = 1000,
) -> AttachmentMetadata:
    return AttachmentMetadata(
        id=attachment_id,
        email_id=email_id,
        filename=filename,
        mime_type=mime_type,
        size=size,
    )


def make_attachment(
    attachment_id: str = "a1",
    *,
    email_id: str = "email-1",
    size: int = 1000,
    thumbnail: bytes | None = b"t" * 500,
    preview: bytes | None = None,
    cached_at: datetime = BASE_TIME,
    max_age: timedelta = timedelta(days=30),
) -> CachedAttachment:
    """Build a record as the service would have written it at ``cached_at``."""

    return CachedAttachment(
        id=attachment_id,
        email_id=email_id,
        filename=f"{attachment_id}.jpg",
        mime_type="image/jpeg",
        size=size,
        thumbnail_blob=thumbnail,
        preview_blob=preview,
        cached_at=cached_at,
        last_accessed=cached_at,
        expires_at=cached_at + max_age,
    )


def make_image_bytes(
    width: int,
    height: int,
    *,
    mode: str = "RGB",
    image_format: str = "PNG",
    color: tuple[int, ...] = (200, 40, 40),
) -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()
