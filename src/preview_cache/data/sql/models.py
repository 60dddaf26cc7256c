from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, LargeBinary
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SchemaVersion(SQLModel, table=True):
    """Tracks the current schema version applied to the database."""

    __tablename__ = "schema_version"

    key: str = Field(default="schema_version", primary_key=True)
    version: int = Field(index=True)
    applied_at: datetime = Field(
        default_factory=_utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )


class CachedAttachmentRecord(SQLModel, table=True):
    """Stored attachment metadata with its derived thumbnail/preview blobs."""

    __tablename__ = "attachment_cache"

    id: str = Field(primary_key=True)
    email_id: str = Field(index=True)
    filename: str
    mime_type: str
    size: int
    thumbnail_blob: bytes | None = Field(
        default=None,
        sa_column=Column(LargeBinary, nullable=True),
    )
    preview_blob: bytes | None = Field(
        default=None,
        sa_column=Column(LargeBinary, nullable=True),
    )
    cached_at: datetime = Field(sa_type=DateTime(timezone=True), index=True, nullable=False)
    last_accessed: datetime = Field(sa_type=DateTime(timezone=True), index=True, nullable=False)
    expires_at: datetime = Field(sa_type=DateTime(timezone=True), index=True, nullable=False)
