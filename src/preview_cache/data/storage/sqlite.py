from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from preview_cache.data.models import CachedAttachment
from preview_cache.data.sql import (
    CachedAttachmentRecord,
    DatabaseConfig,
    DatabaseManager,
    attachment_to_record,
    record_to_attachment,
)
from preview_cache.data.sql.mapper import to_storage_timestamp
from preview_cache.utils import StorageUnavailableError, StorageWriteError, get_logger

from .base import AttachmentStore


logger = get_logger(__name__)

_UPSERT_COLUMNS = (
    "email_id",
    "filename",
    "mime_type",
    "size",
    "thumbnail_blob",
    "preview_blob",
    "cached_at",
    "last_accessed",
    "expires_at",
)


class SqlAttachmentStore(AttachmentStore[DatabaseManager]):
    """SQLite-backed attachment store built on SQLModel.

    Blocking database work runs in worker threads; each call uses its own
    session so concurrent upserts to distinct keys need no caller locking.
    """

    def __init__(
        self,
        db: DatabaseManager | None = None,
        *,
        config: DatabaseConfig | None = None,
    ) -> None:
        super().__init__()
        self._db = db or DatabaseManager(config)

    @property
    def database(self) -> DatabaseManager:
        return self._db

    # ---------------------------------------------------------------- Lifecycle

    async def _open(self) -> DatabaseManager:
        try:
            await asyncio.to_thread(self._db.ensure_schema)
        except (SQLAlchemyError, OSError, RuntimeError) as exc:
            logger.error(
                "Attachment cache database unavailable",
                path=str(self._db.config.path),
                error=str(exc),
            )
            self._db.dispose()
            raise StorageUnavailableError(
                f"Cannot open attachment cache database: {exc}",
            ) from exc
        logger.debug("Opened attachment cache database", path=str(self._db.config.path))
        return self._db

    async def _close(self, handle: DatabaseManager) -> None:
        await asyncio.to_thread(handle.dispose)

    # ------------------------------------------------------------------ Public

    async def get(self, attachment_id: str) -> CachedAttachment | None:
        db = await self.open()
        try:
            return await asyncio.to_thread(self._get_sync, db, attachment_id)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Failed to read cached attachment: {exc}",
                attachment_id=attachment_id,
            ) from exc

    async def put(self, attachment: CachedAttachment) -> None:
        db = await self.open()
        try:
            await asyncio.to_thread(self._put_sync, db, attachment)
        except SQLAlchemyError as exc:
            raise StorageWriteError(
                f"Failed to write cached attachment: {exc}",
                attachment_id=attachment.id,
            ) from exc

    async def touch(self, attachment_id: str, accessed_at: datetime) -> None:
        db = await self.open()
        try:
            await asyncio.to_thread(self._touch_sync, db, attachment_id, accessed_at)
        except SQLAlchemyError as exc:
            raise StorageWriteError(
                f"Failed to update last access time: {exc}",
                attachment_id=attachment_id,
            ) from exc

    async def delete(self, attachment_id: str) -> bool:
        db = await self.open()
        try:
            return await asyncio.to_thread(self._delete_sync, db, attachment_id)
        except SQLAlchemyError as exc:
            raise StorageWriteError(
                f"Failed to delete cached attachment: {exc}",
                attachment_id=attachment_id,
            ) from exc

    async def delete_by_email(self, email_id: str) -> int:
        db = await self.open()
        try:
            return await asyncio.to_thread(self._delete_by_email_sync, db, email_id)
        except SQLAlchemyError as exc:
            raise StorageWriteError(
                f"Failed to delete attachments for email {email_id}: {exc}",
            ) from exc

    async def iterate(self) -> Sequence[CachedAttachment]:
        db = await self.open()
        try:
            return await asyncio.to_thread(self._iterate_sync, db)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(
                f"Failed to scan attachment cache: {exc}",
            ) from exc

    async def clear(self) -> None:
        db = await self.open()
        try:
            await asyncio.to_thread(self._clear_sync, db)
        except SQLAlchemyError as exc:
            raise StorageWriteError(f"Failed to clear attachment cache: {exc}") from exc

    # --------------------------------------------------------------- Internals

    @staticmethod
    def _get_sync(db: DatabaseManager, attachment_id: str) -> CachedAttachment | None:
        with db.session() as session:
            record = session.get(CachedAttachmentRecord, attachment_id)
            return record_to_attachment(record) if record else None

    @staticmethod
    def _put_sync(db: DatabaseManager, attachment: CachedAttachment) -> None:
        values = attachment_to_record(attachment).model_dump()
        stmt = sqlite_insert(CachedAttachmentRecord).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CachedAttachmentRecord.id],
            set_={column: stmt.excluded[column] for column in _UPSERT_COLUMNS},
        )
        with db.session() as session:
            session.exec(stmt)
            session.commit()

    @staticmethod
    def _touch_sync(db: DatabaseManager, attachment_id: str, accessed_at: datetime) -> None:
        stmt = (
            update(CachedAttachmentRecord)
            .where(CachedAttachmentRecord.id == attachment_id)
            .values(last_accessed=to_storage_timestamp(accessed_at))
        )
        with db.session() as session:
            session.exec(stmt)
            session.commit()

    @staticmethod
    def _delete_sync(db: DatabaseManager, attachment_id: str) -> bool:
        stmt = delete(CachedAttachmentRecord).where(
            CachedAttachmentRecord.id == attachment_id,
        )
        with db.session() as session:
            result = session.exec(stmt)
            session.commit()
            return bool(result.rowcount)

    @staticmethod
    def _delete_by_email_sync(db: DatabaseManager, email_id: str) -> int:
        stmt = delete(CachedAttachmentRecord).where(
            CachedAttachmentRecord.email_id == email_id,
        )
        with db.session() as session:
            result = session.exec(stmt)
            session.commit()
            return int(result.rowcount or 0)

    @staticmethod
    def _iterate_sync(db: DatabaseManager) -> list[CachedAttachment]:
        with db.session() as session:
            records = session.exec(select(CachedAttachmentRecord)).all()
            return [record_to_attachment(record) for record in records]

    @staticmethod
    def _clear_sync(db: DatabaseManager) -> None:
        with db.session() as session:
            session.exec(delete(CachedAttachmentRecord))
            session.commit()


__all__ = ["SqlAttachmentStore"]
