from __future__ import annotations

import asyncio
import mimetypes
import weakref
from datetime import UTC, datetime
from enum import StrEnum
from types import TracebackType
from typing import Self

from preview_cache.config import CacheConfig
from preview_cache.data.memory import MemoryCache, preview_key, thumbnail_key
from preview_cache.data.models import (
    AttachmentMetadata,
    CacheStats,
    CachedAttachment,
    CleanupResult,
)
from preview_cache.data.storage import AttachmentStore, InMemoryAttachmentStore
from preview_cache.imaging import ImageTransform, PillowImageTransform
from preview_cache.utils import (
    CacheError,
    bytes_to_megabytes,
    format_file_size,
    get_logger,
)


logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DerivativeKind(StrEnum):
    THUMBNAIL = "thumbnail"
    PREVIEW = "preview"

    def memory_key(self, attachment_id: str) -> str:
        if self is DerivativeKind.THUMBNAIL:
            return thumbnail_key(attachment_id)
        return preview_key(attachment_id)

    def blob_of(self, attachment: CachedAttachment) -> bytes | None:
        if self is DerivativeKind.THUMBNAIL:
            return attachment.thumbnail_blob
        return attachment.preview_blob

    def bounds(self, config: CacheConfig) -> tuple[int, int]:
        if self is DerivativeKind.THUMBNAIL:
            return config.thumbnail_bounds()
        return config.preview_bounds()


class AttachmentCacheService:
    """Two-tier cache of attachment thumbnails and previews.

    Reads go memory first, then the persistent store; writes go through both.
    Every public operation is best effort: storage or imaging failures are
    logged and surface as a miss (``None``), ``False``, or empty statistics,
    never as an exception.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        store: AttachmentStore | None = None,
        memory: MemoryCache | None = None,
        transform: ImageTransform | None = None,
    ) -> None:
        self._config = config if config is not None else CacheConfig()
        # Durable backends are wired by bootstrap; a bare service keeps its own records.
        self._store = store if store is not None else InMemoryAttachmentStore()
        self._memory = (
            memory if memory is not None else MemoryCache(self._config.memory_budget_bytes())
        )
        self._transform = (
            transform
            if transform is not None
            else PillowImageTransform(quality=self._config.jpeg_quality)
        )
        self._inflight: dict[str, asyncio.Task[bytes | None]] = {}
        self._record_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def store(self) -> AttachmentStore:
        return self._store

    @property
    def memory(self) -> MemoryCache:
        return self._memory

    # ---------------------------------------------------------------- Lifecycle

    async def open(self) -> bool:
        """Open the persistent store; ``False`` means the cache runs memory-only."""

        try:
            await self._store.open()
        except CacheError as exc:
            logger.warning("Persistent attachment cache unavailable", error=str(exc))
            return False
        except Exception:  # noqa: BLE001 - cache must never block the caller
            logger.exception("Unexpected failure opening attachment cache")
            return False
        return True

    async def close(self) -> None:
        try:
            await self._store.close()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to close attachment cache store")

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------- Reads

    async def get_thumbnail(self, attachment_id: str) -> bytes | None:
        return await self._lookup(attachment_id, DerivativeKind.THUMBNAIL)

    async def get_preview(self, attachment_id: str) -> bytes | None:
        return await self._lookup(attachment_id, DerivativeKind.PREVIEW)

    async def _lookup(self, attachment_id: str, kind: DerivativeKind) -> bytes | None:
        key = kind.memory_key(attachment_id)
        hit = self._memory.get(key)
        if hit is not None:
            return hit

        record = await self._load(attachment_id)
        if record is None:
            return None
        blob = kind.blob_of(record)
        now = _utc_now()
        # Expired records stay on disk until cleanup() sweeps them.
        if blob is None or record.is_expired(now):
            return None

        await self._touch(attachment_id, now)
        self._memory.set(key, blob)
        return blob

    async def _load(self, attachment_id: str) -> CachedAttachment | None:
        try:
            return await self._store.get(attachment_id)
        except CacheError as exc:
            logger.warning(
                "Attachment cache read failed",
                attachment_id=attachment_id,
                error=str(exc),
            )
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected attachment cache read failure", attachment_id=attachment_id)
        return None

    async def _touch(self, attachment_id: str, accessed_at: datetime) -> None:
        try:
            await self._store.touch(attachment_id, accessed_at)
        except Exception as exc:  # noqa: BLE001 - recency is advisory
            logger.debug(
                "Failed to refresh last access time",
                attachment_id=attachment_id,
                error=str(exc),
            )

    # ------------------------------------------------------------------ Writes

    async def cache_attachment(
        self,
        metadata: AttachmentMetadata,
        thumbnail: bytes | None = None,
        preview: bytes | None = None,
    ) -> bool:
        """Upsert a record and write supplied derivatives through to memory.

        Returns whether the persistent write succeeded. The memory tier is
        populated either way.
        """

        now = _utc_now()
        record = CachedAttachment(
            id=metadata.id,
            email_id=metadata.email_id,
            filename=metadata.filename,
            mime_type=metadata.mime_type,
            size=metadata.size,
            thumbnail_blob=thumbnail,
            preview_blob=preview,
            cached_at=now,
            last_accessed=now,
            expires_at=now + self._config.max_age,
        )

        persisted = True
        try:
            await self._store.put(record)
        except CacheError as exc:
            persisted = False
            logger.warning(
                "Failed to persist cached attachment",
                attachment_id=metadata.id,
                error=str(exc),
            )
        except Exception:  # noqa: BLE001
            persisted = False
            logger.exception("Unexpected failure persisting attachment", attachment_id=metadata.id)

        if thumbnail is not None:
            self._memory.set(thumbnail_key(metadata.id), thumbnail)
        if preview is not None:
            self._memory.set(preview_key(metadata.id), preview)
        return persisted

    # -------------------------------------------------------------- Generation

    async def generate_thumbnail(
        self,
        attachment_id: str,
        image: bytes,
        email_id: str,
        filename: str,
        mime_type: str | None = None,
    ) -> bytes | None:
        return await self._generate(
            DerivativeKind.THUMBNAIL, attachment_id, image, email_id, filename, mime_type
        )

    async def generate_preview(
        self,
        attachment_id: str,
        image: bytes,
        email_id: str,
        filename: str,
        mime_type: str | None = None,
    ) -> bytes | None:
        return await self._generate(
            DerivativeKind.PREVIEW, attachment_id, image, email_id, filename, mime_type
        )

    def is_generating(self, attachment_id: str, kind: DerivativeKind = DerivativeKind.THUMBNAIL) -> bool:
        return kind.memory_key(attachment_id) in self._inflight

    async def _generate(
        self,
        kind: DerivativeKind,
        attachment_id: str,
        image: bytes,
        email_id: str,
        filename: str,
        mime_type: str | None,
    ) -> bytes | None:
        key = kind.memory_key(attachment_id)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(
                self._run_generation(kind, attachment_id, image, email_id, filename, mime_type),
                name=f"generate-{key}",
            )
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.debug("Joining in-flight generation", attachment_id=attachment_id, kind=kind.value)
        # Shielded so one cancelled waiter does not abort the shared derivation.
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[bytes | None]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _run_generation(
        self,
        kind: DerivativeKind,
        attachment_id: str,
        image: bytes,
        email_id: str,
        filename: str,
        mime_type: str | None,
    ) -> bytes | None:
        max_width, max_height = kind.bounds(self._config)
        try:
            derived = await self._transform.derive(image, max_width, max_height)
        except Exception:  # noqa: BLE001 - generation is best effort
            logger.exception(
                "Unexpected failure deriving attachment image",
                attachment_id=attachment_id,
                kind=kind.value,
            )
            return None
        if derived is None:
            logger.info(
                "No derivative produced for attachment",
                attachment_id=attachment_id,
                kind=kind.value,
            )
            return None

        try:
            metadata = AttachmentMetadata(
                id=attachment_id,
                email_id=email_id,
                filename=filename,
                mime_type=mime_type or _guess_mime_type(filename),
                size=len(image),
            )
            async with self._record_lock(attachment_id):
                thumbnail, preview = await self._merge_with_existing(kind, attachment_id, derived)
                await self.cache_attachment(metadata, thumbnail=thumbnail, preview=preview)
        except Exception:  # noqa: BLE001 - the derivative is still usable uncached
            logger.exception("Failed to cache generated derivative", attachment_id=attachment_id)
        logger.debug(
            "Generated attachment derivative",
            attachment_id=attachment_id,
            kind=kind.value,
            size=format_file_size(len(derived)),
        )
        return derived

    def _record_lock(self, attachment_id: str) -> asyncio.Lock:
        # Serialises read-merge-write of one record across derivative kinds.
        lock = self._record_locks.get(attachment_id)
        if lock is None:
            lock = asyncio.Lock()
            self._record_locks[attachment_id] = lock
        return lock

    async def _merge_with_existing(
        self,
        kind: DerivativeKind,
        attachment_id: str,
        derived: bytes,
    ) -> tuple[bytes | None, bytes | None]:
        """Keep the other channel's unexpired blob when rewriting the record."""

        existing = await self._load(attachment_id)
        if existing is not None and existing.is_expired(_utc_now()):
            existing = None
        if kind is DerivativeKind.THUMBNAIL:
            return derived, existing.preview_blob if existing else None
        return existing.thumbnail_blob if existing else None, derived

    # ------------------------------------------------------------- Maintenance

    async def cleanup(self) -> CleanupResult:
        """Delete every expired record along with its memory-tier blobs."""

        now = _utc_now()
        removed = 0
        freed_bytes = 0
        try:
            records = await self._store.iterate()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Attachment cache cleanup scan failed", error=str(exc))
            return CleanupResult()

        for record in records:
            if not record.is_expired(now):
                continue
            try:
                deleted = await self._store.delete(record.id)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Failed to delete expired attachment",
                    attachment_id=record.id,
                    error=str(exc),
                )
                continue
            self._memory.invalidate(thumbnail_key(record.id))
            self._memory.invalidate(preview_key(record.id))
            if deleted:
                removed += 1
                freed_bytes += record.footprint()

        logger.info(
            "Attachment cache cleanup completed",
            removed=removed,
            freed=format_file_size(freed_bytes),
        )
        return CleanupResult(removed=removed, freed_bytes=freed_bytes)

    async def get_stats(self) -> CacheStats:
        try:
            records = await self._store.iterate()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Attachment cache statistics unavailable", error=str(exc))
            return CacheStats()

        total_bytes = 0
        oldest: datetime | None = None
        newest: datetime | None = None
        for record in records:
            total_bytes += record.footprint()
            if oldest is None or record.cached_at < oldest:
                oldest = record.cached_at
            if newest is None or record.cached_at > newest:
                newest = record.cached_at
        return CacheStats(
            total_items=len(records),
            total_size_mb=bytes_to_megabytes(total_bytes),
            oldest_entry=oldest,
            newest_entry=newest,
        )

    async def clear_all(self) -> None:
        self._memory.clear()
        try:
            await self._store.clear()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to clear persistent attachment cache", error=str(exc))
            return
        logger.info("Attachment cache cleared")

    async def invalidate(self, attachment_id: str) -> bool:
        """Drop one attachment from both tiers; ``True`` if a record was deleted."""

        self._memory.invalidate(thumbnail_key(attachment_id))
        self._memory.invalidate(preview_key(attachment_id))
        try:
            return await self._store.delete(attachment_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to invalidate cached attachment",
                attachment_id=attachment_id,
                error=str(exc),
            )
            return False

    async def invalidate_email(self, email_id: str) -> int:
        """Drop every cached attachment belonging to one message."""

        try:
            records = await self._store.iterate()
            for record in records:
                if record.email_id == email_id:
                    self._memory.invalidate(thumbnail_key(record.id))
                    self._memory.invalidate(preview_key(record.id))
            removed = await self._store.delete_by_email(email_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to invalidate attachments for email",
                email_id=email_id,
                error=str(exc),
            )
            return 0
        logger.debug("Invalidated email attachments", email_id=email_id, removed=removed)
        return removed


def _guess_mime_type(filename: str) -> str:
    guessed, _encoding = mimetypes.guess_type(filename)
    return guessed or DEFAULT_MIME_TYPE


__all__ = ["AttachmentCacheService", "DerivativeKind"]
