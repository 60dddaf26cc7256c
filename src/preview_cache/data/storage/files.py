from __future__ import annotations

import asyncio
import hashlib
import uuid
import weakref
from datetime import datetime
from pathlib import Path
from typing import Iterable, Sequence

from pydantic import ValidationError

from preview_cache.config.settings import cache_dir
from preview_cache.data.models import CachedAttachment
from preview_cache.utils import StorageUnavailableError, StorageWriteError, get_logger

from .base import AttachmentStore


logger = get_logger(__name__)

RECORD_SUFFIX = ".json"


class FileAttachmentStore(AttachmentStore[Path]):
    """Directory-backed store keeping one JSON document per attachment.

    Records live under a sha256-sharded path and are replaced atomically via a
    temporary file, so readers never observe a partially written record.
    """

    def __init__(self, *, base_dir: Path | None = None) -> None:
        super().__init__()
        self._base_dir = base_dir or (cache_dir() / "attachments")
        self._key_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    # ---------------------------------------------------------------- Lifecycle

    async def _open(self) -> Path:
        try:
            await asyncio.to_thread(self._base_dir.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            logger.error(
                "Attachment cache directory unavailable",
                path=str(self._base_dir),
                error=str(exc),
            )
            raise StorageUnavailableError(
                f"Cannot open attachment cache directory: {exc}",
            ) from exc
        return self._base_dir

    # ------------------------------------------------------------------ Public

    async def get(self, attachment_id: str) -> CachedAttachment | None:
        root = await self.open()
        path = self._path_for(root, attachment_id)
        try:
            return await asyncio.to_thread(self._read, path)
        except OSError as exc:
            raise StorageUnavailableError(
                f"Failed to read cached attachment: {exc}",
                attachment_id=attachment_id,
            ) from exc

    async def put(self, attachment: CachedAttachment) -> None:
        root = await self.open()
        path = self._path_for(root, attachment.id)
        async with self._lock_for(attachment.id):
            try:
                await asyncio.to_thread(self._write, path, attachment)
            except OSError as exc:
                raise StorageWriteError(
                    f"Failed to write cached attachment: {exc}",
                    attachment_id=attachment.id,
                ) from exc

    async def touch(self, attachment_id: str, accessed_at: datetime) -> None:
        root = await self.open()
        path = self._path_for(root, attachment_id)
        async with self._lock_for(attachment_id):
            try:
                current = await asyncio.to_thread(self._read, path)
                if current is None:
                    return
                touched = current.model_copy(update={"last_accessed": accessed_at})
                await asyncio.to_thread(self._write, path, touched)
            except OSError as exc:
                raise StorageWriteError(
                    f"Failed to update last access time: {exc}",
                    attachment_id=attachment_id,
                ) from exc

    async def delete(self, attachment_id: str) -> bool:
        root = await self.open()
        path = self._path_for(root, attachment_id)
        async with self._lock_for(attachment_id):
            try:
                return await asyncio.to_thread(self._unlink, path)
            except OSError as exc:
                raise StorageWriteError(
                    f"Failed to delete cached attachment: {exc}",
                    attachment_id=attachment_id,
                ) from exc

    async def delete_by_email(self, email_id: str) -> int:
        removed = 0
        for attachment in await self.iterate():
            if attachment.email_id == email_id and await self.delete(attachment.id):
                removed += 1
        return removed

    async def iterate(self) -> Sequence[CachedAttachment]:
        root = await self.open()
        try:
            return await asyncio.to_thread(self._read_all, root)
        except OSError as exc:
            raise StorageUnavailableError(
                f"Failed to scan attachment cache: {exc}",
            ) from exc

    async def clear(self) -> None:
        root = await self.open()
        try:
            await asyncio.to_thread(self._purge, root)
        except OSError as exc:
            raise StorageWriteError(f"Failed to clear attachment cache: {exc}") from exc
        logger.info("Attachment cache purged", path=str(root))

    # --------------------------------------------------------------- Helpers

    def _lock_for(self, attachment_id: str) -> asyncio.Lock:
        lock = self._key_locks.get(attachment_id)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[attachment_id] = lock
        return lock

    @staticmethod
    def _path_for(root: Path, attachment_id: str) -> Path:
        hashed = hashlib.sha256(attachment_id.encode("utf-8")).hexdigest()
        return root / hashed[:2] / f"{hashed}{RECORD_SUFFIX}"

    @staticmethod
    def _record_files(root: Path) -> Iterable[Path]:
        if not root.exists():
            return []
        return [path for path in root.glob(f"*/*{RECORD_SUFFIX}") if path.is_file()]

    @staticmethod
    def _read(path: Path) -> CachedAttachment | None:
        try:
            payload = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return CachedAttachment.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning(
                "Ignoring unreadable attachment record",
                path=str(path),
                errors=exc.error_count(),
            )
            return None

    @staticmethod
    def _write(path: Path, attachment: CachedAttachment) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_text(attachment.model_dump_json(), encoding="utf-8")
            tmp_path.replace(path)
        finally:
            tmp_path.unlink(missing_ok=True)

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _read_all(self, root: Path) -> list[CachedAttachment]:
        records: list[CachedAttachment] = []
        for path in self._record_files(root):
            record = self._read(path)
            if record is not None:
                records.append(record)
        return records

    @staticmethod
    def _purge(root: Path) -> None:
        if not root.exists():
            return
        for entry in root.glob("**/*"):
            if entry.is_file():
                entry.unlink(missing_ok=True)


__all__ = ["FileAttachmentStore", "RECORD_SUFFIX"]
