from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Generic, Sequence, TypeVar

from preview_cache.data.models import CachedAttachment


HandleT = TypeVar("HandleT")

STORE_NAME = "attachment-cache"


class AttachmentStore(ABC, Generic[HandleT]):
    """Durable keyed storage of :class:`CachedAttachment` records.

    Every operation opens the store lazily through :meth:`open`, which is
    idempotent and memoizes the backend handle. Backends raise
    ``StorageUnavailableError`` when the storage cannot be reached and
    ``StorageWriteError`` when a mutation fails; a missing key is never an
    error.
    """

    name: str = STORE_NAME

    def __init__(self) -> None:
        self._handle: HandleT | None = None
        self._open_lock = asyncio.Lock()

    # ---------------------------------------------------------------- Lifecycle

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    async def open(self) -> HandleT:
        if self._handle is not None:
            return self._handle
        async with self._open_lock:
            if self._handle is None:
                self._handle = await self._open()
        return self._handle

    async def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            await self._close(handle)

    # ------------------------------------------------------------------ Public

    @abstractmethod
    async def get(self, attachment_id: str) -> CachedAttachment | None: ...

    @abstractmethod
    async def put(self, attachment: CachedAttachment) -> None: ...

    @abstractmethod
    async def touch(self, attachment_id: str, accessed_at: datetime) -> None:
        """Refresh ``last_accessed`` only; a missing id is ignored."""

    @abstractmethod
    async def delete(self, attachment_id: str) -> bool: ...

    @abstractmethod
    async def delete_by_email(self, email_id: str) -> int: ...

    @abstractmethod
    async def iterate(self) -> Sequence[CachedAttachment]:
        """Return every stored record; order is unspecified."""

    @abstractmethod
    async def clear(self) -> None: ...

    # ------------------------------------------------------------ Abstractions

    @abstractmethod
    async def _open(self) -> HandleT: ...

    async def _close(self, handle: HandleT) -> None:  # pragma: no cover - default hook
        return None


__all__ = ["AttachmentStore", "STORE_NAME"]
