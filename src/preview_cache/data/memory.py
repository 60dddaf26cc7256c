"""Byte-budgeted LRU memory tier for hot thumbnail/preview blobs."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

from preview_cache.utils import get_logger


logger = get_logger(__name__)

THUMBNAIL_PREFIX = "thumb_"
PREVIEW_PREFIX = "preview_"


def thumbnail_key(attachment_id: str) -> str:
    return f"{THUMBNAIL_PREFIX}{attachment_id}"


def preview_key(attachment_id: str) -> str:
    return f"{PREVIEW_PREFIX}{attachment_id}"


@dataclass(slots=True)
class MemoryEntry:
    blob: bytes
    last_accessed: float


class MemoryCache:
    """Strict LRU over blob bytes rather than entry count.

    Entries are kept in access order, so the head of the mapping is always the
    entry with the smallest ``last_accessed``; entries sharing a timestamp
    leave in the order they were last touched. A blob bigger than the whole
    budget is still stored once everything else has been evicted.
    """

    def __init__(self, max_bytes: int) -> None:
        if max_bytes < 0:
            raise ValueError("max_bytes must not be negative")
        self._entries: OrderedDict[str, MemoryEntry] = OrderedDict()
        self._max_bytes = max_bytes
        self._total_bytes = 0
        self._lock = threading.Lock()

    @staticmethod
    def _now() -> float:
        return time.monotonic()

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self._total_bytes

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            entry.last_accessed = self._now()
            self._entries.move_to_end(key)
            return entry.blob

    def set(self, key: str, blob: bytes) -> None:
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._total_bytes -= len(previous.blob)
            self._evict_for(len(blob))
            self._entries[key] = MemoryEntry(blob=blob, last_accessed=self._now())
            self._total_bytes += len(blob)

    def invalidate(self, key: str) -> None:
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is not None:
                self._total_bytes -= len(entry.blob)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_bytes = 0

    def _evict_for(self, incoming: int) -> None:
        while self._entries and self._total_bytes + incoming > self._max_bytes:
            key, entry = self._entries.popitem(last=False)
            self._total_bytes -= len(entry.blob)
            logger.debug("Evicted memory cache entry", key=key, size=len(entry.blob))


__all__ = [
    "MemoryCache",
    "MemoryEntry",
    "PREVIEW_PREFIX",
    "THUMBNAIL_PREFIX",
    "preview_key",
    "thumbnail_key",
]
