from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CacheErrorCategory(str, Enum):
    STORAGE_UNAVAILABLE = "storage_unavailable"
    WRITE_FAILURE = "write_failure"
    DECODE_FAILURE = "decode_failure"
    ENCODE_FAILURE = "encode_failure"


@dataclass(slots=True, eq=False)
class CacheError(Exception):
    """Base class for failures raised inside the cache layers.

    The public service never lets these escape; they exist so storage and
    imaging backends can report what went wrong before the service degrades
    the result to a miss.
    """

    message: str
    category: CacheErrorCategory = CacheErrorCategory.STORAGE_UNAVAILABLE
    attachment_id: str | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.attachment_id:
            return f"{self.message} (attachment {self.attachment_id})"
        return self.message


class StorageUnavailableError(CacheError):
    """The persistent tier cannot be opened or queried."""

    def __init__(self, message: str, *, attachment_id: str | None = None) -> None:
        super().__init__(
            message,
            category=CacheErrorCategory.STORAGE_UNAVAILABLE,
            attachment_id=attachment_id,
        )


class StorageWriteError(CacheError):
    """A persistent write failed after the store was opened."""

    def __init__(self, message: str, *, attachment_id: str | None = None) -> None:
        super().__init__(
            message,
            category=CacheErrorCategory.WRITE_FAILURE,
            attachment_id=attachment_id,
        )


class ImageDecodeError(CacheError):
    def __init__(self, message: str) -> None:
        super().__init__(message, category=CacheErrorCategory.DECODE_FAILURE)


class ImageEncodeError(CacheError):
    def __init__(self, message: str) -> None:
        super().__init__(message, category=CacheErrorCategory.ENCODE_FAILURE)


__all__ = [
    "CacheError",
    "CacheErrorCategory",
    "ImageDecodeError",
    "ImageEncodeError",
    "StorageUnavailableError",
    "StorageWriteError",
]
