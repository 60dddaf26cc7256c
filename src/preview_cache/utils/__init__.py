"""Shared utility helpers for the attachment preview cache."""

from .errors import (
    CacheError,
    CacheErrorCategory,
    ImageDecodeError,
    ImageEncodeError,
    StorageUnavailableError,
    StorageWriteError,
)
from .formatters import bytes_to_megabytes, format_file_size
from .logging import LoggingOptions, configure_logging, get_logger, log_file_path

__all__ = [
    "LoggingOptions",
    "configure_logging",
    "get_logger",
    "log_file_path",
    "CacheError",
    "CacheErrorCategory",
    "ImageDecodeError",
    "ImageEncodeError",
    "StorageUnavailableError",
    "StorageWriteError",
    "bytes_to_megabytes",
    "format_file_size",
]
