"""Persistent tier backends for cached attachment records."""

from .base import STORE_NAME, AttachmentStore
from .files import FileAttachmentStore
from .memory import InMemoryAttachmentStore
from .sqlite import SqlAttachmentStore

__all__ = [
    "AttachmentStore",
    "FileAttachmentStore",
    "InMemoryAttachmentStore",
    "STORE_NAME",
    "SqlAttachmentStore",
]
