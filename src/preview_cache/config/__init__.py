"""Configuration helpers for the attachment preview cache."""

from .settings import CacheConfig, Settings, SettingsManager, StorageBackend

__all__ = [
    "CacheConfig",
    "Settings",
    "SettingsManager",
    "StorageBackend",
]
