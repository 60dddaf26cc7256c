from __future__ import annotations

from preview_cache.config import Settings, SettingsManager
from preview_cache.data.sql import DatabaseConfig, DatabaseManager
from preview_cache.data.storage import (
    AttachmentStore,
    FileAttachmentStore,
    InMemoryAttachmentStore,
    SqlAttachmentStore,
)
from preview_cache.services import AttachmentCacheService
from preview_cache.utils import LoggingOptions, configure_logging, get_logger


logger = get_logger(__name__)

_default_service: AttachmentCacheService | None = None


def build_store(settings: Settings) -> AttachmentStore:
    """Create the persistent tier selected by ``settings.backend``."""

    match settings.backend:
        case "sqlite":
            return SqlAttachmentStore(
                DatabaseManager(DatabaseConfig(path=settings.database_path)),
            )
        case "file":
            return FileAttachmentStore(base_dir=settings.files_dir)
        case "memory":
            return InMemoryAttachmentStore()
        case _:
            raise ValueError(f"Unknown storage backend: {settings.backend}")


def build_cache_service(settings: Settings | None = None) -> AttachmentCacheService:
    """Initialise an independent cache service from settings."""

    settings = settings or SettingsManager().load()
    store = build_store(settings)
    logger.debug(
        "Attachment cache service initialised",
        backend=settings.backend,
        max_size_mb=settings.cache.max_size_mb,
        max_age_days=settings.cache.max_age_days,
    )
    return AttachmentCacheService(settings.cache, store=store)


def default_cache_service() -> AttachmentCacheService:
    """Return the process-wide service, building it from the environment once."""

    global _default_service
    if _default_service is None:
        settings = SettingsManager().load()
        configure_logging(LoggingOptions(level=settings.log_level))  # type: ignore[arg-type]
        _default_service = build_cache_service(settings)
    return _default_service


async def reset_default_cache_service() -> None:
    """Close and forget the process-wide service."""

    global _default_service
    service, _default_service = _default_service, None
    if service is not None:
        await service.close()


__all__ = [
    "build_cache_service",
    "build_store",
    "default_cache_service",
    "reset_default_cache_service",
]
