from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from platformdirs import user_cache_dir, user_config_dir

APP_NAME = "PreviewCache"
ENV_PREFIX = "PREVIEW_CACHE_"
ENV_FILE_NAME = "settings.env"
DATABASE_NAME = "attachment-cache.db"

StorageBackend = Literal["sqlite", "file", "memory"]
_BACKENDS: tuple[str, ...] = ("sqlite", "file", "memory")
_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")


def _config_dir() -> Path:
    path = Path(user_config_dir(APP_NAME, roaming=True))
    path.mkdir(parents=True, exist_ok=True)
    return path


def _cache_dir() -> Path:
    path = Path(user_cache_dir(APP_NAME))
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_dir() -> Path:
    return _config_dir()


def cache_dir() -> Path:
    return _cache_dir()


def log_dir() -> Path:
    path = cache_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _env_file_path(explicit: Path | None) -> Path:
    if explicit is not None:
        return explicit
    return _config_dir() / ENV_FILE_NAME


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Immutable tuning knobs for one attachment cache service."""

    max_size_mb: float = 100
    max_age_days: float = 30
    thumbnail_max_width: int = 200
    thumbnail_max_height: int = 200
    preview_max_width: int = 800
    preview_max_height: int = 600
    jpeg_quality: int = 80

    def __post_init__(self) -> None:
        for name in (
            "max_size_mb",
            "max_age_days",
            "thumbnail_max_width",
            "thumbnail_max_height",
            "preview_max_width",
            "preview_max_height",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be between 1 and 100")

    @property
    def max_age(self) -> timedelta:
        return timedelta(days=self.max_age_days)

    def memory_budget_bytes(self) -> int:
        """Half of the configured size budget is reserved for the memory tier."""

        return int(self.max_size_mb * 1024 * 1024 / 2)

    def thumbnail_bounds(self) -> tuple[int, int]:
        return self.thumbnail_max_width, self.thumbnail_max_height

    def preview_bounds(self) -> tuple[int, int]:
        return self.preview_max_width, self.preview_max_height


@dataclass(slots=True)
class Settings:
    """Container for storage backend selection and cache tuning."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    backend: StorageBackend = "sqlite"
    database_path: Path = field(default_factory=lambda: _cache_dir() / DATABASE_NAME)
    files_dir: Path = field(default_factory=lambda: _cache_dir() / "attachments")
    log_level: str = "INFO"


class SettingsManager:
    """Load and persist settings with environment overrides."""

    def __init__(self, env_file: Path | None = None) -> None:
        self._env_file = _env_file_path(env_file)

    @property
    def env_file(self) -> Path:
        return self._env_file

    def load(self) -> Settings:
        """Load settings from environment, falling back to persisted file."""
        load_dotenv(self._env_file, override=False)

        settings = Settings()
        overrides: dict[str, float] = {}
        for name, caster in (
            ("MAX_SIZE_MB", float),
            ("MAX_AGE_DAYS", float),
            ("THUMBNAIL_MAX_WIDTH", int),
            ("THUMBNAIL_MAX_HEIGHT", int),
            ("PREVIEW_MAX_WIDTH", int),
            ("PREVIEW_MAX_HEIGHT", int),
            ("JPEG_QUALITY", int),
        ):
            raw = self._get_env(name)
            if raw is None:
                continue
            try:
                overrides[name.lower()] = caster(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{name}: {raw!r}") from exc
        if overrides:
            settings.cache = replace(settings.cache, **overrides)

        backend = self._get_env("BACKEND")
        if backend:
            backend = backend.lower()
            if backend not in _BACKENDS:
                raise ValueError(f"Unknown storage backend: {backend}")
            settings.backend = backend  # type: ignore[assignment]

        database_path = self._get_env("DATABASE_PATH")
        if database_path:
            settings.database_path = Path(database_path).expanduser()

        files_dir = self._get_env("FILES_DIR")
        if files_dir:
            settings.files_dir = Path(files_dir).expanduser()

        log_level = self._get_env("LOG_LEVEL")
        if log_level:
            log_level = log_level.upper()
            if log_level not in _LOG_LEVELS:
                raise ValueError(f"Unknown log level: {log_level}")
            settings.log_level = log_level

        return settings

    def save(self, settings: Settings) -> None:
        """Persist settings to the managed env file."""
        self._env_file.parent.mkdir(parents=True, exist_ok=True)
        cache = settings.cache
        content = [
            f"{ENV_PREFIX}MAX_SIZE_MB={cache.max_size_mb}",
            f"{ENV_PREFIX}MAX_AGE_DAYS={cache.max_age_days}",
            f"{ENV_PREFIX}THUMBNAIL_MAX_WIDTH={cache.thumbnail_max_width}",
            f"{ENV_PREFIX}THUMBNAIL_MAX_HEIGHT={cache.thumbnail_max_height}",
            f"{ENV_PREFIX}PREVIEW_MAX_WIDTH={cache.preview_max_width}",
            f"{ENV_PREFIX}PREVIEW_MAX_HEIGHT={cache.preview_max_height}",
            f"{ENV_PREFIX}JPEG_QUALITY={cache.jpeg_quality}",
            f"{ENV_PREFIX}BACKEND={settings.backend}",
            f"{ENV_PREFIX}DATABASE_PATH={settings.database_path}",
            f"{ENV_PREFIX}FILES_DIR={settings.files_dir}",
            f"{ENV_PREFIX}LOG_LEVEL={settings.log_level}",
        ]
        self._env_file.write_text("\n".join(content) + "\n", encoding="utf-8")

    def _get_env(self, name: str) -> str | None:
        return os.getenv(f"{ENV_PREFIX}{name}") or None


__all__ = [
    "CacheConfig",
    "Settings",
    "SettingsManager",
    "StorageBackend",
    "cache_dir",
    "config_dir",
    "log_dir",
]
