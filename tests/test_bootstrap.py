from __future__ import annotations

import pytest

from preview_cache import bootstrap
from preview_cache.config import CacheConfig, Settings
from preview_cache.data.storage import (
    FileAttachmentStore,
    InMemoryAttachmentStore,
    SqlAttachmentStore,
)

from tests.factories import make_metadata


def _settings(tmp_path, backend: str) -> Settings:
    return Settings(
        cache=CacheConfig(max_size_mb=4, max_age_days=1),
        backend=backend,  # type: ignore[arg-type]
        database_path=tmp_path / "cache.db",
        files_dir=tmp_path / "attachments",
    )


@pytest.mark.parametrize(
    ("backend", "expected"),
    [
        ("sqlite", SqlAttachmentStore),
        ("file", FileAttachmentStore),
        ("memory", InMemoryAttachmentStore),
    ],
)
def test_build_store_selects_backend(tmp_path, backend, expected) -> None:
    assert isinstance(bootstrap.build_store(_settings(tmp_path, backend)), expected)


def test_build_store_rejects_unknown_backend(tmp_path) -> None:
    with pytest.raises(ValueError):
        bootstrap.build_store(_settings(tmp_path, "indexeddb"))


@pytest.mark.asyncio
async def test_build_cache_service_applies_settings(tmp_path) -> None:
    service = bootstrap.build_cache_service(_settings(tmp_path, "file"))

    assert service.config.max_age_days == 1
    assert service.memory.max_bytes == 2 * 1024 * 1024
    async with service:
        await service.cache_attachment(make_metadata("a1"), thumbnail=b"thumb")
    assert any((tmp_path / "attachments").rglob("*.json"))


@pytest.mark.asyncio
async def test_default_cache_service_is_memoized(monkeypatch: pytest.MonkeyPatch) -> None:
    configured = []
    monkeypatch.setattr(bootstrap, "configure_logging", configured.append)
    monkeypatch.setenv("PREVIEW_CACHE_BACKEND", "memory")
    monkeypatch.setenv("PREVIEW_CACHE_LOG_LEVEL", "warning")

    try:
        first = bootstrap.default_cache_service()
        second = bootstrap.default_cache_service()

        assert first is second
        assert isinstance(first.store, InMemoryAttachmentStore)
        assert [options.level for options in configured] == ["WARNING"]
    finally:
        await bootstrap.reset_default_cache_service()

    assert bootstrap.default_cache_service() is not first
    await bootstrap.reset_default_cache_service()
