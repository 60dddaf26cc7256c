from __future__ import annotations

from datetime import timedelta

import pytest

from preview_cache.config import CacheConfig, SettingsManager


def test_cache_config_defaults() -> None:
    config = CacheConfig()

    assert config.max_size_mb == 100
    assert config.max_age == timedelta(days=30)
    assert config.thumbnail_bounds() == (200, 200)
    assert config.preview_bounds() == (800, 600)
    assert config.jpeg_quality == 80


def test_memory_budget_is_half_of_configured_size() -> None:
    assert CacheConfig(max_size_mb=2).memory_budget_bytes() == 1024 * 1024


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_size_mb": 0},
        {"max_age_days": -1},
        {"thumbnail_max_width": 0},
        {"preview_max_height": -5},
        {"jpeg_quality": 0},
        {"jpeg_quality": 101},
    ],
)
def test_cache_config_rejects_invalid_values(overrides) -> None:
    with pytest.raises(ValueError):
        CacheConfig(**overrides)


def test_settings_manager_reads_environment(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PREVIEW_CACHE_MAX_SIZE_MB", "8")
    monkeypatch.setenv("PREVIEW_CACHE_MAX_AGE_DAYS", "7")
    monkeypatch.setenv("PREVIEW_CACHE_THUMBNAIL_MAX_WIDTH", "120")
    monkeypatch.setenv("PREVIEW_CACHE_BACKEND", "FILE")
    monkeypatch.setenv("PREVIEW_CACHE_FILES_DIR", str(tmp_path / "blobs"))
    monkeypatch.setenv("PREVIEW_CACHE_LOG_LEVEL", "debug")
    manager = SettingsManager(env_file=tmp_path / "missing.env")

    settings = manager.load()

    assert settings.cache.max_size_mb == 8
    assert settings.cache.max_age_days == 7
    assert settings.cache.thumbnail_max_width == 120
    assert settings.cache.thumbnail_max_height == 200
    assert settings.backend == "file"
    assert settings.files_dir == tmp_path / "blobs"
    assert settings.log_level == "DEBUG"


def test_settings_manager_rejects_unknown_backend(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PREVIEW_CACHE_BACKEND", "indexeddb")

    with pytest.raises(ValueError, match="Unknown storage backend"):
        SettingsManager(env_file=tmp_path / "missing.env").load()


def test_settings_manager_rejects_non_numeric_values(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PREVIEW_CACHE_MAX_AGE_DAYS", "forever")

    with pytest.raises(ValueError, match="PREVIEW_CACHE_MAX_AGE_DAYS"):
        SettingsManager(env_file=tmp_path / "missing.env").load()


def test_saved_env_file_is_loaded_back(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / "settings.env"
    manager = SettingsManager(env_file=env_file)
    settings = manager.load()
    settings.cache = CacheConfig(max_size_mb=16, max_age_days=3)
    settings.backend = "memory"
    manager.save(settings)

    for name in ("MAX_SIZE_MB", "MAX_AGE_DAYS", "BACKEND"):
        # registered so values exported by the dotenv load are undone afterwards
        monkeypatch.setenv(f"PREVIEW_CACHE_{name}", "")
        monkeypatch.delenv(f"PREVIEW_CACHE_{name}")
    reloaded = SettingsManager(env_file=env_file).load()

    assert reloaded.cache.max_size_mb == 16
    assert reloaded.cache.max_age_days == 3
    assert reloaded.backend == "memory"
