from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest

from preview_cache.data import DatabaseConfig, DatabaseManager
from preview_cache.data.storage import (
    AttachmentStore,
    FileAttachmentStore,
    InMemoryAttachmentStore,
    SqlAttachmentStore,
)
from preview_cache.utils import LoggingOptions, configure_logging


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> None:
    """Keep test runs on stderr only; no rotating log file in the user cache."""

    configure_logging(LoggingOptions(level="DEBUG", file_sink=False))


@pytest.fixture
def database(tmp_path) -> Iterator[DatabaseManager]:
    """Create an isolated SQLite database for store tests."""

    db_path = tmp_path / "cache.db"
    config = DatabaseConfig(path=db_path)
    manager = DatabaseManager(config)
    manager.ensure_schema()
    yield manager
    manager.dispose()


@pytest.fixture(params=["sqlite", "file", "memory"])
async def store(request, tmp_path) -> AsyncIterator[AttachmentStore]:
    """Every persistent backend, exercised against the same contract."""

    backend: AttachmentStore
    if request.param == "sqlite":
        backend = SqlAttachmentStore(config=DatabaseConfig(path=tmp_path / "cache.db"))
    elif request.param == "file":
        backend = FileAttachmentStore(base_dir=tmp_path / "attachments")
    else:
        backend = InMemoryAttachmentStore()
    yield backend
    await backend.close()
