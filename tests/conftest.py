# tests/conftest.py

"""Shared pytest fixtures for all catalog tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from catalog_sync.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Point the cache database and log directory at a per-test tmpdir."""
    monkeypatch.setattr(
        Settings, "CACHE_DB_PATH", tmp_path / "catalog_cache.db"
    )
    monkeypatch.setattr(Settings, "LOGS_DIR", tmp_path / "logs")
    yield
