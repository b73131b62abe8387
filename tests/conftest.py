"""Pytest configuration and fixtures for keydrop tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from fakes import FakeClock, FakeS3Client

from keydrop.core.config import Settings
from keydrop.storage.local import LocalFileSystemStore
from keydrop.storage.s3 import S3ObjectStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def local_store(tmp_path: Path, clock: FakeClock) -> LocalFileSystemStore:
    store = LocalFileSystemStore(tmp_path / "storage", clock=clock)
    store.initialize()
    return store


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def s3_store(fake_s3: FakeS3Client, clock: FakeClock) -> S3ObjectStore:
    store = S3ObjectStore("keydrop-test", client=fake_s3, clock=clock)
    store.initialize()
    return store


@pytest.fixture(params=["local", "s3"])
def store(
    request: pytest.FixtureRequest,
    local_store: LocalFileSystemStore,
    s3_store: S3ObjectStore,
) -> LocalFileSystemStore | S3ObjectStore:
    """Run a test against both backends."""

    return local_store if request.param == "local" else s3_store


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        PROVIDER="local",
        FOLDER=str(tmp_path / "api-storage"),
        UPLOAD_LIMIT=1024,
        DOWNLOAD_LIMIT=4096,
        MAX_FILE_SIZE=8192,
    )
