from __future__ import annotations

import pytest

from keydrop.core.config import Settings
from keydrop.storage.local import LocalFileSystemStore
from keydrop.tasks import cleanup_tasks
from keydrop.tasks.worker import celery


def test_cleanup_task_is_registered_and_scheduled() -> None:
    assert "tasks.cleanup.run_inactive_cleanup" in celery.tasks
    schedule = celery.conf.beat_schedule["cleanup-inactive-files"]
    assert schedule["task"] == "tasks.cleanup.run_inactive_cleanup"


def test_cleanup_task_deletes_inactive_files(
    monkeypatch: pytest.MonkeyPatch,
    settings: Settings,
    local_store: LocalFileSystemStore,
) -> None:
    # local_store's clock is pinned well before the real current time.
    old = local_store.put(b"stale", "old.txt", "text/plain")

    monkeypatch.setattr(cleanup_tasks, "get_settings", lambda: settings)
    monkeypatch.setattr(cleanup_tasks, "build_store", lambda _settings: local_store)

    result = cleanup_tasks.run_inactive_cleanup()

    assert result == {"deleted": 1}
    assert local_store.delete(old.private_key) is False


def test_cleanup_task_reports_zero_when_nothing_is_stale(
    monkeypatch: pytest.MonkeyPatch, settings: Settings, tmp_path
) -> None:
    store = LocalFileSystemStore(tmp_path / "fresh")
    store.initialize()
    store.put(b"new", "new.txt", "text/plain")

    monkeypatch.setattr(cleanup_tasks, "get_settings", lambda: settings)
    monkeypatch.setattr(cleanup_tasks, "build_store", lambda _settings: store)

    assert cleanup_tasks.run_inactive_cleanup() == {"deleted": 0}
