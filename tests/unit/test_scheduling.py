from __future__ import annotations

import threading

import pytest

from keydrop.core.scheduling import PeriodicTask


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PeriodicTask("bad", lambda: None, 0)


def test_run_immediately_invokes_before_the_first_interval() -> None:
    called = threading.Event()
    task = PeriodicTask("immediate", called.set, 3600, run_immediately=True)

    task.start()
    try:
        assert called.wait(timeout=5)
    finally:
        task.stop(timeout=5)


def test_without_run_immediately_the_action_waits_for_the_interval() -> None:
    called = threading.Event()
    task = PeriodicTask("deferred", called.set, 3600)

    task.start()
    try:
        assert not called.wait(timeout=0.2)
    finally:
        task.stop(timeout=5)


def test_failures_do_not_stop_the_loop() -> None:
    calls: list[int] = []
    done = threading.Event()

    def flaky() -> None:
        calls.append(1)
        if len(calls) >= 3:
            done.set()
        raise RuntimeError("boom")

    task = PeriodicTask("flaky", flaky, 0.01, run_immediately=True)
    task.start()
    try:
        assert done.wait(timeout=5)
    finally:
        task.stop(timeout=5)

    assert len(calls) >= 3


def test_start_and_stop_are_idempotent() -> None:
    task = PeriodicTask("idle", lambda: None, 3600)

    task.stop()
    task.start()
    task.start()
    assert task.running

    task.stop(timeout=5)
    task.stop(timeout=5)
    assert not task.running


def test_task_can_be_restarted_after_stop() -> None:
    runs = threading.Semaphore(0)
    task = PeriodicTask("restartable", runs.release, 3600, run_immediately=True)

    task.start()
    assert runs.acquire(timeout=5)
    task.stop(timeout=5)

    task.start()
    try:
        assert runs.acquire(timeout=5)
    finally:
        task.stop(timeout=5)
