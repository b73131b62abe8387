from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Iterator

import pytest

from keydrop.core.exceptions import ConfigurationError, StoreFailure
from keydrop.services.eviction import EvictionScheduler, SchedulerState
from keydrop.storage.local import LocalFileSystemStore


class ScriptedStore:
    """Store double whose scan and delete outcomes are fixed up front."""

    def __init__(
        self,
        candidates: list[str],
        *,
        fail_on: frozenset[str] = frozenset(),
        broken_after: int | None = None,
    ) -> None:
        self.candidates = candidates
        self.fail_on = fail_on
        self.broken_after = broken_after
        self.deleted: list[str] = []
        self.cutoffs: list[datetime] = []

    def list_inactive_since(self, cutoff: datetime) -> Iterator[str]:
        self.cutoffs.append(cutoff)
        for index, key in enumerate(self.candidates):
            if self.broken_after is not None and index == self.broken_after:
                raise StoreFailure("listing interrupted")
            yield key

    def delete(self, private_key: str) -> bool:
        if private_key in self.fail_on:
            raise StoreFailure("delete failed")
        self.deleted.append(private_key)
        return True


def test_cycle_deletes_only_files_past_the_inactivity_period(
    local_store: LocalFileSystemStore, clock
) -> None:
    stale = local_store.put(b"old", "old.txt", "text/plain")
    clock.advance(days=40)
    fresh = local_store.put(b"new", "new.txt", "text/plain")

    scheduler = EvictionScheduler(
        store=local_store, inactivity_period=timedelta(days=30), clock=clock
    )

    assert scheduler.run_cleanup_cycle() == 1
    assert local_store.delete(stale.private_key) is False
    assert local_store.get(fresh.public_key).content == b"new"


def test_recent_access_keeps_an_old_file(local_store: LocalFileSystemStore, clock) -> None:
    keys = local_store.put(b"popular", "p.txt", "text/plain")
    clock.advance(days=29)
    local_store.get(keys.public_key)
    clock.advance(days=29)

    scheduler = EvictionScheduler(store=local_store, clock=clock)

    assert scheduler.run_cleanup_cycle() == 0
    assert local_store.get(keys.public_key).content == b"popular"


def test_cutoff_is_now_minus_inactivity_period(clock) -> None:
    store = ScriptedStore([])
    scheduler = EvictionScheduler(store=store, inactivity_period=timedelta(days=7), clock=clock)

    scheduler.run_cleanup_cycle()

    assert store.cutoffs == [clock.now - timedelta(days=7)]


def test_one_failed_delete_does_not_abort_the_cycle(clock) -> None:
    store = ScriptedStore(["a", "b", "c"], fail_on=frozenset({"b"}))
    scheduler = EvictionScheduler(store=store, clock=clock)

    assert scheduler.run_cleanup_cycle() == 2
    assert store.deleted == ["a", "c"]


@pytest.mark.parametrize("broken_after", [0, 2])
def test_enumeration_failure_ends_the_cycle_with_zero(clock, broken_after: int) -> None:
    store = ScriptedStore(["a", "b", "c"], broken_after=broken_after)
    scheduler = EvictionScheduler(store=store, clock=clock)

    assert scheduler.run_cleanup_cycle() == 0
    assert store.deleted == ["a", "b"][:broken_after]


def test_cycle_without_a_store_is_a_no_op() -> None:
    assert EvictionScheduler().run_cleanup_cycle() == 0


def test_initialize_requires_a_store() -> None:
    with pytest.raises(ConfigurationError):
        EvictionScheduler().initialize(None)


def test_initialize_runs_a_cycle_immediately_and_stop_is_idempotent(clock) -> None:
    ran = threading.Event()

    class SignallingStore(ScriptedStore):
        def list_inactive_since(self, cutoff: datetime) -> Iterator[str]:
            ran.set()
            return iter(())

    scheduler = EvictionScheduler(cleanup_interval=timedelta(hours=24), clock=clock)
    assert scheduler.state is SchedulerState.STOPPED

    scheduler.initialize(SignallingStore([]))
    try:
        assert scheduler.state is SchedulerState.RUNNING
        assert ran.wait(timeout=5)
    finally:
        scheduler.stop()
    scheduler.stop()

    assert scheduler.state is SchedulerState.STOPPED


def test_second_initialize_keeps_the_running_job(clock) -> None:
    first = ScriptedStore([])
    second = ScriptedStore(["x"])
    scheduler = EvictionScheduler(clock=clock)

    scheduler.initialize(first)
    try:
        scheduler.initialize(second)
        assert scheduler.state is SchedulerState.RUNNING
    finally:
        scheduler.stop()

    assert second.cutoffs == []


def test_from_settings_converts_days_and_hours(settings) -> None:
    settings.inactivity_period_days = 2
    settings.cleanup_interval_hours = 0.5

    scheduler = EvictionScheduler.from_settings(settings)

    assert scheduler.inactivity_period == timedelta(days=2)
    assert scheduler.cleanup_interval == timedelta(minutes=30)
