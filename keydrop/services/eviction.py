"""Periodic removal of files that have not been accessed for a while."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

import structlog

from keydrop.core.config import Settings
from keydrop.core.exceptions import ConfigurationError
from keydrop.core.scheduling import PeriodicTask
from keydrop.services import metrics
from keydrop.storage import ObjectStore
from keydrop.storage.models import utcnow

LOGGER = structlog.get_logger(__name__)

DEFAULT_INACTIVITY_PERIOD = timedelta(days=30)
DEFAULT_CLEANUP_INTERVAL = timedelta(hours=24)


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class EvictionScheduler:
    """Deletes files whose last access (or creation) predates the inactivity period.

    ``initialize`` runs one cleanup cycle right away and then one per
    ``cleanup_interval``. Cycles use the store's regular delete path, so the
    same per-object guarantees apply as for caller-initiated deletes.
    """

    def __init__(
        self,
        *,
        store: ObjectStore | None = None,
        inactivity_period: timedelta = DEFAULT_INACTIVITY_PERIOD,
        cleanup_interval: timedelta = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.inactivity_period = inactivity_period
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._store = store
        self._task: PeriodicTask | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls, settings: Settings, *, store: ObjectStore | None = None
    ) -> "EvictionScheduler":
        return cls(
            store=store,
            inactivity_period=timedelta(seconds=settings.inactivity_period_seconds),
            cleanup_interval=timedelta(seconds=settings.cleanup_interval_seconds),
        )

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.RUNNING if self._task is not None else SchedulerState.STOPPED

    def initialize(self, store: ObjectStore | None) -> None:
        if store is None:
            raise ConfigurationError("Storage provider is required for cleanup job")
        with self._lock:
            if self._task is not None:
                LOGGER.warning("cleanup_job_already_running")
                return
            self._store = store
            self._task = PeriodicTask(
                "inactive-file-cleanup",
                self.run_cleanup_cycle,
                self.cleanup_interval.total_seconds(),
                run_immediately=True,
            )
            self._task.start()
        LOGGER.info(
            "cleanup_job_initialized",
            interval_hours=self.cleanup_interval.total_seconds() / 3600,
            inactivity_days=self.inactivity_period.total_seconds() / 86400,
        )

    def stop(self) -> None:
        with self._lock:
            task, self._task = self._task, None
        if task is None:
            return
        task.stop()
        LOGGER.info("cleanup_job_stopped")

    def run_cleanup_cycle(self) -> int:
        """Run one cleanup pass and return how many files were deleted."""

        store = self._store
        if store is None:
            LOGGER.error("cleanup_job_not_initialized")
            return 0

        cutoff = self._clock() - self.inactivity_period
        LOGGER.info("cleanup_cycle_started", inactive_since=cutoff.isoformat())

        deleted = 0
        candidates = 0
        with metrics.cleanup_cycle_seconds.time():
            try:
                for private_key in store.list_inactive_since(cutoff):
                    candidates += 1
                    try:
                        if store.delete(private_key):
                            deleted += 1
                            LOGGER.info("cleanup_file_deleted", private_key=private_key[:8])
                    except Exception as exc:
                        LOGGER.error(
                            "cleanup_file_delete_failed",
                            private_key=private_key[:8],
                            error=str(exc),
                        )
            except Exception as exc:
                LOGGER.error("cleanup_cycle_failed", error=str(exc), candidates=candidates)
                metrics.evicted_files_total.inc(deleted)
                return 0

        metrics.evicted_files_total.inc(deleted)
        LOGGER.info("cleanup_cycle_completed", candidates=candidates, deleted=deleted)
        return deleted


__all__ = [
    "EvictionScheduler",
    "SchedulerState",
    "DEFAULT_INACTIVITY_PERIOD",
    "DEFAULT_CLEANUP_INTERVAL",
]
