"""Background periodic execution on a daemon thread."""

from __future__ import annotations

import threading
from typing import Callable

import structlog

LOGGER = structlog.get_logger(__name__)


class PeriodicTask:
    """Run ``action`` every ``interval`` seconds until stopped.

    Each instance owns its thread and stop event, so two tasks never share
    state and can be stopped independently. Stopping does not interrupt an
    invocation that is already running; it only prevents the next one.
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], object],
        interval: float,
        *,
        run_immediately: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.action = action
        self.interval = interval
        self.run_immediately = run_immediately
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            # A fresh event per run keeps a previous, still-finishing thread stopped.
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._loop, args=(stop_event,), name=self.name, daemon=True
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        LOGGER.info("periodic_task_started", task=self.name, interval_seconds=self.interval)

    def stop(self, timeout: float | None = None) -> None:
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            if thread is None or stop_event is None:
                return
            self._thread = None
            self._stop_event = None
            stop_event.set()
        if timeout is not None and thread is not threading.current_thread():
            thread.join(timeout)
        LOGGER.info("periodic_task_stopped", task=self.name)

    def _loop(self, stop_event: threading.Event) -> None:
        if self.run_immediately and not stop_event.is_set():
            self._invoke()
        while not stop_event.wait(self.interval):
            self._invoke()

    def _invoke(self) -> None:
        try:
            self.action()
        except Exception as exc:
            LOGGER.error("periodic_task_failed", task=self.name, error=str(exc))


__all__ = ["PeriodicTask"]
