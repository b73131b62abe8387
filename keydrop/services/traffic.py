"""Per-origin daily traffic accounting.

Counters are memory-resident and reset when the process restarts. Admission
is optimistic: the size of the request being admitted is unknown until the
transfer completes, so an origin just under its ceiling may finish one
request that pushes it over.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable

import structlog

from keydrop.core.config import MEBIBYTE
from keydrop.core.scheduling import PeriodicTask

LOGGER = structlog.get_logger(__name__)

DEFAULT_UPLOAD_LIMIT = 100 * MEBIBYTE
DEFAULT_DOWNLOAD_LIMIT = 500 * MEBIBYTE
DEFAULT_SWEEP_INTERVAL = timedelta(hours=1)


@dataclass
class UsageRecord:
    day: date
    uploaded: int = 0
    downloaded: int = 0


@dataclass(frozen=True)
class UsageSnapshot:
    uploaded: int
    downloaded: int
    upload_limit: int
    download_limit: int


class TrafficLedger:
    """Upload and download byte counters keyed by ``(origin, local calendar day)``."""

    def __init__(
        self,
        *,
        upload_limit: int = DEFAULT_UPLOAD_LIMIT,
        download_limit: int = DEFAULT_DOWNLOAD_LIMIT,
        today: Callable[[], date] = date.today,
    ) -> None:
        if upload_limit <= 0 or download_limit <= 0:
            raise ValueError("traffic limits must be positive")
        self.upload_limit = upload_limit
        self.download_limit = download_limit
        self._today = today
        self._records: dict[tuple[str, date], UsageRecord] = {}
        self._lock = threading.Lock()
        self._sweeper: PeriodicTask | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _peek(self, origin: str) -> UsageRecord | None:
        return self._records.get((origin, self._today()))

    def _record_for(self, origin: str) -> UsageRecord:
        day = self._today()
        record = self._records.get((origin, day))
        if record is None:
            record = UsageRecord(day=day)
            self._records[(origin, day)] = record
        return record

    def check_upload_admission(self, origin: str) -> bool:
        with self._lock:
            record = self._peek(origin)
            used = record.uploaded if record else 0
        return used < self.upload_limit

    def check_download_admission(self, origin: str) -> bool:
        with self._lock:
            record = self._peek(origin)
            used = record.downloaded if record else 0
        return used < self.download_limit

    def record_upload(self, origin: str, nbytes: int) -> None:
        if nbytes < 0:
            raise ValueError("nbytes must be non-negative")
        with self._lock:
            self._record_for(origin).uploaded += nbytes

    def record_download(self, origin: str, nbytes: int) -> None:
        if nbytes < 0:
            raise ValueError("nbytes must be non-negative")
        with self._lock:
            self._record_for(origin).downloaded += nbytes

    def current_usage(self, origin: str) -> UsageSnapshot:
        with self._lock:
            record = self._peek(origin)
            uploaded = record.uploaded if record else 0
            downloaded = record.downloaded if record else 0
        return UsageSnapshot(
            uploaded=uploaded,
            downloaded=downloaded,
            upload_limit=self.upload_limit,
            download_limit=self.download_limit,
        )

    def sweep(self) -> int:
        """Forget every counter that does not belong to the current day."""

        today = self._today()
        with self._lock:
            stale = [key for key, record in self._records.items() if record.day != today]
            for key in stale:
                del self._records[key]
        if stale:
            LOGGER.info("usage_records_reclaimed", count=len(stale))
        return len(stale)

    def start_reclamation(self, interval: timedelta = DEFAULT_SWEEP_INTERVAL) -> None:
        if self._sweeper is not None:
            return
        self._sweeper = PeriodicTask("usage-ledger-sweep", self.sweep, interval.total_seconds())
        self._sweeper.start()

    def stop_reclamation(self) -> None:
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.stop()


__all__ = [
    "TrafficLedger",
    "UsageRecord",
    "UsageSnapshot",
    "DEFAULT_UPLOAD_LIMIT",
    "DEFAULT_DOWNLOAD_LIMIT",
    "DEFAULT_SWEEP_INTERVAL",
]
