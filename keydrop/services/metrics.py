"""Prometheus metric definitions for file traffic and eviction."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

uploads_total = Counter(
    "keydrop_uploads_total",
    "Files stored successfully.",
)

downloads_total = Counter(
    "keydrop_downloads_total",
    "Files served successfully.",
)

deletes_total = Counter(
    "keydrop_deletes_total",
    "Delete requests by outcome.",
    labelnames=["outcome"],
)

transfer_bytes_total = Counter(
    "keydrop_transfer_bytes_total",
    "Bytes moved through the API by direction.",
    labelnames=["direction"],
)

admission_denied_total = Counter(
    "keydrop_admission_denied_total",
    "Requests rejected because the daily traffic ceiling was reached.",
    labelnames=["direction"],
)

evicted_files_total = Counter(
    "keydrop_evicted_files_total",
    "Inactive files removed by cleanup cycles.",
)

cleanup_cycle_seconds = Histogram(
    "keydrop_cleanup_cycle_seconds",
    "Duration of inactive-file cleanup cycles in seconds.",
)

__all__ = [
    "uploads_total",
    "downloads_total",
    "deletes_total",
    "transfer_bytes_total",
    "admission_denied_total",
    "evicted_files_total",
    "cleanup_cycle_seconds",
]
