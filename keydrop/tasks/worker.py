"""Celery application factory."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import structlog
from celery import Celery, signals

from keydrop.core.config import get_settings

LOGGER = structlog.get_logger(__name__)

settings = get_settings()

celery = Celery(
    "keydrop",
    broker=settings.broker_url,
    backend=settings.result_backend,
)

celery.conf.update(
    include=["keydrop.tasks.cleanup_tasks"],
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
    beat_schedule={
        "cleanup-inactive-files": {
            "task": "tasks.cleanup.run_inactive_cleanup",
            "schedule": timedelta(seconds=settings.cleanup_interval_seconds),
        },
    },
)

LOGGER.info(
    "celery_bootstrap_ready",
    broker=settings.broker_url,
    backend=settings.result_backend,
)

# Import task definitions so the worker registers them regardless of entrypoint.
from . import cleanup_tasks  # noqa: E402,F401  # isort: skip


@signals.worker_ready.connect
def _log_worker_configuration(sender: Any | None = None, **_: Any) -> None:
    """Emit structured worker configuration details after startup."""

    app = sender.app if sender is not None else celery
    registered_tasks = sorted(
        task_name for task_name in app.tasks.keys() if task_name.startswith("tasks.")
    )
    LOGGER.info(
        "celery_worker_configuration",
        registered_tasks=registered_tasks,
        cleanup_interval_hours=settings.cleanup_interval_hours,
        inactivity_period_days=settings.inactivity_period_days,
    )


__all__ = ["celery"]
