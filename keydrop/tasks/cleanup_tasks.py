"""Celery task running one inactive-file cleanup cycle."""

from __future__ import annotations

import structlog

from keydrop.core.config import get_settings
from keydrop.services.eviction import EvictionScheduler
from keydrop.storage.factory import build_store

from .worker import celery

LOGGER = structlog.get_logger(__name__)


@celery.task(name="tasks.cleanup.run_inactive_cleanup")
def run_inactive_cleanup() -> dict[str, int]:
    """Delete files inactive for longer than ``INACTIVITY_PERIOD_DAYS``."""

    settings = get_settings()
    store = build_store(settings)
    scheduler = EvictionScheduler.from_settings(settings, store=store)
    deleted = scheduler.run_cleanup_cycle()
    LOGGER.info("cleanup_task_completed", provider=settings.provider, deleted=deleted)
    return {"deleted": deleted}
