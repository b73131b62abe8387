"""Entrypoint for the FastAPI application."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

from dotenv import load_dotenv

# Load .env for local runs so boto3's credential chain sees it too.
env_path = os.path.join(os.getcwd(), ".env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=env_path)

import structlog
from fastapi import FastAPI

from .api import files, health, usage
from .api.errors import register_exception_handlers
from .core.config import Settings, get_settings
from .core.exceptions import ConfigurationError
from .core.logging import configure_logging
from .services.eviction import EvictionScheduler
from .services.traffic import TrafficLedger
from .storage import ObjectStore
from .storage.factory import build_store

LOGGER = structlog.get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    store: ObjectStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    ledger = TrafficLedger(
        upload_limit=settings.upload_limit,
        download_limit=settings.download_limit,
    )
    scheduler = EvictionScheduler.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active_store = store or build_store(settings)
        app.state.store = active_store
        LOGGER.info("storage_provider_ready", provider=settings.provider)

        try:
            scheduler.initialize(active_store)
        except ConfigurationError as exc:
            # Serving files does not depend on the cleanup job.
            LOGGER.error("cleanup_job_init_failed", error=str(exc))
        ledger.start_reclamation(
            timedelta(seconds=settings.usage_sweep_interval_seconds)
        )
        try:
            yield
        finally:
            scheduler.stop()
            ledger.stop_reclamation()
            LOGGER.info("app_shutdown")

    app = FastAPI(title="Keydrop", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.scheduler = scheduler

    register_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(usage.router)
    app.include_router(files.router)

    return app


app = create_app()
