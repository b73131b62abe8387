"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from keydrop.core.config import Settings
from keydrop.storage.models import format_timestamp, utcnow

from .dependencies import get_settings_dependency

router = APIRouter(tags=["health"])


@router.get("/health")
def health(settings: Settings = Depends(get_settings_dependency)) -> dict[str, str]:
    """Return a liveness indicator with the active storage provider."""

    return {
        "status": "ok",
        "timestamp": format_timestamp(utcnow()),
        "provider": settings.provider,
    }


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
