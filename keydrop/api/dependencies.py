"""Request-scoped accessors for application state."""

from __future__ import annotations

from fastapi import Request

from keydrop.core.config import Settings
from keydrop.services.traffic import TrafficLedger
from keydrop.storage import ObjectStore


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ObjectStore:
    return request.app.state.store


def get_ledger(request: Request) -> TrafficLedger:
    return request.app.state.ledger


def client_identity(request: Request) -> str:
    """Return the caller's address, honouring ``X-Forwarded-For`` behind a proxy."""

    settings: Settings = request.app.state.settings
    if settings.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
