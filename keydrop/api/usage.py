"""Traffic usage endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from keydrop.services.traffic import TrafficLedger

from .dependencies import client_identity, get_ledger

router = APIRouter(tags=["usage"])


@router.get("/usage")
def current_usage(
    ledger: TrafficLedger = Depends(get_ledger),
    origin: str = Depends(client_identity),
) -> dict[str, int]:
    """Return today's traffic for the calling address."""

    snapshot = ledger.current_usage(origin)
    return {
        "upload": snapshot.uploaded,
        "download": snapshot.downloaded,
        "uploadLimit": snapshot.upload_limit,
        "downloadLimit": snapshot.download_limit,
    }
