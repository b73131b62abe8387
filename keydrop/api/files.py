"""Upload, download and delete endpoints."""

from __future__ import annotations

from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from fastapi.responses import JSONResponse

from keydrop.core.config import Settings
from keydrop.services import metrics
from keydrop.services.traffic import TrafficLedger
from keydrop.storage import ObjectStore

from .dependencies import client_identity, get_ledger, get_settings_dependency, get_store

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _limit_exceeded(direction: str, limit: int, used: int) -> JSONResponse:
    metrics.admission_denied_total.labels(direction=direction).inc()
    megabytes = limit / (1024 * 1024)
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": f"{direction.capitalize()} limit exceeded",
            "message": (
                f"Daily {direction} limit of {megabytes:g} MB exceeded for this IP address"
            ),
            "limit": limit,
            "used": used,
        },
    )


def content_disposition(filename: str) -> str:
    """Build an attachment header that survives non-ASCII file names."""

    fallback = filename.encode("ascii", errors="ignore").decode("ascii")
    fallback = fallback.replace('"', "").replace("\\", "") or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.post("", status_code=status.HTTP_201_CREATED, response_model=None)
def upload_file(
    file: UploadFile | None = File(default=None),
    store: ObjectStore = Depends(get_store),
    ledger: TrafficLedger = Depends(get_ledger),
    settings: Settings = Depends(get_settings_dependency),
    origin: str = Depends(client_identity),
) -> dict[str, str] | JSONResponse:
    """Store a file and return its public (read) and private (delete) keys."""

    if not ledger.check_upload_admission(origin):
        usage = ledger.current_usage(origin)
        LOGGER.info("upload_denied", origin=origin, used=usage.uploaded)
        return _limit_exceeded("upload", usage.upload_limit, usage.uploaded)

    if file is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "No file provided",
                "message": 'Please provide a file in the request body with the field name "file"',
            },
        )

    content = file.file.read(settings.max_file_size + 1)
    if len(content) > settings.max_file_size:
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={
                "error": "File too large",
                "message": f"Files are limited to {settings.max_file_size} bytes",
            },
        )

    keys = store.put(
        content,
        file.filename or "",
        file.content_type or DEFAULT_CONTENT_TYPE,
    )
    ledger.record_upload(origin, len(content))
    metrics.uploads_total.inc()
    metrics.transfer_bytes_total.labels(direction="upload").inc(len(content))

    return {"publicKey": keys.public_key, "privateKey": keys.private_key}


@router.get("/{public_key}", response_model=None)
def download_file(
    public_key: str,
    store: ObjectStore = Depends(get_store),
    ledger: TrafficLedger = Depends(get_ledger),
    origin: str = Depends(client_identity),
) -> Response:
    """Return the stored content with its original type and name."""

    if not ledger.check_download_admission(origin):
        usage = ledger.current_usage(origin)
        LOGGER.info("download_denied", origin=origin, used=usage.downloaded)
        return _limit_exceeded("download", usage.download_limit, usage.downloaded)

    stored = store.get(public_key)
    ledger.record_download(origin, len(stored.content))
    metrics.downloads_total.inc()
    metrics.transfer_bytes_total.labels(direction="download").inc(len(stored.content))

    return Response(
        content=stored.content,
        media_type=stored.content_type or DEFAULT_CONTENT_TYPE,
        headers={"Content-Disposition": content_disposition(stored.original_name)},
    )


@router.delete("/{private_key}", response_model=None)
def delete_file(
    private_key: str,
    store: ObjectStore = Depends(get_store),
) -> dict[str, object] | JSONResponse:
    """Remove a file and both of its metadata records."""

    if not store.delete(private_key):
        metrics.deletes_total.labels(outcome="not_found").inc()
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "error": "File not found",
                "message": "The requested file does not exist",
            },
        )

    metrics.deletes_total.labels(outcome="deleted").inc()
    return {"success": True, "message": "File deleted successfully"}
