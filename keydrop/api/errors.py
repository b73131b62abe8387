"""Map storage error kinds onto HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from keydrop.core.exceptions import (
    ConfigurationError,
    KeydropError,
    NotFound,
    StoreFailure,
    ValidationFailure,
)

LOGGER = structlog.get_logger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[KeydropError], int], ...] = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ValidationFailure, status.HTTP_400_BAD_REQUEST),
    (StoreFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: KeydropError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def keydrop_exception_handler(request: Request, exc: KeydropError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        LOGGER.error(
            "request_failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
        )
    else:
        LOGGER.info(
            "request_rejected",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=status_code,
        )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KeydropError, keydrop_exception_handler)


__all__ = ["register_exception_handlers", "keydrop_exception_handler", "status_for"]
