"""Select and initialize the configured object store."""

from __future__ import annotations

from pathlib import Path

import structlog

from keydrop.core.config import Settings
from keydrop.core.exceptions import ConfigurationError

from . import ObjectStore
from .local import LocalFileSystemStore
from .s3 import S3ObjectStore

LOGGER = structlog.get_logger(__name__)


def build_store(settings: Settings) -> ObjectStore:
    """Return an initialized store for ``settings.provider``."""

    provider = (settings.provider or "").strip().lower()
    store: ObjectStore
    if provider == "local":
        if not settings.folder:
            raise ConfigurationError("FOLDER is required for the local provider")
        store = LocalFileSystemStore(Path(settings.folder))
    elif provider == "s3":
        if not settings.aws_s3_bucket:
            raise ConfigurationError("AWS_S3_BUCKET is required for the s3 provider")
        store = S3ObjectStore(
            settings.aws_s3_bucket,
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
            file_prefix=settings.s3_file_prefix,
            metadata_prefix=settings.s3_metadata_prefix,
            create_bucket_if_missing=settings.s3_create_bucket,
        )
    else:
        raise ConfigurationError(
            f"Unknown provider type: {settings.provider}. Supported types: 'local', 's3'"
        )

    LOGGER.info("storage_provider_initializing", provider=provider)
    store.initialize()
    return store


__all__ = ["build_store"]
