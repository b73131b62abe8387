"""S3-compatible object store backed by boto3."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Iterator

import boto3
import structlog
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from keydrop.core.exceptions import ConfigurationError, NotFound, StoreFailure

from .keys import KeyPair, generate_key_pair, validate_key
from .locks import KeyedLocks
from .models import FileMetadata, FileTimestamps, StoredFile, ensure_utc, utcnow

LOGGER = structlog.get_logger(__name__)

_MISSING_CODES = {"NoSuchKey", "NoSuchBucket", "404", "NotFound"}
METADATA_CONTENT_TYPE = "application/json"


def _is_missing(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code", "")) in _MISSING_CODES


class S3ObjectStore:
    """Object store keeping content and metadata as objects in one bucket."""

    def __init__(
        self,
        bucket: str | None,
        *,
        client: BaseClient | None = None,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        endpoint_url: str | None = None,
        file_prefix: str = "files/",
        metadata_prefix: str = "metadata/",
        create_bucket_if_missing: bool = False,
        clock: Callable[[], datetime] = utcnow,
        key_factory: Callable[[], KeyPair] = generate_key_pair,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.endpoint_url = endpoint_url
        self.file_prefix = file_prefix
        self.metadata_prefix = metadata_prefix
        self.create_bucket_if_missing = create_bucket_if_missing
        self._client = client
        self._initialized = False
        self._clock = clock
        self._key_factory = key_factory
        self._locks = locks or KeyedLocks()

    def _build_client(self) -> BaseClient:
        client_kwargs: dict[str, Any] = {
            # Bounded I/O: every call completes or fails within the timeouts.
            "config": Config(
                signature_version="s3v4",
                connect_timeout=10,
                read_timeout=60,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        }
        if self.region:
            client_kwargs["region_name"] = self.region
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url
        if self.access_key_id and self.secret_access_key:
            client_kwargs["aws_access_key_id"] = self.access_key_id
            client_kwargs["aws_secret_access_key"] = self.secret_access_key
        return boto3.client("s3", **client_kwargs)

    def initialize(self) -> None:
        if not self.bucket:
            raise ConfigurationError("AWS_S3_BUCKET is required for the s3 provider")
        if self._client is None:
            self._client = self._build_client()

        try:
            self._client.head_bucket(Bucket=self.bucket)
        except ClientError as exc:
            if not _is_missing(exc):
                raise ConfigurationError(
                    "Unable to access bucket", context={"bucket": self.bucket}
                ) from exc
            if not self.create_bucket_if_missing:
                raise ConfigurationError(
                    "Bucket does not exist and S3_CREATE_BUCKET is false",
                    context={"bucket": self.bucket},
                ) from exc
            self._create_bucket()
        except BotoCoreError as exc:
            raise ConfigurationError(
                "Unable to reach object storage", context={"bucket": self.bucket}
            ) from exc

        self._initialized = True
        LOGGER.info("s3_store_initialized", bucket=self.bucket, region=self.region)

    def _create_bucket(self) -> None:
        create_kwargs: dict[str, Any] = {"Bucket": self.bucket}
        if self.region and self.region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": self.region
            }
        LOGGER.info("s3_bucket_creating", bucket=self.bucket)
        try:
            self._client.create_bucket(**create_kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise ConfigurationError(
                "Unable to create bucket", context={"bucket": self.bucket}
            ) from exc

    @property
    def client(self) -> BaseClient:
        if not self._initialized or self._client is None:
            raise StoreFailure("Storage provider not initialized")
        return self._client

    def _file_key(self, public_key: str) -> str:
        return f"{self.file_prefix}{public_key}"

    def _metadata_key(self, key: str) -> str:
        return f"{self.metadata_prefix}{key}.json"

    def _read_object(self, object_key: str) -> bytes | None:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=object_key)
            return response["Body"].read()
        except ClientError as exc:
            if _is_missing(exc):
                return None
            raise StoreFailure("Object read failed", context={"key": object_key}) from exc
        except BotoCoreError as exc:
            raise StoreFailure("Object read failed", context={"key": object_key}) from exc

    def _write_object(self, object_key: str, data: bytes, content_type: str) -> None:
        self.client.put_object(
            Bucket=self.bucket, Key=object_key, Body=data, ContentType=content_type
        )

    def _remove(self, object_key: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=object_key)
        except (BotoCoreError, ClientError) as exc:
            LOGGER.warning("s3_remove_failed", key=object_key, error=str(exc))
            return False
        return True

    def _read_metadata(self, key: str) -> FileMetadata | None:
        raw = self._read_object(self._metadata_key(key))
        if raw is None:
            return None
        try:
            return FileMetadata.from_json(raw)
        except ValidationError as exc:
            raise StoreFailure("Corrupt file metadata", context={"key": key[:8]}) from exc

    def _write_metadata_pair(self, metadata: FileMetadata, previous: FileMetadata) -> None:
        """Replace both copies, restoring the public one if the private write fails."""

        public_key = self._metadata_key(metadata.public_key)
        payload = metadata.to_json()
        try:
            self._write_object(public_key, payload, METADATA_CONTENT_TYPE)
        except (BotoCoreError, ClientError) as exc:
            raise StoreFailure("Unable to write file metadata") from exc
        try:
            self._write_object(
                self._metadata_key(metadata.private_key), payload, METADATA_CONTENT_TYPE
            )
        except (BotoCoreError, ClientError) as exc:
            try:
                self._write_object(public_key, previous.to_json(), METADATA_CONTENT_TYPE)
            except (BotoCoreError, ClientError) as restore_exc:
                LOGGER.error("s3_metadata_restore_failed", error=str(restore_exc))
            raise StoreFailure("Unable to write file metadata") from exc

    def put(self, content: bytes, original_name: str, content_type: str) -> KeyPair:
        keys = self._key_factory()
        file_key = self._file_key(keys.public_key)
        metadata = FileMetadata(
            public_key=keys.public_key,
            private_key=keys.private_key,
            original_name=original_name,
            mime_type=content_type,
            created_at=self._clock(),
            last_accessed=None,
            file_size=len(content),
            file_path=file_key,
        )
        payload = metadata.to_json()
        targets = (
            (file_key, content, content_type),
            (self._metadata_key(keys.public_key), payload, METADATA_CONTENT_TYPE),
            (self._metadata_key(keys.private_key), payload, METADATA_CONTENT_TYPE),
        )

        written: list[str] = []
        try:
            for object_key, data, object_type in targets:
                self._write_object(object_key, data, object_type)
                written.append(object_key)
        except (BotoCoreError, ClientError) as exc:
            for object_key in written:
                self._remove(object_key)
            LOGGER.error("s3_put_failed", error=str(exc), rolled_back=len(written))
            raise StoreFailure("Failed to store file") from exc

        LOGGER.info("file_stored", backend="s3", bucket=self.bucket, size=len(content))
        return keys

    def get(self, public_key: str) -> StoredFile:
        validate_key(public_key, kind="public key")
        with self._locks.for_key(public_key):
            metadata = self._read_metadata(public_key)
            if metadata is None or metadata.public_key != public_key:
                raise NotFound("File not found")

            content = self._read_object(metadata.file_path or self._file_key(public_key))
            if content is None:
                raise StoreFailure(
                    "File content missing for existing metadata",
                    context={"public_key": public_key[:8]},
                )

            self._write_metadata_pair(metadata.accessed_at(self._clock()), metadata)

        return StoredFile(
            content=content,
            content_type=metadata.mime_type,
            original_name=metadata.original_name,
        )

    def delete(self, private_key: str) -> bool:
        validate_key(private_key, kind="private key")
        metadata = self._read_metadata(private_key)
        if metadata is None or metadata.private_key != private_key:
            return False

        with self._locks.for_key(metadata.public_key):
            private_metadata_key = self._metadata_key(private_key)
            if self._read_object(private_metadata_key) is None:
                return False
            self._remove(metadata.file_path or self._file_key(metadata.public_key))
            self._remove(self._metadata_key(metadata.public_key))
            if not self._remove(private_metadata_key):
                raise StoreFailure(
                    "File metadata could not be removed",
                    context={"private_key": private_key[:8]},
                )

        LOGGER.info("file_deleted", backend="s3", private_key=private_key[:8])
        return True

    def get_metadata(self, key: str) -> FileTimestamps:
        validate_key(key)
        try:
            metadata = self._read_metadata(key)
        except StoreFailure as exc:
            raise NotFound("File metadata unreadable", context={"key": key[:8]}) from exc
        if metadata is None:
            raise NotFound("File metadata not found")
        return FileTimestamps(
            created_at=metadata.created_at, last_accessed=metadata.last_accessed
        )

    def _iter_metadata_keys(self) -> Iterator[str]:
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.metadata_prefix):
                for entry in page.get("Contents", []):
                    yield entry["Key"]
        except (BotoCoreError, ClientError) as exc:
            raise StoreFailure("Unable to list file metadata") from exc

    def list_inactive_since(self, cutoff: datetime) -> Iterator[str]:
        cutoff = ensure_utc(cutoff)
        for object_key in self._iter_metadata_keys():
            name = object_key[len(self.metadata_prefix):]
            if "/" in name or not name.endswith(".json"):
                continue
            key = name[: -len(".json")]
            try:
                metadata = self._read_metadata(key)
            except StoreFailure:
                continue
            if metadata is None or metadata.private_key != key:
                continue
            if metadata.reference_time < cutoff:
                yield key


__all__ = ["S3ObjectStore"]
