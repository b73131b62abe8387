"""Local filesystem object store.

Layout under ``root``::

    files/<publicKey>          content bytes
    .metadata/<key>.json       metadata record, once per public and private key

Every write goes to a temporary sibling first and is moved into place with
``os.replace`` so readers never observe a torn file.
"""

from __future__ import annotations

import os
import secrets
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator

import structlog
from pydantic import ValidationError

from keydrop.core.exceptions import ConfigurationError, NotFound, StoreFailure

from .keys import KeyPair, generate_key_pair, validate_key
from .locks import KeyedLocks
from .models import FileMetadata, FileTimestamps, StoredFile, ensure_utc, utcnow

LOGGER = structlog.get_logger(__name__)

FILES_DIRNAME = "files"
METADATA_DIRNAME = ".metadata"


class LocalFileSystemStore:
    """Object store keeping content and metadata in plain files."""

    def __init__(
        self,
        root: Path | str,
        *,
        clock: Callable[[], datetime] = utcnow,
        key_factory: Callable[[], KeyPair] = generate_key_pair,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.files_dir = self.root / FILES_DIRNAME
        self.metadata_dir = self.root / METADATA_DIRNAME
        self._clock = clock
        self._key_factory = key_factory
        self._locks = locks or KeyedLocks()

    def initialize(self) -> None:
        try:
            self.files_dir.mkdir(parents=True, exist_ok=True)
            self.metadata_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                "Unable to prepare storage folder", context={"root": str(self.root)}
            ) from exc
        LOGGER.info("local_store_initialized", root=str(self.root))

    def _file_path(self, public_key: str) -> Path:
        return self.files_dir / public_key

    def _metadata_path(self, key: str) -> Path:
        return self.metadata_dir / f"{key}.json"

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        tmp_path = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    @staticmethod
    def _remove(path: Path) -> bool:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning("local_remove_failed", path=str(path), error=str(exc))
            return False
        return True

    def _read_metadata(self, key: str) -> FileMetadata | None:
        path = self._metadata_path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreFailure("Unable to read file metadata") from exc
        try:
            return FileMetadata.from_json(raw)
        except ValidationError as exc:
            raise StoreFailure("Corrupt file metadata", context={"path": str(path)}) from exc

    def _write_metadata_pair(self, metadata: FileMetadata, previous: FileMetadata) -> None:
        """Replace both copies, restoring the public one if the private write fails."""

        public_path = self._metadata_path(metadata.public_key)
        payload = metadata.to_json()
        try:
            self._write_atomic(public_path, payload)
        except OSError as exc:
            raise StoreFailure("Unable to write file metadata") from exc
        try:
            self._write_atomic(self._metadata_path(metadata.private_key), payload)
        except OSError as exc:
            try:
                self._write_atomic(public_path, previous.to_json())
            except OSError as restore_exc:
                LOGGER.error("local_metadata_restore_failed", error=str(restore_exc))
            raise StoreFailure("Unable to write file metadata") from exc

    def put(self, content: bytes, original_name: str, content_type: str) -> KeyPair:
        keys = self._key_factory()
        metadata = FileMetadata(
            public_key=keys.public_key,
            private_key=keys.private_key,
            original_name=original_name,
            mime_type=content_type,
            created_at=self._clock(),
            last_accessed=None,
            file_size=len(content),
        )
        payload = metadata.to_json()
        targets = (
            (self._file_path(keys.public_key), content),
            (self._metadata_path(keys.public_key), payload),
            (self._metadata_path(keys.private_key), payload),
        )

        written: list[Path] = []
        try:
            for path, data in targets:
                self._write_atomic(path, data)
                written.append(path)
        except OSError as exc:
            for path in written:
                self._remove(path)
            LOGGER.error("local_put_failed", error=str(exc), rolled_back=len(written))
            raise StoreFailure("Failed to store file") from exc

        LOGGER.info("file_stored", backend="local", size=len(content))
        return keys

    def get(self, public_key: str) -> StoredFile:
        validate_key(public_key, kind="public key")
        with self._locks.for_key(public_key):
            metadata = self._read_metadata(public_key)
            # A private key must not grant read access.
            if metadata is None or metadata.public_key != public_key:
                raise NotFound("File not found")

            try:
                content = self._file_path(public_key).read_bytes()
            except FileNotFoundError as exc:
                raise StoreFailure(
                    "File content missing for existing metadata",
                    context={"public_key": public_key[:8]},
                ) from exc
            except OSError as exc:
                raise StoreFailure("Unable to read file content") from exc

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
            private_path = self._metadata_path(private_key)
            if not private_path.exists():
                return False
            self._remove(self._file_path(metadata.public_key))
            self._remove(self._metadata_path(metadata.public_key))
            self._remove(private_path)
            if private_path.exists():
                raise StoreFailure(
                    "File metadata could not be removed",
                    context={"private_key": private_key[:8]},
                )

        LOGGER.info("file_deleted", backend="local", private_key=private_key[:8])
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

    def list_inactive_since(self, cutoff: datetime) -> Iterator[str]:
        cutoff = ensure_utc(cutoff)
        try:
            names = sorted(os.listdir(self.metadata_dir))
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StoreFailure("Unable to list file metadata") from exc

        for name in names:
            if name.startswith(".") or not name.endswith(".json"):
                continue
            key = name[: -len(".json")]
            try:
                metadata = FileMetadata.from_json((self.metadata_dir / name).read_bytes())
            except (OSError, ValidationError):
                continue
            # Each object is reported once, through its private-key copy.
            if metadata.private_key != key:
                continue
            if metadata.reference_time < cutoff:
                yield key


__all__ = ["LocalFileSystemStore", "FILES_DIRNAME", "METADATA_DIRNAME"]
