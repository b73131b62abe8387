"""Storage abstraction (local filesystem or S3-compatible object storage)."""

from __future__ import annotations

from datetime import datetime
from typing import Iterator, Protocol

from .keys import KeyPair
from .models import FileTimestamps, StoredFile


class ObjectStore(Protocol):
    def initialize(self) -> None:
        ...

    def put(self, content: bytes, original_name: str, content_type: str) -> KeyPair:
        ...

    def get(self, public_key: str) -> StoredFile:
        ...

    def delete(self, private_key: str) -> bool:
        ...

    def get_metadata(self, key: str) -> FileTimestamps:
        ...

    def list_inactive_since(self, cutoff: datetime) -> Iterator[str]:  # yields private keys
        ...


__all__ = ["ObjectStore", "KeyPair", "StoredFile", "FileTimestamps"]
