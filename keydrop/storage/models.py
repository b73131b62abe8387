"""Persisted metadata record and the value types returned by object stores."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return ensure_utc(value).isoformat(timespec="microseconds").replace("+00:00", "Z")


class FileMetadata(BaseModel):
    """Metadata document stored once under each of the object's two keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    public_key: str = Field(alias="publicKey", min_length=1)
    private_key: str = Field(alias="privateKey", min_length=1)
    original_name: str = Field(alias="originalName")
    mime_type: str = Field(alias="mimeType")
    created_at: datetime = Field(alias="createdAt")
    last_accessed: datetime | None = Field(default=None, alias="lastAccessed")
    file_size: int = Field(alias="fileSize", ge=0)
    # Only written by object-storage backends, where content may live under a
    # custom prefix.
    file_path: str | None = Field(default=None, alias="filePath")

    @field_validator("created_at", "last_accessed")
    @classmethod
    def _normalize_timezone(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return ensure_utc(value)

    @field_serializer("created_at", "last_accessed")
    def _serialize_timestamp(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        return format_timestamp(value)

    @property
    def reference_time(self) -> datetime:
        """Timestamp used for inactivity: last access, or creation if never read."""

        return self.last_accessed or self.created_at

    def to_json(self) -> bytes:
        exclude = {"file_path"} if self.file_path is None else None
        return self.model_dump_json(by_alias=True, exclude=exclude).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes | str) -> "FileMetadata":
        return cls.model_validate_json(raw)

    def accessed_at(self, now: datetime) -> "FileMetadata":
        """Return a copy with ``last_accessed`` set, never earlier than creation."""

        floor = self.created_at + timedelta(microseconds=1)
        return self.model_copy(update={"last_accessed": max(ensure_utc(now), floor)})


@dataclass(frozen=True)
class StoredFile:
    content: bytes
    content_type: str
    original_name: str


@dataclass(frozen=True)
class FileTimestamps:
    created_at: datetime
    last_accessed: datetime | None


__all__ = [
    "FileMetadata",
    "FileTimestamps",
    "StoredFile",
    "ensure_utc",
    "format_timestamp",
    "utcnow",
]
