"""In-memory stand-ins shared by the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Iterator

from botocore.exceptions import ClientError


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class _Body:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class _ListObjectsPaginator:
    def __init__(self, client: "FakeS3Client", page_size: int = 2) -> None:
        self.client = client
        self.page_size = page_size

    def paginate(self, Bucket: str, Prefix: str = "") -> Iterator[dict[str, Any]]:
        if self.client.fail_list:
            raise _client_error("InternalError", "ListObjectsV2")
        objects = self.client._bucket(Bucket, "ListObjectsV2")
        keys = sorted(key for key in objects if key.startswith(Prefix))
        for start in range(0, len(keys), self.page_size):
            chunk = keys[start : start + self.page_size]
            yield {"Contents": [{"Key": key} for key in chunk], "KeyCount": len(chunk)}


class FakeS3Client:
    """In-memory stand-in for the subset of the boto3 S3 client the store uses."""

    def __init__(self, buckets: tuple[str, ...] = ("keydrop-test",)) -> None:
        self.buckets: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in buckets}
        self.fail_put: Callable[[str], bool] = lambda key: False
        self.fail_delete: Callable[[str], bool] = lambda key: False
        self.fail_list = False
        self.created: list[dict[str, Any]] = []

    def _bucket(self, name: str, operation: str) -> dict[str, dict[str, Any]]:
        if name not in self.buckets:
            raise _client_error("NoSuchBucket", operation)
        return self.buckets[name]

    def head_bucket(self, Bucket: str) -> dict[str, Any]:
        if Bucket not in self.buckets:
            raise _client_error("404", "HeadBucket")
        return {}

    def create_bucket(self, Bucket: str, **kwargs: Any) -> dict[str, Any]:
        self.buckets.setdefault(Bucket, {})
        self.created.append({"Bucket": Bucket, **kwargs})
        return {}

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str | None = None, **_: Any
    ) -> dict[str, Any]:
        objects = self._bucket(Bucket, "PutObject")
        if self.fail_put(Key):
            raise _client_error("InternalError", "PutObject")
        objects[Key] = {"Body": bytes(Body), "ContentType": ContentType}
        return {}

    def get_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        objects = self._bucket(Bucket, "GetObject")
        if Key not in objects:
            raise _client_error("NoSuchKey", "GetObject")
        stored = objects[Key]
        return {"Body": _Body(stored["Body"]), "ContentType": stored["ContentType"]}

    def delete_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        objects = self._bucket(Bucket, "DeleteObject")
        if self.fail_delete(Key):
            raise _client_error("InternalError", "DeleteObject")
        objects.pop(Key, None)
        return {}

    def get_paginator(self, operation_name: str) -> _ListObjectsPaginator:
        assert operation_name == "list_objects_v2"
        return _ListObjectsPaginator(self)

    def objects(self, bucket: str = "keydrop-test") -> dict[str, dict[str, Any]]:
        return self.buckets[bucket]
