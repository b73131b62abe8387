"""Per-object serialization without a store-wide lock."""

from __future__ import annotations

import threading
import zlib


class KeyedLocks:
    """Fixed pool of locks striped by key.

    Two operations on the same key always share a lock; operations on
    different keys rarely do.
    """

    def __init__(self, stripes: int = 64) -> None:
        if stripes <= 0:
            raise ValueError("stripes must be positive")
        self._locks = [threading.Lock() for _ in range(stripes)]

    def for_key(self, key: str) -> threading.Lock:
        return self._locks[zlib.crc32(key.encode("utf-8")) % len(self._locks)]


__all__ = ["KeyedLocks"]
