"""Error kinds raised by the storage core.

The HTTP layer maps each kind to a status code; nothing in the core retries.
"""

from __future__ import annotations

from typing import Any


class KeydropError(Exception):
    """Base exception carrying optional structured context for logging."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFound(KeydropError):
    """No object exists under the supplied key."""


class StoreFailure(KeydropError):
    """The backend is unreachable, inconsistent, or a read/write primitive failed."""


class ValidationFailure(KeydropError):
    """A malformed or empty key was supplied."""


class ConfigurationError(KeydropError):
    """The backend cannot be initialized from the current settings."""


__all__ = [
    "KeydropError",
    "NotFound",
    "StoreFailure",
    "ValidationFailure",
    "ConfigurationError",
]
