"""Access key generation and validation."""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass

from keydrop.core.exceptions import ValidationFailure

KEY_BYTES = 32
MAX_KEY_LENGTH = 128
_KEY_PATTERN = re.compile(r"^[0-9A-Za-z_-]+$")


@dataclass(frozen=True)
class KeyPair:
    """Read (public) and delete (private) keys for one stored object."""

    public_key: str
    private_key: str


def generate_key_pair() -> KeyPair:
    """Return two independent 256-bit hex tokens."""

    public_key = secrets.token_hex(KEY_BYTES)
    private_key = secrets.token_hex(KEY_BYTES)
    while private_key == public_key:
        private_key = secrets.token_hex(KEY_BYTES)
    return KeyPair(public_key=public_key, private_key=private_key)


def validate_key(key: object, *, kind: str = "key") -> str:
    """Reject empty keys and keys that could escape a storage namespace."""

    if not isinstance(key, str) or not key.strip():
        raise ValidationFailure(f"A {kind} is required")
    if len(key) > MAX_KEY_LENGTH or not _KEY_PATTERN.match(key):
        raise ValidationFailure(f"Malformed {kind}", context={"length": len(key)})
    return key


__all__ = ["KEY_BYTES", "MAX_KEY_LENGTH", "KeyPair", "generate_key_pair", "validate_key"]
