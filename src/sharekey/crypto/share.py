"""
Share representation and fingerprinting.

A share is a point (x, f(x)) on the sharing polynomial produced by an
external Sharer. This module only defines what the key parameters need from
a share: a canonical byte form and a fixed-length fingerprint of it.

Fingerprint:
    SHA-256 over the canonical bytes. The algorithm is pinned so that a
    fingerprint computed by whoever issued the shares matches the one
    computed when a holder later presents their share.
"""

import hashlib
from dataclasses import dataclass
from typing import Protocol


# SHA-256 digest size in bytes.
FINGERPRINT_SIZE = 32

# Shares are indexed by a 32-bit unsigned x-coordinate.
MAX_INDEX = 2**32 - 1

# Length prefix for y is 2 bytes, enough for a 4096-bit field element.
MAX_VALUE_BYTES = 2**16 - 1


class ShareLike(Protocol):
    """Anything that can produce a 32-byte fingerprint of itself."""

    def fingerprint(self) -> bytes: ...


@dataclass(frozen=True)
class Share:
    """
    A single share of a split secret.

    Attributes:
        x: The x-coordinate (evaluation point). Must be non-zero.
        y: The y-coordinate (polynomial evaluation at x, reduced mod p).
    """

    x: int
    y: int

    def __post_init__(self):
        if not 1 <= self.x <= MAX_INDEX:
            raise ValueError(f"Share index must be in range [1, {MAX_INDEX}]")
        if self.y < 0:
            raise ValueError("Share value must be non-negative")
        if _value_length(self.y) > MAX_VALUE_BYTES:
            raise ValueError("Share value too large")

    def to_bytes(self) -> bytes:
        """
        Serialize share to its canonical binary format.

        Format:
            - 4 bytes: x (big-endian)
            - 2 bytes: length L of y (big-endian)
            - L bytes: y (big-endian, minimal, one zero byte for y = 0)
        """
        y_len = _value_length(self.y)
        return (
            self.x.to_bytes(4, byteorder="big")
            + y_len.to_bytes(2, byteorder="big")
            + self.y.to_bytes(y_len, byteorder="big")
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Share":
        """
        Deserialize share from canonical binary format.

        Raises:
            ValueError: If data is malformed or not in canonical form
        """
        if len(data) < 7:
            raise ValueError(f"Share data too short: {len(data)} bytes")

        x = int.from_bytes(data[:4], byteorder="big")
        y_len = int.from_bytes(data[4:6], byteorder="big")
        y_bytes = data[6:]

        if len(y_bytes) != y_len:
            raise ValueError(
                f"Share value length mismatch: header says {y_len}, got {len(y_bytes)}"
            )

        y = int.from_bytes(y_bytes, byteorder="big")
        if _value_length(y) != y_len:
            raise ValueError("Share value is not minimally encoded")

        return cls(x=x, y=y)

    def to_hex(self) -> str:
        """Serialize to a portable "x:yhex" string."""
        return f"{self.x}:{self.y:x}"

    @classmethod
    def from_hex(cls, text: str) -> "Share":
        """
        Deserialize from "x:yhex" string.

        Raises:
            ValueError: If the string is malformed
        """
        parts = text.strip().split(":")
        if len(parts) != 2:
            raise ValueError(f"Share string must be 'x:yhex', got {text.strip()!r}")
        return cls(x=int(parts[0]), y=int(parts[1], 16))

    def fingerprint(self) -> bytes:
        """SHA-256 digest of the canonical byte representation."""
        return hashlib.sha256(self.to_bytes()).digest()


def _value_length(y: int) -> int:
    return max(1, (y.bit_length() + 7) // 8)
