"""
Public key parameters for an N-of-M threshold sharing scheme.

A KeyParameters object holds:
    - threshold N: shares needed to reconstruct the secret
    - share_count M: shares handed out
    - size_class: bit length of the field modulus
    - modulus: probable prime p defining GF(p), little-endian unsigned bytes
    - fingerprints of the M shares, bound once after the shares are created

Lifecycle:
    1. KeyParameters.generate(N, M, bits) validates and generates p
    2. An external Sharer splits the secret over GF(p) into M shares
    3. bind_shares(shares) stores a SHA-256 fingerprint of each share
    4. contains_share(share) answers "was this share issued with this key"

The fingerprints never leave the object except inside to_bytes(), and no
raw share value is stored.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional

from cryptography.hazmat.primitives.constant_time import bytes_eq

from ..crypto.prime import generate_prime, is_probable_prime
from ..crypto.share import FINGERPRINT_SIZE, ShareLike
from .errors import AlreadyBound, InvalidParameter


logger = logging.getLogger(__name__)

# Allowed bit lengths of the field modulus.
ALLOWED_SIZES = frozenset({1024, 2048, 3072, 4096})

MIN_THRESHOLD = 2

# threshold and share_count are stored as 4-byte unsigned integers.
MAX_SHARE_COUNT = 2**32 - 1

# Byte order of the stored modulus.
MODULUS_BYTEORDER = "little"


def validate_parameters(threshold: int, share_count: int, size_class: int) -> None:
    """
    Check scheme parameters in a fixed order.

    Raises:
        InvalidParameter: On the first violated constraint
    """
    if share_count < threshold:
        raise InvalidParameter("share_count", "share_count must be >= threshold")
    if threshold < MIN_THRESHOLD:
        raise InvalidParameter("threshold", f"threshold must be >= {MIN_THRESHOLD}")
    if size_class not in ALLOWED_SIZES:
        allowed = ", ".join(str(s) for s in sorted(ALLOWED_SIZES))
        raise InvalidParameter("size_class", f"size_class must be one of ({allowed})")
    if share_count > MAX_SHARE_COUNT:
        raise InvalidParameter(
            "share_count", f"share_count must be <= {MAX_SHARE_COUNT}"
        )


def _fingerprint_of(share: ShareLike) -> bytes:
    digest = share.fingerprint()
    if not isinstance(digest, bytes) or len(digest) != FINGERPRINT_SIZE:
        raise ValueError(f"Share fingerprint must be {FINGERPRINT_SIZE} bytes")
    return digest


class _FingerprintBinding:
    """Write-once holder for share fingerprints."""

    __slots__ = ("lock", "digests")

    def __init__(self):
        self.lock = threading.Lock()
        self.digests: Optional[tuple[bytes, ...]] = None


@dataclass(frozen=True)
class KeyParameters:
    """
    Public parameters of a threshold sharing key.

    Attributes:
        threshold: Minimum number of shares to reconstruct the secret (N)
        share_count: Total number of shares created (M)
        size_class: Bit length of the modulus, one of ALLOWED_SIZES
        modulus: Prime modulus, unsigned little-endian, size_class // 8 bytes
    """

    threshold: int
    share_count: int
    size_class: int
    modulus: bytes = field(repr=False)
    _binding: _FingerprintBinding = field(
        default_factory=_FingerprintBinding, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        validate_parameters(self.threshold, self.share_count, self.size_class)

        if len(self.modulus) != self.size_class // 8:
            raise InvalidParameter(
                "modulus",
                f"modulus must be {self.size_class // 8} bytes, got {len(self.modulus)}",
            )

        p = self.prime
        if p.bit_length() != self.size_class:
            raise InvalidParameter(
                "modulus", f"modulus must have exactly {self.size_class} bits"
            )
        if p % 2 == 0:
            raise InvalidParameter("modulus", "modulus must be odd")

    @classmethod
    def generate(
        cls, threshold: int, share_count: int, size_class: int
    ) -> "KeyParameters":
        """
        Validate parameters and generate a fresh prime modulus.

        Args:
            threshold: Shares needed for reconstruction (N >= 2)
            share_count: Shares to be created (M >= N)
            size_class: Modulus bit length, one of ALLOWED_SIZES

        Returns:
            KeyParameters with no shares bound

        Raises:
            InvalidParameter: If any parameter is out of range
        """
        # Validate before spending any entropy on the prime search
        validate_parameters(threshold, share_count, size_class)

        prime = generate_prime(size_class)
        modulus = prime.to_bytes(size_class // 8, byteorder=MODULUS_BYTEORDER)

        logger.info(
            "Generated %d-of-%d key with %d-bit modulus",
            threshold,
            share_count,
            size_class,
        )
        return cls(
            threshold=threshold,
            share_count=share_count,
            size_class=size_class,
            modulus=modulus,
        )

    @property
    def prime(self) -> int:
        """The modulus as an integer."""
        return int.from_bytes(self.modulus, byteorder=MODULUS_BYTEORDER)

    @property
    def is_bound(self) -> bool:
        """Whether share fingerprints have been bound."""
        return self._binding.digests is not None

    @property
    def fingerprint_count(self) -> int:
        """Number of bound fingerprints (0 while unbound)."""
        digests = self._binding.digests
        return 0 if digests is None else len(digests)

    def bind_shares(self, shares: Iterable[ShareLike]) -> None:
        """
        Store the fingerprint of each share created under this key.

        Can be called only once. All fingerprints are computed before the
        set is published, so readers never observe a partial set.

        Args:
            shares: The shares produced by the Sharer, normally share_count of them

        Raises:
            AlreadyBound: If fingerprints were bound before
            ValueError: If no shares are given or a fingerprint is malformed
        """
        if self.is_bound:
            raise AlreadyBound("Share fingerprints are already bound to this key")

        digests = tuple(_fingerprint_of(share) for share in shares)
        if not digests:
            raise ValueError("At least one share required")

        with self._binding.lock:
            if self._binding.digests is not None:
                raise AlreadyBound("Share fingerprints are already bound to this key")
            self._binding.digests = digests

        if len(digests) != self.share_count:
            logger.warning(
                "Bound %d shares to a key declared for %d",
                len(digests),
                self.share_count,
            )
        if len(set(digests)) != len(digests):
            logger.warning("Bound share set contains duplicate shares")

        logger.info("Bound %d share fingerprints", len(digests))

    def contains_share(self, candidate: ShareLike) -> bool:
        """
        Check whether a share was bound to this key.

        Args:
            candidate: Share to check

        Returns:
            True if the candidate's fingerprint matches a bound fingerprint,
            False otherwise (always False while unbound)
        """
        digests = self._binding.digests
        if digests is None:
            return False

        fingerprint = _fingerprint_of(candidate)
        found = False
        for digest in digests:
            # Full scan, no early exit
            if bytes_eq(digest, fingerprint):
                found = True
        return found

    def to_bytes(self) -> bytes:
        """
        Serialize to binary format.

        Format:
            - 4 bytes: threshold (big-endian)
            - 4 bytes: share_count (big-endian)
            - 2 bytes: size_class (big-endian)
            - size_class // 8 bytes: modulus (little-endian, unsigned)
            - 1 byte: bound flag
            - [if bound] 4 bytes: fingerprint count, then 32 bytes per fingerprint
        """
        result = bytearray()
        result.extend(self.threshold.to_bytes(4, byteorder="big"))
        result.extend(self.share_count.to_bytes(4, byteorder="big"))
        result.extend(self.size_class.to_bytes(2, byteorder="big"))
        result.extend(self.modulus)

        digests = self._binding.digests
        if digests is None:
            result.append(0)
        else:
            result.append(1)
            result.extend(len(digests).to_bytes(4, byteorder="big"))
            for digest in digests:
                result.extend(digest)

        return bytes(result)

    @classmethod
    def from_bytes(cls, data: bytes, verify_prime: bool = True) -> "KeyParameters":
        """
        Deserialize from binary format.

        Args:
            data: Bytes from to_bytes()
            verify_prime: Re-run the primality test on the modulus

        Returns:
            KeyParameters, bound if the data carries fingerprints

        Raises:
            ValueError: If data is truncated or malformed
            InvalidParameter: If the stored parameters are invalid
        """
        if len(data) < 10:
            raise ValueError(f"Key data too short: {len(data)} bytes")

        threshold = int.from_bytes(data[0:4], byteorder="big")
        share_count = int.from_bytes(data[4:8], byteorder="big")
        size_class = int.from_bytes(data[8:10], byteorder="big")
        offset = 10

        validate_parameters(threshold, share_count, size_class)

        modulus_len = size_class // 8
        if len(data) < offset + modulus_len + 1:
            raise ValueError("Key data too short for modulus")
        modulus = data[offset : offset + modulus_len]
        offset += modulus_len

        params = cls(
            threshold=threshold,
            share_count=share_count,
            size_class=size_class,
            modulus=modulus,
        )

        if verify_prime and not is_probable_prime(params.prime):
            raise InvalidParameter("modulus", "modulus is not prime")

        bound = data[offset]
        offset += 1

        if bound == 1:
            if len(data) < offset + 4:
                raise ValueError("Key data too short for fingerprint count")
            count = int.from_bytes(data[offset : offset + 4], byteorder="big")
            offset += 4

            if count == 0 or len(data) != offset + count * FINGERPRINT_SIZE:
                raise ValueError("Fingerprint data length mismatch")

            params._binding.digests = tuple(
                data[i : i + FINGERPRINT_SIZE]
                for i in range(offset, len(data), FINGERPRINT_SIZE)
            )
        elif bound == 0:
            if len(data) != offset:
                raise ValueError("Unexpected trailing data after key")
        else:
            raise ValueError(f"Invalid bound flag: {bound}")

        return params
