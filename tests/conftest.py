"""Shared fixtures."""

import pytest

from sharekey.core.params import KeyParameters
from sharekey.crypto.share import Share


@pytest.fixture(scope="session")
def modulus_1024() -> bytes:
    """One 1024-bit modulus reused across tests to keep the suite fast."""
    return KeyParameters.generate(threshold=2, share_count=3, size_class=1024).modulus


@pytest.fixture
def make_key(modulus_1024):
    """Factory for fresh, unbound 1024-bit keys sharing one modulus."""

    def _make(threshold: int = 3, share_count: int = 5) -> KeyParameters:
        return KeyParameters(
            threshold=threshold,
            share_count=share_count,
            size_class=1024,
            modulus=modulus_1024,
        )

    return _make


@pytest.fixture
def shares() -> list[Share]:
    """Five distinct shares."""
    return [Share(x=i, y=1000003 * i + 17) for i in range(1, 6)]
