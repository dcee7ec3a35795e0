"""
Probable-prime generation for the sharing field modulus.

Candidates are drawn from the operating system CSPRNG and filtered in two
stages:
    1. Trial division by every odd prime below SMALL_PRIME_LIMIT. This
       discards most composites with a handful of cheap modular reductions.
    2. Miller-Rabin with MILLER_RABIN_ROUNDS random bases.

Error Bound:
    Each Miller-Rabin round lets a composite through with probability at
    most 1/4, so 64 rounds bound the error by 4^-64 = 2^-128. For random
    candidates of 1024 bits and more the real bound is far smaller
    (Damgard, Landrock, Pomerance 1993).

Reference:
    FIPS 186-5, Appendix B.3: Probabilistic Primality Tests
"""

import logging
import secrets


logger = logging.getLogger(__name__)

# Number of Miller-Rabin rounds. 64 rounds give an error bound of 2^-128.
MILLER_RABIN_ROUNDS = 64

SMALL_PRIME_LIMIT = 2000


def _small_primes(limit: int) -> tuple[int, ...]:
    """Sieve of Eratosthenes for odd primes below limit."""
    sieve = bytearray([1]) * limit
    sieve[0:2] = b"\x00\x00"
    for i in range(2, int(limit**0.5) + 1):
        if sieve[i]:
            sieve[i * i :: i] = bytes(len(range(i * i, limit, i)))
    return tuple(i for i in range(3, limit) if sieve[i])


SMALL_PRIMES = _small_primes(SMALL_PRIME_LIMIT)


def _has_small_factor(n: int) -> bool:
    for p in SMALL_PRIMES:
        if n % p == 0:
            return n != p
    return False


def _miller_rabin(n: int, rounds: int) -> bool:
    """
    Miller-Rabin probabilistic primality test.

    Writes n - 1 = d * 2^s with d odd, then for each random base a checks
    that a^d = 1 or a^(d * 2^r) = -1 (mod n) for some 0 <= r < s.

    Args:
        n: Odd integer greater than 3
        rounds: Number of random bases to try

    Returns:
        False if n is certainly composite, True if n is a probable prime
    """
    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for _ in range(rounds):
        # Base uniformly random in [2, n-2]
        a = secrets.randbelow(n - 3) + 2
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False

    return True


def is_probable_prime(n: int, rounds: int = MILLER_RABIN_ROUNDS) -> bool:
    """
    Test whether n is prime with error probability at most 4^-rounds.

    Args:
        n: Integer to test
        rounds: Number of Miller-Rabin rounds

    Returns:
        True if n is a probable prime
    """
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False
    if _has_small_factor(n):
        return False
    if n < SMALL_PRIME_LIMIT * SMALL_PRIME_LIMIT:
        # No factor below sqrt(n), so n is prime
        return True

    return _miller_rabin(n, rounds)


def generate_prime(bits: int, rounds: int = MILLER_RABIN_ROUNDS) -> int:
    """
    Generate a random probable prime of exactly `bits` bits.

    The top bit of every candidate is forced so the result has the requested
    bit length, and the low bit is forced so only odd numbers are tested.

    Args:
        bits: Bit length of the prime (at least 16)
        rounds: Number of Miller-Rabin rounds for surviving candidates

    Returns:
        Probable prime p with p.bit_length() == bits

    Raises:
        ValueError: If bits is too small
    """
    if bits < 16:
        raise ValueError(f"Prime size must be at least 16 bits, got {bits}")

    top_bit = 1 << (bits - 1)
    attempts = 0

    while True:
        attempts += 1
        candidate = secrets.randbits(bits) | top_bit | 1

        if _has_small_factor(candidate):
            continue

        if _miller_rabin(candidate, rounds):
            logger.debug(
                "Found %d-bit probable prime after %d candidates", bits, attempts
            )
            return candidate
