"""
Randomness Sources.

Every fairness-critical draw goes through a RandomSource. The engine never
calls the random module directly, so deployments choose the generator and
tests pin it.

Sources:
- SystemRandomSource: OS entropy (random.SystemRandom) for live traffic
- SeededRandomSource: reproducible Mersenne Twister stream for tests / replays
- HmacRandomSource: provably fair stream, HMAC-SHA256(server_seed, client_seed:nonce)

All sources are safe to sample from concurrent bet handlers.
"""

import hashlib
import hmac
import os
import random
import threading
from typing import Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


class RandomSource(Protocol):
    """Protocol for uniform samplers over [0, 1)."""

    def random(self) -> float:
        """Return the next sample in [0, 1)."""
        ...


class SystemRandomSource:
    """OS-entropy backed source."""

    def __init__(self):
        self._rng = random.SystemRandom()

    def random(self) -> float:
        return self._rng.random()


class SeededRandomSource:
    """Deterministic source; the same seed always yields the same stream."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def random(self) -> float:
        with self._lock:
            return self._rng.random()

    def reset(self) -> None:
        """Rewind to the start of the stream."""
        with self._lock:
            self._rng.seed(self.seed)


class HmacRandomSource:
    """
    Provably fair source.

    Sample n is derived from HMAC-SHA256(server_seed, f"{client_seed}:{n}"):
    the first 8 hex chars are read as an int and divided by 2^32. Publishing
    SHA-256(server_seed) up front lets anyone verify every draw afterwards.
    """

    def __init__(
        self,
        server_seed: Optional[str] = None,
        client_seed: Optional[str] = None,
        nonce: int = 0,
    ):
        self.server_seed = server_seed or os.urandom(32).hex()
        self.client_seed = client_seed or os.urandom(16).hex()
        self.server_seed_hash = hashlib.sha256(self.server_seed.encode()).hexdigest()
        self._nonce = nonce
        self._lock = threading.Lock()

    @property
    def nonce(self) -> int:
        return self._nonce

    def random(self) -> float:
        with self._lock:
            nonce = self._nonce
            self._nonce += 1
        return self.value_at(nonce)

    def value_at(self, nonce: int) -> float:
        """Recompute the sample for a given nonce (verification)."""
        digest = hmac.new(
            self.server_seed.encode(),
            f"{self.client_seed}:{nonce}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return int(digest[:8], 16) / 0x100000000  # 2^32


def build_random_source(
    backend: str,
    seed: Optional[int] = None,
    server_seed: str = "",
    client_seed: str = "",
) -> RandomSource:
    """Build the configured source ("system" | "seeded" | "hmac")."""
    if backend == "system":
        source: RandomSource = SystemRandomSource()
    elif backend == "seeded":
        source = SeededRandomSource(seed)
    elif backend == "hmac":
        source = HmacRandomSource(server_seed or None, client_seed or None)
    else:
        raise ValueError(f"Unknown RNG backend: {backend}. Available: system, seeded, hmac")

    logger.info("random_source_selected", backend=backend, seeded=seed is not None)
    return source
