from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)

MASK32 = 0xFFFFFFFF
FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
MULBERRY_INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0

SEED_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789@#!$%$%^&*"

SeedLike = Union[int, float, str]


class FloatSource(Protocol):
    """Anything that yields floats in [0, 1). RngStream satisfies it; tests inject fakes."""

    def random(self) -> float:
        ...


def fnv1a_32(text: str) -> int:
    """32-bit FNV-1a over the UTF-8 bytes of ``text``."""
    h = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME) & MASK32
    return h


def generate_random_seed() -> str:
    """Return a fresh 14-21 character seed string using OS entropy."""
    length = secrets.randbelow(8) + 14
    return "".join(SEED_ALPHABET[secrets.randbelow(len(SEED_ALPHABET))] for _ in range(length))


class RngStream:
    """Mulberry32 generator over a 32-bit unsigned state.

    The output sequence is bit-compatible with the canonical mulberry32 reference,
    so a stream seeded with the same 32-bit value replays the same floats in any
    implementation.
    """

    __slots__ = ("name", "_state")

    def __init__(self, seed: int, name: str = "default") -> None:
        self.name = name
        self._state = seed & MASK32

    def random(self) -> float:
        """Return the next random float in the range [0.0, 1.0)."""
        self._state = (self._state + MULBERRY_INCREMENT) & MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & MASK32
        t ^= (t + ((t ^ (t >> 7)) * (t | 61))) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / TWO_POW_32

    @property
    def state(self) -> int:
        """Return the internal 32-bit state for persistence."""
        return self._state

    def set_state(self, state: int) -> None:
        """Restore the internal 32-bit state."""
        self._state = int(state) & MASK32

    def __repr__(self) -> str:
        return f"RngStream(name={self.name!r}, state={self._state})"


@dataclass(frozen=True)
class SeedState:
    """Serializable snapshot of the root generator."""

    original: str
    seed_value: int
    default_state: int


class SeededPRNG:
    """Root of determinism for one run.

    Holds the original seed and its 32-bit hash, a default stream seeded directly
    from the hash, and derives independent named streams on demand.

    Usage pattern:
        prng = SeededPRNG("my-seed")
        biome_stream = prng.derive_stream("world-biome")
        event_stream = prng.derive_stream("world-events")
    """

    def __init__(self, seed: Optional[SeedLike] = None) -> None:
        self._original = ""
        self._seed_value = 0
        self._default = RngStream(0)
        if seed is None:
            seed = generate_random_seed()
            logger.info("No seed provided; generated random seed: %s", seed)
        self.set_seed(seed)

    @staticmethod
    def hash_seed(value: SeedLike) -> int:
        """Map a seed to its 32-bit value.

        Integers, and floats with no fractional part, are reduced modulo 2**32, so
        ``42``, ``42.0`` and ``2**32 + 42`` all give 42. Everything else, including
        ``"42"``, ``42.5`` and booleans, is FNV-1a hashed from its ``str()`` form.
        """
        # bool is an int subclass but a seed of True is almost certainly a mistake
        if isinstance(value, bool):
            return fnv1a_32(str(value))
        if isinstance(value, int):
            return value & MASK32
        if isinstance(value, float) and value.is_integer():
            return int(value) & MASK32
        return fnv1a_32(str(value))

    def set_seed(self, value: SeedLike) -> int:
        """Set the root seed. Integers are masked to 32 bits, anything else is hashed.

        Returns the effective 32-bit seed value.
        """
        self._original = str(value)
        self._seed_value = self.hash_seed(value)
        self._default = RngStream(self._seed_value, name="default")
        logger.debug("Seed set to %s (hash: %d)", self._original, self._seed_value)
        return self._seed_value

    def get_seed(self) -> int:
        return self._seed_value

    def get_original_seed(self) -> str:
        return self._original

    def derive_seed(self, name: str) -> int:
        """Derive a 32-bit seed for a named stream from the root seed value."""
        derived = fnv1a_32(f"{self._seed_value}:{name}")
        logger.debug("Derived seed for stream=%s -> %d", name, derived)
        return derived

    def derive_stream(self, name: str) -> RngStream:
        """Return a fresh generator for ``name``; same name and seed give the same sequence."""
        return RngStream(self.derive_seed(name), name=name)

    def random(self) -> float:
        """Draw from the default stream."""
        return self._default.random()

    def snapshot(self) -> SeedState:
        return SeedState(self._original, self._seed_value, self._default.state)

    def restore(self, state: SeedState) -> None:
        self._original = state.original
        self._seed_value = state.seed_value & MASK32
        self._default = RngStream(self._seed_value, name="default")
        self._default.set_state(state.default_state)


__all__ = [
    "FloatSource",
    "RngStream",
    "SeedState",
    "SeededPRNG",
    "fnv1a_32",
    "generate_random_seed",
]
