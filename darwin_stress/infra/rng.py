"""
Darwin Stress — Seeded pseudo-random source (Mulberry32).

Every stochastic step of a run (scenario sampling, idiosyncratic noise,
mutation, crossover, candidate reseeding) draws from one SeededRNG so that a
fixed seed reproduces the whole run. The generator works on a single 32-bit
state word with explicit masking, so the sequence is identical on every
platform and interpreter.

Usage:
    rng = SeededRNG(42)
    u = rng.next()            # uniform in [0, 1)
    z = rng.next_gaussian()   # standard normal
"""
from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF
_GOLDEN = 0x6D2B79F5
_TWO_32 = 4294967296.0
_EPSILON = 1e-10


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


class SeededRNG:
    """Deterministic uniform/Gaussian source. Same seed = same sequence."""

    __slots__ = ("_state",)

    def __init__(self, seed: int) -> None:
        self._state = int(seed) & _MASK

    def next(self) -> float:
        """Returns a float in [0, 1)."""
        self._state = (self._state + _GOLDEN) & _MASK
        s = self._state
        t = _imul(s ^ (s >> 15), 1 | s)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK) ^ t
        return ((t ^ (t >> 14)) & _MASK) / _TWO_32

    def next_gaussian(self) -> float:
        """Box-Muller standard normal from two uniform draws."""
        u1 = self.next()
        u2 = self.next()
        return math.sqrt(-2.0 * math.log(u1 or _EPSILON)) * math.cos(2.0 * math.pi * u2)

    def next_gaussian_vector(self, n: int) -> List[float]:
        return [self.next_gaussian() for _ in range(n)]

    def next_int(self, n: int) -> int:
        """Uniform integer in [0, n). Consumes one draw."""
        return int(self.next() * n)

    def choice(self, items: Sequence[T]) -> T:
        return items[self.next_int(len(items))]

    def next_seed(self) -> int:
        """Child seed for an independent sub-run."""
        return int(self.next() * 1e9)
