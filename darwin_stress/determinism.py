"""
Darwin Stress — Determinism helpers.

Byte-level reproducibility of simulation and evolution runs:
    - Run ids derived from the run seed instead of wall-clock + entropy
    - Clock seeds only when the caller supplies none (logged for replay)
    - Stable hashing of allocation vectors for identity comparison
    - Fitness ranking with hash tie-breaking

Usage:
    from darwin_stress.determinism import deterministic_id, resolve_seed

    seed = resolve_seed(config.seed)
    run_id = deterministic_id(seed)
"""

from __future__ import annotations

import hashlib
import struct
import time
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


def resolve_seed(seed: Optional[int]) -> int:
    """Return the caller's seed, or a millisecond clock seed when absent."""
    if seed is not None:
        return int(seed)
    return time.time_ns() // 1_000_000 & 0xFFFFFFFF


def deterministic_id(seed: int = 0, counter: int = 0, prefix: str = "sim") -> str:
    """
    Produce a deterministic id from seed + counter.
    Replaces timestamp/random suffix ids so replays carry the same id.
    """
    data = struct.pack(">QQ", int(seed) & 0xFFFFFFFFFFFFFFFF, counter)
    return f"{prefix}_{hashlib.sha256(data).hexdigest()[:12]}"


def allocation_hash(weights: Sequence[float]) -> str:
    """SHA256 hash of an allocation vector for identity comparison."""
    data = "|".join(f"{w:.15e}" for w in weights)
    return hashlib.sha256(data.encode()).hexdigest()


def stable_sort_by_fitness(items: Sequence[T]) -> list:
    """
    Sort evolved portfolios by fitness descending with SHA256 tie-breaking
    on the allocation. Guarantees identical ordering when fitnesses are equal.
    """
    return sorted(
        items,
        key=lambda item: (-item.fitness, allocation_hash(item.portfolio.weights)),
    )
