"""
Darwin Stress — Allocation algebra for the evolutionary search.

Every candidate produced by mutation, crossover or random draw passes
through normalize(), which makes it:
  - non-negative and fully invested (sums to 1)
  - sparse: no position under 2%
  - quantized: every weight on the 0.5% grid

Quantization runs in integer grid units and hands the rounding residual to
the largest position, so the result is exactly on the grid and normalize()
is idempotent.
"""
from __future__ import annotations

import math
from typing import Sequence

from darwin_stress.infra.rng import SeededRNG
from darwin_stress.interfaces.enums import ALL_ASSETS
from darwin_stress.interfaces.types import Portfolio

MIN_WEIGHT = 0.02
GRID_UNITS = 200            # 1 / 0.005
_DUST_TOLERANCE = 1e-9


def normalize_weights(weights: Sequence[float]) -> tuple:
    w = [max(0.0, float(x)) for x in weights]

    total = sum(w)
    if total <= 0:
        w = [1.0 / len(w)] * len(w)
    else:
        w = [x / total for x in w]

    # Drop dust positions; the largest weight is always >= 1/n > MIN_WEIGHT
    w = [0.0 if x < MIN_WEIGHT - _DUST_TOLERANCE else x for x in w]
    total = sum(w)
    w = [x / total for x in w]

    units = [int(math.floor(x * GRID_UNITS + 0.5)) for x in w]
    residual = GRID_UNITS - sum(units)
    if residual:
        largest = max(range(len(units)), key=lambda i: (units[i], -i))
        units[largest] += residual
    return tuple(u / GRID_UNITS for u in units)


def normalize(portfolio: Portfolio) -> Portfolio:
    return Portfolio(normalize_weights(portfolio.weights))


def random_portfolio(rng: SeededRNG) -> Portfolio:
    """Uniform draw per asset, then normalized."""
    return Portfolio(normalize_weights([rng.next() for _ in ALL_ASSETS]))


def allocation_distance(a: Portfolio, b: Portfolio) -> float:
    """Euclidean distance between two allocation vectors."""
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a.weights, b.weights)))
