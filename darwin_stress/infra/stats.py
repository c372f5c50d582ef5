"""
Darwin Stress — Statistics utilities.

Plain-Python helpers (no numpy dependency) shared by the scenario
generator and the simulation engine. mean/stddev require non-empty input.
"""
from __future__ import annotations

import math
from typing import List, Sequence

_CHOLESKY_FLOOR = 1e-10


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation."""
    m = mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linear interpolation between order statistics of a sorted sequence."""
    idx = (p / 100.0) * (len(sorted_values) - 1)
    lo = math.floor(idx)
    hi = math.ceil(idx)
    if lo == hi:
        return sorted_values[lo]
    return sorted_values[lo] + (sorted_values[hi] - sorted_values[lo]) * (idx - lo)


def correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Population Pearson correlation; 0.0 when either side is flat."""
    mx, my = mean(xs), mean(ys)
    sx, sy = stddev(xs), stddev(ys)
    if sx <= 0 or sy <= 0:
        return 0.0
    cov = sum((x - mx) * (y - my) for x, y in zip(xs, ys)) / len(xs)
    return cov / (sx * sy)


def histogram(
    sorted_values: Sequence[float],
    buckets: int = 20,
    min_width: float = 0.01,
) -> List[int]:
    """Equal-width bucket counts over [min, max] of a sorted sequence."""
    counts = [0] * buckets
    if not sorted_values:
        return counts
    lo = sorted_values[0]
    width = (sorted_values[-1] - lo) / buckets or min_width
    for v in sorted_values:
        counts[min(buckets - 1, int(math.floor((v - lo) / width)))] += 1
    return counts


def cholesky(matrix: Sequence[Sequence[float]]) -> List[List[float]]:
    """
    Lower-triangular L with L·Lᵀ = matrix.

    Diagonal terms are floored before the square root so near-singular
    (but symmetric) inputs still decompose.
    """
    n = len(matrix)
    lower = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1):
            s = sum(lower[i][k] * lower[j][k] for k in range(j))
            if i == j:
                lower[i][j] = math.sqrt(max(matrix[i][i] - s, _CHOLESKY_FLOOR))
            else:
                lower[i][j] = (matrix[i][j] - s) / lower[j][j]
    return lower


def mvn_sample(lower: Sequence[Sequence[float]], z: Sequence[float]) -> List[float]:
    """Correlated draw L·z from a Cholesky factor and a standard-normal vector."""
    n = len(lower)
    return [sum(lower[i][j] * z[j] for j in range(i + 1)) for i in range(n)]
