"""
Darwin Stress — Mutation and crossover operators.

Operator families are enumerated kinds (MutationKind, CrossoverKind) picked
by a weighted draw and dispatched through a table, so adding or removing an
operator touches one function and one table row. Operators work on a
mutable weight list and never see the Portfolio; mutate()/crossover() wrap
them and normalize the result into a new Portfolio.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from darwin_stress.evolution.allocation import normalize_weights
from darwin_stress.infra.rng import SeededRNG
from darwin_stress.interfaces.enums import (
    ALL_ASSETS, AssetClass, CrossoverKind, MutationKind,
)
from darwin_stress.interfaces.types import Portfolio

K = TypeVar("K")

MUTATION_TABLE: Tuple[Tuple[MutationKind, float], ...] = (
    (MutationKind.POINT_TRANSFER, 0.30),
    (MutationKind.GAUSSIAN,       0.25),
    (MutationKind.SWAP,           0.15),
    (MutationKind.ZERO_OUT,       0.15),
    (MutationKind.HEDGE_SHIFT,    0.15),
)

CROSSOVER_TABLE: Tuple[Tuple[CrossoverKind, float], ...] = (
    (CrossoverKind.UNIFORM, 0.5),
    (CrossoverKind.BLEND,   0.5),
)

HEDGE_ASSETS = (
    AssetClass.TIPS, AssetClass.COMMODITIES, AssetClass.GOLD, AssetClass.SHORT_TERM_BONDS,
)
RISKY_ASSETS = (
    AssetClass.US_EQUITIES, AssetClass.INTL_EQUITIES,
    AssetClass.EMERGING_EQUITIES, AssetClass.LONG_TERM_BONDS,
)

POINT_TRANSFER_SCALE = 0.3
GAUSSIAN_SCALE = 0.1
HEDGE_SHIFT_SCALE = 0.2
BLEND_MIN = 0.2
BLEND_SPAN = 0.6

_N = len(ALL_ASSETS)


def pick_kind(table: Sequence[Tuple[K, float]], u: float) -> K:
    """Weighted draw: first kind whose cumulative weight exceeds u."""
    total = sum(w for _, w in table)
    cum = 0.0
    for kind, weight in table:
        cum += weight / total
        if u < cum:
            return kind
    return table[-1][0]


# ── Mutation families ────────────────────────────────────────

def _point_transfer(w: List[float], rate: float, rng: SeededRNG) -> None:
    src = rng.next_int(_N)
    dst = rng.next_int(_N)
    amount = rng.next() * rate * POINT_TRANSFER_SCALE
    w[src] = max(0.0, w[src] - amount)
    w[dst] += amount


def _gaussian(w: List[float], rate: float, rng: SeededRNG) -> None:
    for i in range(_N):
        w[i] += rng.next_gaussian() * rate * GAUSSIAN_SCALE


def _swap(w: List[float], rate: float, rng: SeededRNG) -> None:
    a = rng.next_int(_N)
    b = rng.next_int(_N)
    w[a], w[b] = w[b], w[a]


def _zero_out(w: List[float], rate: float, rng: SeededRNG) -> None:
    kill = rng.next_int(_N)
    amount = w[kill]
    w[kill] = 0.0
    remaining = [i for i in range(_N) if i != kill and w[i] > 0]
    if remaining:
        w[remaining[rng.next_int(len(remaining))]] += amount


def _hedge_shift(w: List[float], rate: float, rng: SeededRNG) -> None:
    hedge = ALL_ASSETS.index(rng.choice(HEDGE_ASSETS))
    risky = ALL_ASSETS.index(rng.choice(RISKY_ASSETS))
    shift = rng.next() * rate * HEDGE_SHIFT_SCALE
    w[risky] = max(0.0, w[risky] - shift)
    w[hedge] += shift


_MUTATIONS: Dict[MutationKind, Callable[[List[float], float, SeededRNG], None]] = {
    MutationKind.POINT_TRANSFER: _point_transfer,
    MutationKind.GAUSSIAN:       _gaussian,
    MutationKind.SWAP:           _swap,
    MutationKind.ZERO_OUT:       _zero_out,
    MutationKind.HEDGE_SHIFT:    _hedge_shift,
}


def mutate(
    portfolio: Portfolio,
    rate: float,
    rng: SeededRNG,
    kind: Optional[MutationKind] = None,
) -> Portfolio:
    """Apply one mutation family (drawn unless given) and normalize."""
    if kind is None:
        kind = pick_kind(MUTATION_TABLE, rng.next())
    weights = list(portfolio.weights)
    _MUTATIONS[kind](weights, rate, rng)
    return Portfolio(normalize_weights(weights))


# ── Crossover families ───────────────────────────────────────

def _uniform(a: Sequence[float], b: Sequence[float], rng: SeededRNG) -> List[float]:
    return [x if rng.next() < 0.5 else y for x, y in zip(a, b)]


def _blend(a: Sequence[float], b: Sequence[float], rng: SeededRNG) -> List[float]:
    alpha = BLEND_MIN + rng.next() * BLEND_SPAN
    return [alpha * x + (1.0 - alpha) * y for x, y in zip(a, b)]


_CROSSOVERS: Dict[CrossoverKind, Callable[[Sequence[float], Sequence[float], SeededRNG], List[float]]] = {
    CrossoverKind.UNIFORM: _uniform,
    CrossoverKind.BLEND:   _blend,
}


def crossover(
    parent_a: Portfolio,
    parent_b: Portfolio,
    rng: SeededRNG,
    kind: Optional[CrossoverKind] = None,
) -> Portfolio:
    """Breed two parents with one crossover family and normalize."""
    if kind is None:
        kind = pick_kind(CROSSOVER_TABLE, rng.next())
    child = _CROSSOVERS[kind](parent_a.weights, parent_b.weights, rng)
    return Portfolio(normalize_weights(child))
