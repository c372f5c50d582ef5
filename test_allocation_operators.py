"""
Tests for allocation normalization and the mutation / crossover operators.
"""
import pytest

from darwin_stress.evolution.allocation import (
    GRID_UNITS, MIN_WEIGHT, allocation_distance, normalize, normalize_weights,
    random_portfolio,
)
from darwin_stress.evolution.operators import (
    CROSSOVER_TABLE, HEDGE_ASSETS, MUTATION_TABLE, crossover, mutate, pick_kind,
)
from darwin_stress.infra.rng import SeededRNG
from darwin_stress.interfaces.enums import ALL_ASSETS, CrossoverKind, MutationKind
from darwin_stress.interfaces.types import Portfolio


SEED_PORTFOLIO = Portfolio.from_allocations({
    "us_equities": 0.25, "intl_equities": 0.10, "emerging_equities": 0.05,
    "long_term_bonds": 0.10, "short_term_bonds": 0.15, "tips": 0.10,
    "reits": 0.10, "commodities": 0.05, "gold": 0.05, "cash": 0.05,
})


def _assert_normalized(portfolio):
    weights = portfolio.weights
    assert len(weights) == len(ALL_ASSETS)
    assert all(w >= 0 for w in weights)
    assert sum(weights) == pytest.approx(1.0, abs=1e-9)
    assert not any(0 < w < MIN_WEIGHT - 1e-12 for w in weights)
    assert all(abs(w * GRID_UNITS - round(w * GRID_UNITS)) < 1e-9 for w in weights)


def _raw_vectors(n=200, seed=17):
    rng = SeededRNG(seed)
    vectors = []
    for _ in range(n):
        vectors.append([rng.next_gaussian() * rng.next() * 0.3 for _ in ALL_ASSETS])
    return vectors


def _hedge_share(portfolio):
    return sum(portfolio.weight(a) for a in HEDGE_ASSETS)


class TestNormalize:
    def test_random_vectors_are_normalized(self):
        """Any real vector maps to a non-negative, gridded, dust-free allocation."""
        for raw in _raw_vectors():
            _assert_normalized(Portfolio(normalize_weights(raw)))

    def test_idempotent(self):
        """normalize(normalize(x)) == normalize(x)."""
        for raw in _raw_vectors(seed=99):
            once = normalize_weights(raw)
            assert normalize_weights(once) == once

    def test_portfolio_wrapper(self):
        once = normalize(SEED_PORTFOLIO)
        assert normalize(once) == once
        assert once == SEED_PORTFOLIO

    def test_all_zero_falls_back_to_equal_weight(self):
        out = normalize_weights([0.0] * 10)
        assert out == tuple([0.1] * 10)

    def test_negative_weights_clipped(self):
        out = normalize_weights([-1.0, 1.0] + [0.0] * 8)
        assert out[0] == 0.0
        assert out[1] == 1.0

    def test_dust_is_zeroed(self):
        out = normalize_weights([0.985, 0.015] + [0.0] * 8)
        assert out[1] == 0.0
        assert out[0] == 1.0

    def test_min_weight_kept(self):
        """A position of exactly 2% survives."""
        out = normalize_weights([0.98, 0.02] + [0.0] * 8)
        assert out[1] == pytest.approx(0.02)

    def test_rounding_to_half_percent(self):
        out = normalize_weights([0.3333, 0.3333, 0.3334] + [0.0] * 7)
        assert sum(out) == pytest.approx(1.0)
        assert sorted(out[:3]) == pytest.approx([0.33, 0.335, 0.335])

    def test_random_portfolio(self):
        rng = SeededRNG(4)
        for _ in range(50):
            _assert_normalized(random_portfolio(rng))

    def test_distance(self):
        a = Portfolio.from_allocations({"cash": 1.0})
        b = Portfolio.from_allocations({"gold": 1.0})
        assert allocation_distance(a, a) == 0.0
        assert allocation_distance(a, b) == pytest.approx(2 ** 0.5)


class TestPickKind:
    def test_weighted_table(self):
        assert pick_kind(MUTATION_TABLE, 0.0) is MutationKind.POINT_TRANSFER
        assert pick_kind(MUTATION_TABLE, 0.31) is MutationKind.GAUSSIAN
        assert pick_kind(MUTATION_TABLE, 0.56) is MutationKind.SWAP
        assert pick_kind(MUTATION_TABLE, 0.9999) is MutationKind.HEDGE_SHIFT
        assert pick_kind(CROSSOVER_TABLE, 0.49) is CrossoverKind.UNIFORM
        assert pick_kind(CROSSOVER_TABLE, 0.51) is CrossoverKind.BLEND

    def test_every_kind_has_an_operator(self):
        rng = SeededRNG(1)
        for kind in MutationKind:
            _assert_normalized(mutate(SEED_PORTFOLIO, 0.6, rng, kind))
        for kind in CrossoverKind:
            _assert_normalized(crossover(SEED_PORTFOLIO, SEED_PORTFOLIO, rng, kind))


class TestMutation:
    def test_mutate_is_normalized_and_deterministic(self):
        assert mutate(SEED_PORTFOLIO, 0.6, SeededRNG(8)) == mutate(SEED_PORTFOLIO, 0.6, SeededRNG(8))
        rng = SeededRNG(8)
        for _ in range(100):
            _assert_normalized(mutate(SEED_PORTFOLIO, 0.6, rng))

    def test_mutate_does_not_touch_parent(self):
        before = SEED_PORTFOLIO.weights
        mutate(SEED_PORTFOLIO, 1.0, SeededRNG(3))
        assert SEED_PORTFOLIO.weights == before

    def test_swap_preserves_weight_multiset(self):
        rng = SeededRNG(12)
        for _ in range(30):
            child = mutate(SEED_PORTFOLIO, 0.6, rng, MutationKind.SWAP)
            assert sorted(child.weights) == sorted(SEED_PORTFOLIO.weights)

    def test_zero_out_never_adds_positions(self):
        rng = SeededRNG(13)
        active = len(SEED_PORTFOLIO.active_assets())
        for _ in range(30):
            child = mutate(SEED_PORTFOLIO, 0.6, rng, MutationKind.ZERO_OUT)
            assert len(child.active_assets()) <= active

    def test_hedge_shift_moves_toward_hedges(self):
        """Hedge-shift never lowers the hedge share beyond grid rounding."""
        rng = SeededRNG(14)
        base = _hedge_share(SEED_PORTFOLIO)
        shares = []
        for _ in range(30):
            child = mutate(SEED_PORTFOLIO, 0.6, rng, MutationKind.HEDGE_SHIFT)
            shares.append(_hedge_share(child))
            assert shares[-1] >= base - 0.015
        assert max(shares) > base

    def test_gaussian_changes_allocation(self):
        rng = SeededRNG(15)
        children = [mutate(SEED_PORTFOLIO, 0.6, rng, MutationKind.GAUSSIAN) for _ in range(10)]
        assert any(c != SEED_PORTFOLIO for c in children)


class TestCrossover:
    def test_identical_parents_reproduce(self):
        rng = SeededRNG(21)
        for kind in CrossoverKind:
            assert crossover(SEED_PORTFOLIO, SEED_PORTFOLIO, rng, kind) == SEED_PORTFOLIO

    def test_uniform_takes_genes_from_parents(self):
        """Every held asset in the child is held by one of the parents."""
        a = Portfolio.from_allocations({"us_equities": 0.5, "gold": 0.5})
        b = Portfolio.from_allocations({"us_equities": 0.5, "cash": 0.5})
        rng = SeededRNG(22)
        held = set(a.active_assets()) | set(b.active_assets())
        for _ in range(20):
            child = crossover(a, b, rng, CrossoverKind.UNIFORM)
            _assert_normalized(child)
            assert set(child.active_assets()) <= held

    def test_blend_lies_between_parents(self):
        a = Portfolio.from_allocations({"us_equities": 1.0})
        b = Portfolio.from_allocations({"cash": 1.0})
        rng = SeededRNG(23)
        for _ in range(20):
            child = crossover(a, b, rng, CrossoverKind.BLEND)
            assert 0.2 - 0.005 <= child.weight("us_equities") <= 0.8 + 0.005
            assert child.weight("us_equities") + child.weight("cash") == pytest.approx(1.0)
