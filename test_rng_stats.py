"""
Tests for the seeded RNG, determinism helpers and statistics utilities.
"""
import math

import pytest

from darwin_stress.determinism import (
    allocation_hash, deterministic_id, resolve_seed,
)
from darwin_stress.infra import stats
from darwin_stress.infra.rng import SeededRNG


class TestSeededRNG:
    def test_same_seed_same_sequence(self):
        """Two generators with one seed produce identical streams."""
        a, b = SeededRNG(42), SeededRNG(42)
        assert [a.next() for _ in range(100)] == [b.next() for _ in range(100)]

    def test_different_seeds_diverge(self):
        a, b = SeededRNG(1), SeededRNG(2)
        assert [a.next() for _ in range(10)] != [b.next() for _ in range(10)]

    def test_uniform_range(self):
        """next() stays in [0, 1)."""
        rng = SeededRNG(7)
        draws = [rng.next() for _ in range(10000)]
        assert all(0.0 <= u < 1.0 for u in draws)
        assert 0.45 < stats.mean(draws) < 0.55

    def test_large_and_negative_seeds_are_masked(self):
        """Seeds are reduced to 32 bits."""
        a = SeededRNG(2 ** 32 + 5)
        b = SeededRNG(5)
        assert a.next() == b.next()
        c = SeededRNG(-1)
        assert 0.0 <= c.next() < 1.0

    def test_gaussian_moments(self):
        """Box-Muller draws are roughly standard normal."""
        rng = SeededRNG(123)
        draws = rng.next_gaussian_vector(20000)
        assert len(draws) == 20000
        assert abs(stats.mean(draws)) < 0.05
        assert 0.95 < stats.stddev(draws) < 1.05
        assert all(math.isfinite(z) for z in draws)

    def test_next_int_and_choice(self):
        rng = SeededRNG(9)
        ints = [rng.next_int(5) for _ in range(1000)]
        assert set(ints) == {0, 1, 2, 3, 4}
        items = ["a", "b", "c"]
        assert all(rng.choice(items) in items for _ in range(50))

    def test_next_seed_is_reproducible(self):
        """Child seeds are integers below 1e9 and follow the parent stream."""
        a, b = SeededRNG(3), SeededRNG(3)
        seeds = [a.next_seed() for _ in range(5)]
        assert seeds == [b.next_seed() for _ in range(5)]
        assert all(isinstance(s, int) and 0 <= s < 10 ** 9 for s in seeds)


class TestDeterminismHelpers:
    def test_resolve_seed_passthrough(self):
        assert resolve_seed(42) == 42
        assert resolve_seed(0) == 0

    def test_resolve_seed_clock_fallback(self):
        """Missing seed falls back to a 32-bit clock value."""
        seed = resolve_seed(None)
        assert 0 <= seed <= 0xFFFFFFFF

    def test_deterministic_id(self):
        assert deterministic_id(42) == deterministic_id(42)
        assert deterministic_id(42) != deterministic_id(43)
        assert deterministic_id(42, counter=1) != deterministic_id(42)
        run_id = deterministic_id(42)
        assert run_id.startswith("sim_") and len(run_id) == 16

    def test_allocation_hash(self):
        assert allocation_hash([0.5, 0.5]) == allocation_hash((0.5, 0.5))
        assert allocation_hash([0.5, 0.5]) != allocation_hash([0.6, 0.4])


class TestStats:
    def test_mean_and_population_stddev(self):
        values = [2, 4, 4, 4, 5, 5, 7, 9]
        assert stats.mean(values) == 5.0
        assert stats.stddev(values) == pytest.approx(2.0)

    def test_percentile_interpolates(self):
        values = [1.0, 2.0, 3.0, 4.0]
        assert stats.percentile(values, 0) == 1.0
        assert stats.percentile(values, 100) == 4.0
        assert stats.percentile(values, 50) == pytest.approx(2.5)
        assert stats.percentile([7.0], 95) == 7.0

    def test_correlation(self):
        xs = [1.0, 2.0, 3.0, 4.0]
        assert stats.correlation(xs, [2.0, 4.0, 6.0, 8.0]) == pytest.approx(1.0)
        assert stats.correlation(xs, [8.0, 6.0, 4.0, 2.0]) == pytest.approx(-1.0)

    def test_correlation_flat_series_is_zero(self):
        """A zero-variance side yields 0.0 instead of dividing by zero."""
        assert stats.correlation([1.0, 1.0, 1.0], [1.0, 2.0, 3.0]) == 0.0

    def test_histogram_counts_everything(self):
        values = sorted([-0.2, -0.1, 0.0, 0.05, 0.1, 0.3])
        counts = stats.histogram(values, buckets=20)
        assert len(counts) == 20
        assert sum(counts) == len(values)
        assert counts[0] == 1 and counts[-1] == 1

    def test_histogram_flat_input(self):
        """Zero range falls back to the minimum bucket width."""
        counts = stats.histogram([0.05] * 10, buckets=20)
        assert counts[0] == 10
        assert sum(counts) == 10

    def test_histogram_empty(self):
        assert stats.histogram([], buckets=5) == [0] * 5

    def test_cholesky_reconstructs(self):
        matrix = [[4.0, 2.0], [2.0, 3.0]]
        lower = stats.cholesky(matrix)
        assert lower[0][0] == pytest.approx(2.0)
        assert lower[1][0] == pytest.approx(1.0)
        assert lower[1][1] == pytest.approx(math.sqrt(2.0))
        assert lower[0][1] == 0.0

    def test_cholesky_singular_is_floored(self):
        """Perfectly correlated input still decomposes."""
        lower = stats.cholesky([[1.0, 1.0], [1.0, 1.0]])
        assert all(math.isfinite(v) for row in lower for v in row)

    def test_mvn_sample(self):
        lower = stats.cholesky([[1.0, 0.0], [0.0, 1.0]])
        assert stats.mvn_sample(lower, [0.5, -1.5]) == pytest.approx([0.5, -1.5])
