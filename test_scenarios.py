"""
Tests for the regime-aware macro scenario generator.
"""
import pytest

from darwin_stress.infra.rng import SeededRNG
from darwin_stress.interfaces.enums import ALL_REGIMES, Regime
from darwin_stress.interfaces.types import SimulationConfig
from darwin_stress.market.assumptions import DEFAULT_REGIMES
from darwin_stress.simulation.scenarios import (
    apply_regime_mixing, build_regime_cdf, generate_scenarios, sample_regime,
)


def _shocks(regimes, n=500, seed=42):
    config = SimulationConfig(num_scenarios=n, regimes_enabled=regimes)
    return generate_scenarios(config, DEFAULT_REGIMES, SeededRNG(seed))


class TestRegimeSampling:
    def test_cdf_renormalizes_enabled_subset(self):
        """Probabilities of the enabled subset are rescaled to sum to 1."""
        cdf = build_regime_cdf((Regime.NORMAL, Regime.STAGFLATION), DEFAULT_REGIMES)
        assert [r for r, _ in cdf] == [Regime.NORMAL, Regime.STAGFLATION]
        assert cdf[0][1] == pytest.approx(0.55 / 0.70)
        assert cdf[-1][1] == pytest.approx(1.0)

    def test_single_regime_cdf(self):
        cdf = build_regime_cdf((Regime.DEFLATION,), DEFAULT_REGIMES)
        assert cdf == [(Regime.DEFLATION, pytest.approx(1.0))]

    def test_sample_regime_boundaries(self):
        cdf = build_regime_cdf(ALL_REGIMES, DEFAULT_REGIMES)
        assert sample_regime(cdf, 0.0) is Regime.NORMAL
        assert sample_regime(cdf, 0.99) is Regime.DEFLATION
        assert sample_regime(cdf, 1.5) is Regime.DEFLATION

    def test_regime_frequencies_follow_probabilities(self):
        shocks = _shocks(ALL_REGIMES, n=4000)
        share = sum(1 for s in shocks if s.regime is Regime.NORMAL) / len(shocks)
        assert 0.50 < share < 0.60

    def test_legacy_regime_name(self):
        """The old stress_2022 name resolves to the rate-shock crash regime."""
        assert Regime("stress_2022") is Regime.RATE_SHOCK_CRASH


class TestScenarioGeneration:
    def test_count_and_determinism(self):
        a = _shocks(ALL_REGIMES, n=300, seed=5)
        b = _shocks(ALL_REGIMES, n=300, seed=5)
        assert len(a) == 300
        assert a == b

    def test_only_enabled_regimes_appear(self):
        shocks = _shocks((Regime.RATE_SHOCK_CRASH,))
        assert {s.regime for s in shocks} == {Regime.RATE_SHOCK_CRASH}

    def test_deflation_signs(self):
        """Deflation: inflation never positive, risk-off never negative."""
        shocks = _shocks((Regime.DEFLATION,))
        assert all(s.inflation_shock <= 0 for s in shocks)
        assert all(s.risk_off_shock >= 0 for s in shocks)

    def test_stagflation_inflation_is_positive(self):
        shocks = _shocks((Regime.STAGFLATION,))
        assert all(s.inflation_shock >= 0 for s in shocks)

    def test_rate_shock_moves_are_wider(self):
        """Higher vol multiplier widens the rate distribution."""
        normal = _shocks((Regime.NORMAL,), n=2000)
        crash = _shocks((Regime.RATE_SHOCK_CRASH,), n=2000)
        spread = lambda xs: sum(abs(s.rate_change) for s in xs) / len(xs)
        assert spread(crash) > spread(normal)

    def test_tail_jumps_occur(self):
        """Roughly 5% of scenarios carry a >=200bps jump on top of the base draw."""
        shocks = _shocks((Regime.NORMAL,), n=4000)
        extreme = sum(1 for s in shocks if abs(s.rate_change) > 400)
        # base draws alone exceed 4 sigma almost never
        assert extreme > 0


class TestRegimeMixing:
    def test_normal_is_passthrough(self):
        assert apply_regime_mixing(Regime.NORMAL, 1.0, 50.0, 1.2, -0.3) == (1.2, -0.3)

    def test_rate_shock_couples_inflation_to_rates(self):
        infl, risk_off = apply_regime_mixing(Regime.RATE_SHOCK_CRASH, 1.8, 200.0, 1.0, 0.0)
        assert infl == pytest.approx(1.0 * 0.4 + 2.0 * 0.6)
        assert risk_off == pytest.approx(1.0)

    def test_stagflation(self):
        infl, risk_off = apply_regime_mixing(Regime.STAGFLATION, 1.5, 0.0, -2.0, 1.0)
        assert infl == pytest.approx(3.0)
        assert risk_off == pytest.approx(0.3 + 0.9)

    def test_deflation(self):
        assert apply_regime_mixing(Regime.DEFLATION, 1.5, 0.0, 2.0, -1.0) == (-2.0, 1.5)
