"""
Darwin Stress — Regime-aware macro scenario generator.

Per scenario:
  1. Sample a regime from the enabled set (renormalized inverse CDF)
  2. Draw four base shocks (rate, inflation, growth, risk-off), each scaled
     by the regime volatility multiplier
  3. Recombine the drawn shocks to impose the regime's co-movement
  4. With 5% probability add a ±[200, 400) bps jump to the rate shock

The order of RNG draws (regime → base shocks → mixing → jump) is part of
the contract: reordering changes every downstream statistic for a seed.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from darwin_stress.infra.rng import SeededRNG
from darwin_stress.interfaces.enums import Regime
from darwin_stress.interfaces.types import MacroShock, RegimeConfig, SimulationConfig

logger = logging.getLogger("darwin.stress.scenarios")

# Base shock scales (one standard deviation, before regime multiplier)
RATE_SCALE_BPS = 100.0
INFLATION_SCALE = 2.0
GROWTH_SCALE = 2.5
RISK_OFF_SCALE = 1.0

TAIL_JUMP_PROBABILITY = 0.05
TAIL_JUMP_MIN_BPS = 200.0
TAIL_JUMP_SPAN_BPS = 200.0


def build_regime_cdf(
    enabled: Sequence[Regime],
    regimes: Dict[Regime, RegimeConfig],
) -> List[Tuple[Regime, float]]:
    """Cumulative distribution over enabled regimes, renormalized to 1."""
    total = sum(regimes[r].probability for r in enabled)
    cdf: List[Tuple[Regime, float]] = []
    cum = 0.0
    for regime in enabled:
        cum += regimes[regime].probability / total if total > 0 else 1.0 / len(enabled)
        cdf.append((regime, cum))
    return cdf


def sample_regime(cdf: Sequence[Tuple[Regime, float]], u: float) -> Regime:
    for regime, cum_prob in cdf:
        if u <= cum_prob:
            return regime
    return cdf[-1][0]


def apply_regime_mixing(
    regime: Regime,
    vol_mult: float,
    rate_change: float,
    inflation: float,
    risk_off: float,
) -> Tuple[float, float]:
    """
    Impose regime co-movement by recombining already-drawn shocks.
    Returns (adjusted_inflation, adjusted_risk_off).
    """
    rate_units = rate_change / 100.0
    if regime is Regime.RATE_SHOCK_CRASH:
        # inflation rides with rates; stress rises with the size of the move
        return (
            inflation * 0.4 + rate_units * 0.6,
            risk_off * 0.5 + abs(rate_units) * 0.5,
        )
    if regime is Regime.STAGFLATION:
        adj_inflation = abs(inflation) * vol_mult
        return adj_inflation, risk_off * 0.3 + abs(adj_inflation) * 0.3
    if regime is Regime.DEFLATION:
        return -abs(inflation), abs(risk_off) * vol_mult
    return inflation, risk_off


def generate_scenarios(
    config: SimulationConfig,
    regimes: Dict[Regime, RegimeConfig],
    rng: SeededRNG,
) -> List[MacroShock]:
    """One MacroShock per requested scenario."""
    cdf = build_regime_cdf(config.regimes_enabled, regimes)
    scenarios: List[MacroShock] = []

    for _ in range(config.num_scenarios):
        regime = sample_regime(cdf, rng.next())
        vol_mult = regimes[regime].vol_multiplier

        rate_change = rng.next_gaussian() * RATE_SCALE_BPS * vol_mult
        inflation = rng.next_gaussian() * INFLATION_SCALE * vol_mult
        growth = rng.next_gaussian() * GROWTH_SCALE * vol_mult
        risk_off = rng.next_gaussian() * RISK_OFF_SCALE * vol_mult

        adj_inflation, adj_risk_off = apply_regime_mixing(
            regime, vol_mult, rate_change, inflation, risk_off,
        )

        if rng.next() < TAIL_JUMP_PROBABILITY:
            sign = 1.0 if rng.next() > 0.5 else -1.0
            rate_change += sign * (TAIL_JUMP_MIN_BPS + rng.next() * TAIL_JUMP_SPAN_BPS)

        scenarios.append(MacroShock(
            rate_change=rate_change,
            inflation_shock=adj_inflation,
            growth_shock=growth,
            risk_off_shock=adj_risk_off,
            regime=regime,
        ))

    logger.debug(
        "generated %d scenarios over %d regimes",
        len(scenarios), len(config.regimes_enabled),
    )
    return scenarios
