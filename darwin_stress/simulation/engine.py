"""
Darwin Stress — Monte Carlo Simulation Engine.

Maps a portfolio and a batch of regime-aware macro scenarios to per-asset
and portfolio return paths, then aggregates them into a SimulationSummary
(percentiles, Sharpe, CVaR, drawdown, realized correlations, tail flags).

Factor model per asset and scenario:
    factor  = β_rate·rate/100 + β_infl·infl/10 + β_growth·growth/10 + β_riskoff·riskoff
    noise   = N(0,1) · (vol / 2) · sqrt(years)
    return  = expected_return · years + factor + noise

The horizon return is spread evenly over the monthly wealth path, which
gets small zero-mean noise so drawdowns are path-dependent.

Usage:
    summary = run_monte_carlo(portfolio, SimulationConfig(num_scenarios=2000), seed=42)
    summary.metrics.cvar95
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional

from darwin_stress.determinism import deterministic_id, resolve_seed
from darwin_stress.infra import stats
from darwin_stress.infra.rng import SeededRNG
from darwin_stress.interfaces.enums import ALL_ASSETS, AssetClass
from darwin_stress.interfaces.types import (
    MacroShock, MarketAssumptions, Portfolio, ScenarioResult,
    SimulationConfig, SimulationMetrics, SimulationSummary, TailFlags,
)
from darwin_stress.market.assumptions import default_market
from darwin_stress.simulation.scenarios import generate_scenarios

logger = logging.getLogger("darwin.stress.simulation")

RISK_FREE_RATE = 0.04          # annual, prorated to the horizon
IDIOSYNCRATIC_SHARE = 0.5      # fraction of asset vol treated as idiosyncratic
PATH_NOISE = 0.01              # monthly wealth-path noise (std)
CVAR_TAIL = 0.05
HISTOGRAM_BUCKETS = 20
MIN_BUCKET_WIDTH = 0.01
SCENARIO_SAMPLE_SIZE = 3

# Tail-risk thresholds
CORRELATION_BREAKDOWN = 0.2
LONG_DURATION_LIMIT = 0.15
INFLATION_BOND_LIMIT = 0.20
INFLATION_HEDGE_FLOOR = 0.10
CONCENTRATION_LIMIT = 0.40


class MonteCarloEngine:
    """
    Regime-aware Monte Carlo evaluator for a single portfolio.

    Parameters
    ----------
    market : MarketAssumptions, optional
        Asset and regime tables. Defaults to the built-in tables.
    """

    __slots__ = ("_market",)

    def __init__(self, market: MarketAssumptions | None = None) -> None:
        self._market = market or default_market()

    @property
    def market(self) -> MarketAssumptions:
        return self._market

    def run(
        self,
        portfolio: Portfolio,
        config: SimulationConfig,
        seed: Optional[int] = None,
    ) -> SimulationSummary:
        """
        Simulate config.num_scenarios trials and aggregate them.

        The portfolio must already sum to 1; it is not re-validated here.
        seed falls back to config.seed, then to a clock seed.
        """
        run_seed = resolve_seed(seed if seed is not None else config.seed)
        if seed is None and config.seed is None:
            logger.debug("no seed supplied, using clock seed %d", run_seed)
        rng = SeededRNG(run_seed)

        shocks = generate_scenarios(config, self._market.regimes, rng)
        results = [
            self._simulate_scenario(i, shock, portfolio, config.horizon_months, rng)
            for i, shock in enumerate(shocks)
        ]

        summary = self._summarize(results, portfolio, config, run_seed)
        logger.debug(
            "mc %s: n=%d mean=%.4f sharpe=%.3f cvar95=%.4f maxdd=%.4f",
            summary.run_id, len(results), summary.metrics.mean_return,
            summary.metrics.sharpe_ratio, summary.metrics.cvar95,
            summary.metrics.max_drawdown,
        )
        return summary

    # ════════════════════════════════════════════════════════
    # Per-scenario path
    # ════════════════════════════════════════════════════════

    def _simulate_scenario(
        self,
        scenario_id: int,
        macro: MacroShock,
        portfolio: Portfolio,
        months: int,
        rng: SeededRNG,
    ) -> ScenarioResult:
        years = months / 12.0
        asset_returns: Dict[AssetClass, float] = {}

        for asset, weight in zip(ALL_ASSETS, portfolio.weights):
            if weight == 0:
                continue
            a = self._market.asset(asset)
            factor_return = (
                a.beta_rate * (macro.rate_change / 100.0)
                + a.beta_inflation * (macro.inflation_shock / 10.0)
                + a.beta_growth * (macro.growth_shock / 10.0)
                + a.beta_risk_off * macro.risk_off_shock
            )
            idio = rng.next_gaussian() * a.volatility * IDIOSYNCRATIC_SHARE * math.sqrt(years)
            asset_returns[asset] = a.expected_return * years + factor_return + idio

        monthly_return = sum(
            weight * asset_returns.get(asset, 0.0)
            for asset, weight in zip(ALL_ASSETS, portfolio.weights)
        ) / months

        path = [1.0]
        for _ in range(months):
            noise = rng.next_gaussian() * PATH_NOISE
            path.append(path[-1] * (1.0 + monthly_return + noise))

        return ScenarioResult(
            scenario_id=scenario_id,
            macro=macro,
            asset_returns=asset_returns,
            portfolio_return=path[-1] / path[0] - 1.0,
            drawdown=self._max_drawdown(path),
            path=path,
        )

    @staticmethod
    def _max_drawdown(path: List[float]) -> float:
        """Largest peak-to-trough relative decline along a wealth path."""
        peak = path[0]
        max_dd = 0.0
        for value in path:
            if value > peak:
                peak = value
            dd = (peak - value) / peak
            if dd > max_dd:
                max_dd = dd
        return max_dd

    # ════════════════════════════════════════════════════════
    # Aggregation
    # ════════════════════════════════════════════════════════

    def _summarize(
        self,
        results: List[ScenarioResult],
        portfolio: Portfolio,
        config: SimulationConfig,
        run_seed: int,
    ) -> SimulationSummary:
        n = len(results)
        ordered = sorted(results, key=lambda r: r.portfolio_return)
        returns = [r.portfolio_return for r in ordered]

        tail = returns[:max(1, int(n * CVAR_TAIL))]
        risk_free = RISK_FREE_RATE * (config.horizon_months / 12.0)
        avg = stats.mean(returns)
        vol = stats.stddev(returns)

        metrics = SimulationMetrics(
            p5_return=stats.percentile(returns, 5),
            p25_return=stats.percentile(returns, 25),
            p50_return=stats.percentile(returns, 50),
            p75_return=stats.percentile(returns, 75),
            p95_return=stats.percentile(returns, 95),
            mean_return=avg,
            std_dev=vol,
            sharpe_ratio=(avg - risk_free) / vol if vol > 0 else 0.0,
            max_drawdown=max(r.drawdown for r in results),
            cvar95=stats.mean(tail),
            prob_loss=sum(1 for r in returns if r < 0) / n,
        )

        corr = self._correlation_matrix(results, portfolio)

        worst = ordered[:SCENARIO_SAMPLE_SIZE]
        best = ordered[max(SCENARIO_SAMPLE_SIZE, n - SCENARIO_SAMPLE_SIZE):][::-1]

        return SimulationSummary(
            run_id=deterministic_id(run_seed),
            portfolio=portfolio,
            config=config,
            metrics=metrics,
            tail_flags=self._tail_flags(portfolio, corr),
            worst_scenarios=worst,
            best_scenarios=best,
            median_scenario=ordered[n // 2],
            return_distribution=stats.histogram(returns, HISTOGRAM_BUCKETS, MIN_BUCKET_WIDTH),
            correlation_matrix=corr,
        )

    @staticmethod
    def _correlation_matrix(
        results: List[ScenarioResult],
        portfolio: Portfolio,
    ) -> Dict[AssetClass, Dict[AssetClass, float]]:
        """Pairwise realized correlation over active assets."""
        active = portfolio.active_assets()
        series = {
            a: [r.asset_returns.get(a, 0.0) for r in results] for a in active
        }
        spread = {a: stats.stddev(series[a]) for a in active}

        matrix: Dict[AssetClass, Dict[AssetClass, float]] = {}
        for a1 in active:
            row: Dict[AssetClass, float] = {}
            for a2 in active:
                if spread[a1] > 0 and spread[a2] > 0:
                    row[a2] = stats.correlation(series[a1], series[a2])
                else:
                    row[a2] = 1.0 if a1 is a2 else 0.0
            matrix[a1] = row
        return matrix

    @staticmethod
    def _tail_flags(
        portfolio: Portfolio,
        corr: Dict[AssetClass, Dict[AssetClass, float]],
    ) -> TailFlags:
        us = portfolio.weight(AssetClass.US_EQUITIES)
        intl = portfolio.weight(AssetClass.INTL_EQUITIES)
        long_bonds = portfolio.weight(AssetClass.LONG_TERM_BONDS)
        tips = portfolio.weight(AssetClass.TIPS)

        stock_bond_corr = 0.0
        if (us > 0 or intl > 0) and long_bonds > 0:
            equity = AssetClass.US_EQUITIES if us > 0 else AssetClass.INTL_EQUITIES
            stock_bond_corr = corr.get(equity, {}).get(AssetClass.LONG_TERM_BONDS, 0.0)

        long_duration = long_bonds > LONG_DURATION_LIMIT
        return TailFlags(
            correlation_breakdown=stock_bond_corr > CORRELATION_BREAKDOWN,
            rate_shock_risk=long_duration,
            inflation_shock_risk=(
                long_bonds > INFLATION_BOND_LIMIT and tips < INFLATION_HEDGE_FLOOR
            ),
            concentration_risk=max(portfolio.weights) > CONCENTRATION_LIMIT,
            duration_risk=long_duration,
        )


def run_monte_carlo(
    portfolio: Portfolio,
    config: SimulationConfig,
    seed: Optional[int] = None,
    market: MarketAssumptions | None = None,
) -> SimulationSummary:
    """Entry point: one Monte Carlo run for one portfolio."""
    return MonteCarloEngine(market).run(portfolio, config, seed)
