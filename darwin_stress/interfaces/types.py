"""
Darwin Stress — Shared value types.
Layer 0. Depends only on interfaces.enums.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from darwin_stress.interfaces.enums import (
    ALL_ASSETS, ALL_REGIMES, AssetClass, Provenance, Regime,
)


def _asset(key: AssetClass | str) -> AssetClass:
    return key if isinstance(key, AssetClass) else AssetClass(key)


# ── Portfolio ────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class Portfolio:
    """Allocation over ALL_ASSETS, stored in canonical order."""
    weights: Tuple[float, ...]

    def __post_init__(self):
        if len(self.weights) != len(ALL_ASSETS):
            raise ValueError(
                f"Portfolio needs {len(ALL_ASSETS)} weights, got {len(self.weights)}")

    @classmethod
    def from_allocations(cls, allocations: Mapping[Any, float]) -> "Portfolio":
        """Build from {AssetClass|str: weight}. Missing assets get 0."""
        by_asset = {_asset(k): float(v) for k, v in allocations.items()}
        return cls(tuple(by_asset.get(a, 0.0) for a in ALL_ASSETS))

    @property
    def allocations(self) -> Dict[AssetClass, float]:
        return dict(zip(ALL_ASSETS, self.weights))

    def weight(self, asset: AssetClass | str) -> float:
        return self.weights[ALL_ASSETS.index(_asset(asset))]

    def active_assets(self) -> List[AssetClass]:
        return [a for a, w in zip(ALL_ASSETS, self.weights) if w > 0]

    def total(self) -> float:
        return sum(self.weights)

    def to_dict(self) -> Dict[str, float]:
        return {a.value: round(w, 4) for a, w in zip(ALL_ASSETS, self.weights)}


# ── Reference data ───────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class AssetAssumptions:
    expected_return: float  # annualized
    volatility: float       # annualized
    beta_rate: float        # per 100 bps rate shock
    beta_inflation: float   # per 10% inflation shock
    beta_growth: float      # per 10% growth shock
    beta_risk_off: float    # per 1 z-score of risk-off


@dataclass(frozen=True)
class RegimeConfig:
    probability: float
    vol_multiplier: float
    correlation_overrides: Dict[str, float] = field(default_factory=dict)
    description: str = ""


@dataclass(frozen=True)
class MarketAssumptions:
    """Read-only reference tables handed to both entry points."""
    assets: Dict[AssetClass, AssetAssumptions]
    regimes: Dict[Regime, RegimeConfig]

    def asset(self, asset: AssetClass) -> AssetAssumptions:
        return self.assets[asset]


# ── Simulation ───────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class SimulationConfig:
    num_scenarios: int = 5000
    horizon_months: int = 12
    regimes_enabled: Tuple[Regime, ...] = ALL_REGIMES
    seed: Optional[int] = None

    def validate(self) -> List[str]:
        """Return list of validation errors (empty = valid)."""
        errors = []
        if self.num_scenarios < 1:
            errors.append("num_scenarios must be >= 1")
        if self.horizon_months < 1:
            errors.append("horizon_months must be >= 1")
        if not self.regimes_enabled:
            errors.append("at least one regime must be enabled")
        return errors

    def with_regime(self, regime: Regime) -> "SimulationConfig":
        if regime in self.regimes_enabled:
            return self
        return replace(self, regimes_enabled=self.regimes_enabled + (regime,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_scenarios": self.num_scenarios,
            "horizon_months": self.horizon_months,
            "regimes_enabled": [r.value for r in self.regimes_enabled],
            "seed": self.seed,
        }


@dataclass(frozen=True, slots=True)
class MacroShock:
    rate_change: float       # bps
    inflation_shock: float   # percentage points
    growth_shock: float      # percentage points
    risk_off_shock: float    # z-score
    regime: Regime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rate_change": round(self.rate_change, 2),
            "inflation_shock": round(self.inflation_shock, 4),
            "growth_shock": round(self.growth_shock, 4),
            "risk_off_shock": round(self.risk_off_shock, 4),
            "regime": self.regime.value,
        }


@dataclass(slots=True)
class ScenarioResult:
    scenario_id: int
    macro: MacroShock
    asset_returns: Dict[AssetClass, float]
    portfolio_return: float
    drawdown: float
    path: List[float] = field(default_factory=list)  # monthly wealth, starts at 1.0

    def to_dict(self, include_path: bool = True) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "scenario_id": self.scenario_id,
            "macro": self.macro.to_dict(),
            "portfolio_return": round(self.portfolio_return, 6),
            "drawdown": round(self.drawdown, 6),
        }
        if include_path:
            d["asset_returns"] = {
                a.value: round(r, 6) for a, r in self.asset_returns.items()
            }
            d["path"] = [round(v, 6) for v in self.path]
        return d


@dataclass(slots=True)
class SimulationMetrics:
    p5_return: float = 0.0
    p25_return: float = 0.0
    p50_return: float = 0.0
    p75_return: float = 0.0
    p95_return: float = 0.0
    mean_return: float = 0.0
    std_dev: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    cvar95: float = 0.0
    prob_loss: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "p5_return": round(self.p5_return, 6),
            "p25_return": round(self.p25_return, 6),
            "p50_return": round(self.p50_return, 6),
            "p75_return": round(self.p75_return, 6),
            "p95_return": round(self.p95_return, 6),
            "mean_return": round(self.mean_return, 6),
            "std_dev": round(self.std_dev, 6),
            "sharpe_ratio": round(self.sharpe_ratio, 6),
            "max_drawdown": round(self.max_drawdown, 6),
            "cvar95": round(self.cvar95, 6),
            "prob_loss": round(self.prob_loss, 6),
        }


@dataclass(slots=True)
class TailFlags:
    correlation_breakdown: bool = False
    rate_shock_risk: bool = False
    inflation_shock_risk: bool = False
    concentration_risk: bool = False
    duration_risk: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "correlation_breakdown": self.correlation_breakdown,
            "rate_shock_risk": self.rate_shock_risk,
            "inflation_shock_risk": self.inflation_shock_risk,
            "concentration_risk": self.concentration_risk,
            "duration_risk": self.duration_risk,
        }


@dataclass(slots=True)
class SimulationSummary:
    run_id: str
    portfolio: Portfolio
    config: SimulationConfig
    metrics: SimulationMetrics
    tail_flags: TailFlags
    worst_scenarios: List[ScenarioResult]
    best_scenarios: List[ScenarioResult]
    median_scenario: ScenarioResult
    return_distribution: List[int]
    correlation_matrix: Dict[AssetClass, Dict[AssetClass, float]]

    def to_dict(self, include_paths: bool = True) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "portfolio": self.portfolio.to_dict(),
            "config": self.config.to_dict(),
            "metrics": self.metrics.to_dict(),
            "tail_flags": self.tail_flags.to_dict(),
            "worst_scenarios": [s.to_dict(include_paths) for s in self.worst_scenarios],
            "best_scenarios": [s.to_dict(include_paths) for s in self.best_scenarios],
            "median_scenario": self.median_scenario.to_dict(include_paths),
            "return_distribution": list(self.return_distribution),
            "correlation_matrix": {
                a.value: {b.value: round(c, 4) for b, c in row.items()}
                for a, row in self.correlation_matrix.items()
            },
        }


# ── Evolution ────────────────────────────────────────────────

@dataclass(slots=True)
class EvolvedPortfolio:
    portfolio: Portfolio
    fitness: float
    summary: SimulationSummary
    generation: int = 0
    provenance: Provenance = Provenance.SEED
    fitness_terms: Dict[str, float] = field(default_factory=dict)

    def copy(self, **changes: Any) -> "EvolvedPortfolio":
        """Independent deep copy; later population churn cannot reach it."""
        changes.setdefault("fitness_terms", dict(self.fitness_terms))
        return replace(self, summary=copy.deepcopy(self.summary), **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "portfolio": self.portfolio.to_dict(),
            "fitness": round(self.fitness, 6),
            "fitness_breakdown": dict(self.fitness_terms),
            "metrics": self.summary.metrics.to_dict(),
            "tail_flags": self.summary.tail_flags.to_dict(),
            "generation": self.generation,
            "provenance": self.provenance.value,
        }


@dataclass(slots=True)
class GenerationSnapshot:
    generation: int
    best: EvolvedPortfolio
    worst: EvolvedPortfolio
    median: EvolvedPortfolio
    avg_fitness: float
    diversity: float
    population: List[EvolvedPortfolio] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation": self.generation,
            "best_fitness": round(self.best.fitness, 6),
            "worst_fitness": round(self.worst.fitness, 6),
            "avg_fitness": round(self.avg_fitness, 6),
            "diversity": round(self.diversity, 6),
            "best_allocation": self.best.portfolio.to_dict(),
            "best_metrics": self.best.summary.metrics.to_dict(),
            "best_tail_flags": self.best.summary.tail_flags.to_dict(),
        }


@dataclass(slots=True)
class AdversarialFinding:
    description: str
    vulnerability: str
    regime: Regime
    worst_return: float
    affected_assets: List[AssetClass] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "vulnerability": self.vulnerability,
            "regime": self.regime.value,
            "worst_return": round(self.worst_return, 6),
            "affected_assets": [a.value for a in self.affected_assets],
        }


@dataclass(slots=True)
class EvolutionResult:
    generations: List[GenerationSnapshot]
    champion: EvolvedPortfolio
    hall_of_fame: List[EvolvedPortfolio]
    adversarial_findings: List[AdversarialFinding]

    def to_dict(self) -> Dict[str, Any]:
        """Trimmed payload: generation digests, no wealth paths."""
        champion = self.champion.to_dict()
        champion["worst_scenarios"] = [
            s.to_dict(include_path=False)
            for s in self.champion.summary.worst_scenarios
        ]
        return {
            "generations": [g.to_dict() for g in self.generations],
            "champion": champion,
            "hall_of_fame": [h.to_dict() for h in self.hall_of_fame],
            "adversarial_findings": [f.to_dict() for f in self.adversarial_findings],
        }
