"""
Darwin Stress — Resilience fitness model.

    fitness = w_sharpe · Sharpe
            − w_cvar   · |CVaR95|
            − w_dd     · MaxDrawdown
            + w_return · MeanReturn

Higher is better. The score is a pure function of a SimulationSummary, so
re-scoring an unchanged summary always yields the same number; elites
carry their fitness across generations without re-simulation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from darwin_stress.interfaces.types import SimulationSummary


@dataclass(frozen=True, slots=True)
class FitnessWeights:
    sharpe: float = 2.0
    cvar: float = 1.5
    max_drawdown: float = 1.0
    return_mean: float = 1.0

    def validate(self) -> List[str]:
        errors = []
        for name in ("sharpe", "cvar", "max_drawdown", "return_mean"):
            if getattr(self, name) < 0:
                errors.append(f"fitness weight {name} must be >= 0")
        return errors

    def to_dict(self) -> Dict[str, float]:
        return {
            "sharpe": self.sharpe,
            "cvar": self.cvar,
            "max_drawdown": self.max_drawdown,
            "return_mean": self.return_mean,
        }


@dataclass(slots=True)
class FitnessBreakdown:
    """Signed contribution of each term; final_score is their sum."""
    sharpe_term: float = 0.0
    cvar_penalty: float = 0.0
    drawdown_penalty: float = 0.0
    return_term: float = 0.0
    final_score: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "sharpe_term": round(self.sharpe_term, 4),
            "cvar_penalty": round(self.cvar_penalty, 4),
            "drawdown_penalty": round(self.drawdown_penalty, 4),
            "return_term": round(self.return_term, 4),
            "final_score": round(self.final_score, 4),
        }


class ResilienceFitness:
    """Stateless scorer over simulation summaries."""

    __slots__ = ("_weights",)

    def __init__(self, weights: FitnessWeights | None = None) -> None:
        self._weights = weights or FitnessWeights()

    @property
    def weights(self) -> FitnessWeights:
        return self._weights

    def compute_breakdown(self, summary: SimulationSummary) -> FitnessBreakdown:
        w = self._weights
        m = summary.metrics
        bd = FitnessBreakdown(
            sharpe_term=w.sharpe * m.sharpe_ratio,
            cvar_penalty=-w.cvar * abs(m.cvar95),
            drawdown_penalty=-w.max_drawdown * m.max_drawdown,
            return_term=w.return_mean * m.mean_return,
        )
        bd.final_score = (
            bd.sharpe_term + bd.cvar_penalty + bd.drawdown_penalty + bd.return_term
        )
        return bd

    def score(self, summary: SimulationSummary) -> float:
        return self.compute_breakdown(summary).final_score


def compute_fitness(summary: SimulationSummary, weights: FitnessWeights) -> float:
    return ResilienceFitness(weights).score(summary)
