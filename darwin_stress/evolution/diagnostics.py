"""
Darwin Stress — Population diagnostics.

Pure analytical functions over evolved populations. Nothing here feeds
back into selection pressure.

  1. DIVERSITY: mean pairwise Euclidean distance between allocation
     vectors, sampled over the first MAX_DIVERSITY_SAMPLE members so the
     cost stays bounded for large populations.

  2. ADVERSARIAL FINDINGS: scans every individual's worst scenarios for
     concrete macro shocks that inflict heavy losses, deduplicated by
     (regime, direction of rates, direction of inflation), and explains
     each with a regime-specific vulnerability narrative.
"""
from __future__ import annotations

from typing import List, Sequence, Set, Tuple

from darwin_stress.evolution.allocation import allocation_distance
from darwin_stress.interfaces.enums import AssetClass, Regime
from darwin_stress.interfaces.types import (
    AdversarialFinding, EvolvedPortfolio, MacroShock, ScenarioResult,
)

MAX_DIVERSITY_SAMPLE = 20
FINDING_LOSS_THRESHOLD = -0.15
ASSET_LOSS_THRESHOLD = -0.10
MAX_AFFECTED_ASSETS = 3
MAX_FINDINGS = 5

_VULNERABILITIES = {
    Regime.RATE_SHOCK_CRASH: (
        "Correlation breakdown: traditional diversification fails as stocks "
        "and bonds crash together"
    ),
    Regime.STAGFLATION: (
        "Stagflation trap: inflation erodes bonds while weak growth crushes equities"
    ),
    Regime.DEFLATION: (
        "Deflationary spiral: growth collapse with flight-to-quality crushing risk assets"
    ),
}


def measure_diversity(population: Sequence[EvolvedPortfolio]) -> float:
    """Average pairwise allocation distance (0 = clones)."""
    sample = population[:MAX_DIVERSITY_SAMPLE]
    if len(sample) < 2:
        return 0.0
    total = 0.0
    pairs = 0
    for i in range(len(sample)):
        for j in range(i + 1, len(sample)):
            total += allocation_distance(sample[i].portfolio, sample[j].portfolio)
            pairs += 1
    return total / pairs


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def _signed(x: float, digits: int) -> str:
    return f"{'+' if x > 0 else ''}{x:.{digits}f}"


def describe_vulnerability(macro: MacroShock) -> str:
    if macro.regime in _VULNERABILITIES:
        return _VULNERABILITIES[macro.regime]
    if macro.rate_change > 100:
        move = "rate hike"
    elif macro.rate_change < -100:
        move = "rate cut"
    else:
        move = "volatility"
    return f"Extreme {move} scenario"


def _most_damaged(scenario: ScenarioResult) -> List[AssetClass]:
    losers = sorted(
        ((a, r) for a, r in scenario.asset_returns.items() if r < ASSET_LOSS_THRESHOLD),
        key=lambda ar: ar[1],
    )
    return [a for a, _ in losers[:MAX_AFFECTED_ASSETS]]


def detect_adversarial_findings(
    population: Sequence[EvolvedPortfolio],
) -> List[AdversarialFinding]:
    """
    Worst distinct macro shocks across the population, most damaging first.
    The first scenario seen for a (regime, rate sign, inflation sign) key
    claims it, whether or not it crosses the loss threshold.
    """
    findings: List[AdversarialFinding] = []
    seen: Set[Tuple[Regime, int, int]] = set()

    for individual in population:
        for worst in individual.summary.worst_scenarios:
            macro = worst.macro
            key = (macro.regime, _sign(macro.rate_change), _sign(macro.inflation_shock))
            if key in seen:
                continue
            seen.add(key)

            if worst.portfolio_return >= FINDING_LOSS_THRESHOLD:
                continue

            findings.append(AdversarialFinding(
                description=(
                    f"{macro.regime.value} regime: rates "
                    f"{_signed(macro.rate_change, 0)}bps, inflation "
                    f"{_signed(macro.inflation_shock, 1)}%"
                ),
                vulnerability=describe_vulnerability(macro),
                regime=macro.regime,
                worst_return=worst.portfolio_return,
                affected_assets=_most_damaged(worst),
            ))

    findings.sort(key=lambda f: f.worst_return)
    return findings[:MAX_FINDINGS]
