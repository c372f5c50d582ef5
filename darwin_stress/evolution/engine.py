"""
Darwin Stress — EvolutionEngine.

Genetic search over asset allocations, scored by Monte Carlo resilience.

Lifecycle:
  1. Seed population: the seed portfolio unchanged, ~50% seed mutations of
     rising intensity, the rest uniformly random portfolios
  2. Per generation:
       a. rank by fitness, record a GenerationSnapshot (deep copies)
       b. offer the leader to the HallOfFame
       c. elites survive unchanged; remaining slots are filled by
          crossover (+ optional mutation), mutation of a tournament
          winner, or a random immigrant, chosen by one roll each
       d. escalate adversarial pressure (stress regimes are only ever
          added to the evaluation config, never removed)
  3. Final ranking, final snapshot, adversarial findings

Determinism: one SeededRNG per run feeds every draw, including the seed of
each candidate's Monte Carlo evaluation, so a fixed config.seed reproduces
the whole run. Generation N+1 is built only after all of generation N has
been scored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from darwin_stress.determinism import resolve_seed, stable_sort_by_fitness
from darwin_stress.evolution.allocation import random_portfolio
from darwin_stress.evolution.archive import HallOfFame
from darwin_stress.evolution.diagnostics import (
    detect_adversarial_findings, measure_diversity,
)
from darwin_stress.evolution.fitness import FitnessWeights, ResilienceFitness
from darwin_stress.evolution.operators import crossover, mutate
from darwin_stress.infra.rng import SeededRNG
from darwin_stress.interfaces.enums import ALL_REGIMES, Provenance, Regime
from darwin_stress.interfaces.types import (
    EvolutionResult, EvolvedPortfolio, GenerationSnapshot, MarketAssumptions,
    Portfolio, SimulationConfig,
)
from darwin_stress.simulation.engine import MonteCarloEngine

logger = logging.getLogger("darwin.stress.evolution")

TOURNAMENT_SIZE = 3
SEED_MUTATION_SHARE = 0.5
SEED_MUTATION_RAMP = 0.1
ALL_REGIMES_PRESSURE = 0.5
STRESS_REGIME_PRESSURE = 0.7


@dataclass(frozen=True)
class EvolutionConfig:
    population_size: int = 20
    generations: int = 8
    mutation_rate: float = 0.6
    crossover_rate: float = 0.4
    elite_count: int = 3
    fitness_weights: FitnessWeights = field(default_factory=FitnessWeights)
    adversarial_pressure: float = 0.5   # 0-1, bias toward stress regimes
    sim_config: SimulationConfig = field(
        default_factory=lambda: SimulationConfig(num_scenarios=2000, horizon_months=12)
    )
    seed: Optional[int] = None

    def validate(self) -> List[str]:
        """Return list of validation errors (empty = valid)."""
        errors = []
        if self.population_size < 2:
            errors.append("population_size must be >= 2")
        if self.generations < 1:
            errors.append("generations must be >= 1")
        if not (0 <= self.elite_count < self.population_size):
            errors.append("elite_count must be in [0, population_size)")
        if not (0 <= self.mutation_rate <= 1):
            errors.append("mutation_rate must be in [0, 1]")
        if not (0 <= self.crossover_rate <= 1):
            errors.append("crossover_rate must be in [0, 1]")
        if not (0 <= self.adversarial_pressure <= 1):
            errors.append("adversarial_pressure must be in [0, 1]")
        errors.extend(self.fitness_weights.validate())
        errors.extend(f"sim_config: {e}" for e in self.sim_config.validate())
        return errors


# ═════════════════════════════════════════════════════════════
# EvolutionEngine
# ═════════════════════════════════════════════════════════════

class EvolutionEngine:
    """
    One evolution run per instance.

    The engine owns the run RNG, the (monotonically escalating) evaluation
    config and the hall of fame. The caller's config is never mutated.
    """

    __slots__ = (
        "_config", "_rng", "_seed", "_sim_config", "_fitness_model",
        "_simulator", "_hall_of_fame",
    )

    def __init__(
        self,
        config: EvolutionConfig,
        market: MarketAssumptions | None = None,
    ) -> None:
        self._config = config
        self._seed = resolve_seed(config.seed)
        self._rng = SeededRNG(self._seed)
        self._sim_config = self._initial_sim_config(config)
        self._fitness_model = ResilienceFitness(config.fitness_weights)
        self._simulator = MonteCarloEngine(market)
        self._hall_of_fame = HallOfFame()

    @property
    def sim_config(self) -> SimulationConfig:
        """Evaluation config currently in force (after escalation)."""
        return self._sim_config

    @property
    def hall_of_fame(self) -> HallOfFame:
        return self._hall_of_fame

    # ════════════════════════════════════════════════════════
    # Run
    # ════════════════════════════════════════════════════════

    def run(self, seed_portfolio: Portfolio) -> EvolutionResult:
        cfg = self._config
        logger.info(
            "evolution start: seed=%d pop=%d gens=%d pressure=%.2f regimes=%s weights=%s",
            self._seed, cfg.population_size, cfg.generations,
            cfg.adversarial_pressure,
            ",".join(r.value for r in self._sim_config.regimes_enabled),
            self._fitness_model.weights.to_dict(),
        )

        generations: List[GenerationSnapshot] = []
        population = self._initial_population(seed_portfolio)

        for gen in range(cfg.generations):
            population = stable_sort_by_fitness(population)
            snapshot = self._snapshot(gen, population)
            generations.append(snapshot)
            self._hall_of_fame.consider(population[0], gen)

            logger.info(
                "gen %d evaluated: pop=%d best=%.4f avg=%.4f worst=%.4f "
                "diversity=%.4f hof=%d",
                gen, len(population), snapshot.best.fitness,
                snapshot.avg_fitness, snapshot.worst.fitness,
                snapshot.diversity, self._hall_of_fame.size,
            )

            population = self._next_generation(population, gen)
            self._escalate_pressure(gen)

        population = stable_sort_by_fitness(population)
        generations.append(self._snapshot(cfg.generations, population))

        champion = population[0]
        hall = self._hall_of_fame.entries or [champion.copy()]
        findings = detect_adversarial_findings(population)

        logger.info(
            "evolution done: champion fitness=%.4f sharpe=%.3f cvar95=%.4f "
            "provenance=%s findings=%d hall_of_fame=%s",
            champion.fitness, champion.summary.metrics.sharpe_ratio,
            champion.summary.metrics.cvar95, champion.provenance.value,
            len(findings), self._hall_of_fame.summary(),
        )
        return EvolutionResult(
            generations=generations,
            champion=champion,
            hall_of_fame=hall,
            adversarial_findings=findings,
        )

    # ════════════════════════════════════════════════════════
    # Population construction
    # ════════════════════════════════════════════════════════

    def _initial_population(self, seed_portfolio: Portfolio) -> List[EvolvedPortfolio]:
        cfg = self._config
        population: List[EvolvedPortfolio] = []
        for i in range(cfg.population_size):
            if i == 0:
                portfolio, origin = seed_portfolio, Provenance.SEED
            elif i < cfg.population_size * SEED_MUTATION_SHARE:
                intensity = cfg.mutation_rate * (1 + i * SEED_MUTATION_RAMP)
                portfolio = mutate(seed_portfolio, intensity, self._rng)
                origin = Provenance.MUTATION
            else:
                portfolio, origin = random_portfolio(self._rng), Provenance.RANDOM_IMMIGRANT
            population.append(self._evaluate(portfolio, 0, origin))
        return population

    def _next_generation(
        self,
        population: List[EvolvedPortfolio],
        gen: int,
    ) -> List[EvolvedPortfolio]:
        """Elitism + offspring. `population` must be ranked best-first."""
        if not population:
            raise RuntimeError(f"empty population at generation {gen}")

        cfg = self._config
        child_gen = gen + 1
        next_gen = [
            e.copy(generation=child_gen, provenance=Provenance.ELITE)
            for e in population[:cfg.elite_count]
        ]

        while len(next_gen) < cfg.population_size:
            roll = self._rng.next()
            if roll < cfg.crossover_rate and len(population) >= 2:
                parent_a = self._tournament_select(population)
                parent_b = self._tournament_select(population)
                child = crossover(parent_a.portfolio, parent_b.portfolio, self._rng)
                if self._rng.next() < cfg.mutation_rate:
                    child = mutate(child, cfg.mutation_rate, self._rng)
                origin = Provenance.CROSSOVER
            elif roll < cfg.crossover_rate + cfg.mutation_rate:
                parent = self._tournament_select(population)
                child = mutate(parent.portfolio, cfg.mutation_rate, self._rng)
                origin = Provenance.MUTATION
            else:
                child = random_portfolio(self._rng)
                origin = Provenance.RANDOM_IMMIGRANT
            next_gen.append(self._evaluate(child, child_gen, origin))

        return next_gen

    def _evaluate(
        self,
        portfolio: Portfolio,
        generation: int,
        provenance: Provenance,
    ) -> EvolvedPortfolio:
        summary = self._simulator.run(portfolio, self._sim_config, self._rng.next_seed())
        breakdown = self._fitness_model.compute_breakdown(summary)
        return EvolvedPortfolio(
            portfolio=portfolio,
            fitness=breakdown.final_score,
            summary=summary,
            generation=generation,
            provenance=provenance,
            fitness_terms=breakdown.to_dict(),
        )

    # ════════════════════════════════════════════════════════
    # Selection + snapshots
    # ════════════════════════════════════════════════════════

    def _tournament_select(self, population: List[EvolvedPortfolio]) -> EvolvedPortfolio:
        best = self._rng.choice(population)
        for _ in range(TOURNAMENT_SIZE - 1):
            contender = self._rng.choice(population)
            if contender.fitness > best.fitness:
                best = contender
        return best

    @staticmethod
    def _snapshot(gen: int, ranked: List[EvolvedPortfolio]) -> GenerationSnapshot:
        if not ranked:
            raise RuntimeError(f"empty population at generation {gen}")
        population = [p.copy() for p in ranked]
        return GenerationSnapshot(
            generation=gen,
            best=population[0],
            worst=population[-1],
            median=population[len(population) // 2],
            avg_fitness=sum(p.fitness for p in population) / len(population),
            diversity=measure_diversity(population),
            population=population,
        )

    # ════════════════════════════════════════════════════════
    # Adversarial pressure
    # ════════════════════════════════════════════════════════

    @staticmethod
    def _initial_sim_config(config: EvolutionConfig) -> SimulationConfig:
        sim = config.sim_config
        if config.adversarial_pressure > ALL_REGIMES_PRESSURE:
            for regime in ALL_REGIMES:
                sim = sim.with_regime(regime)
        return sim

    def _escalate_pressure(self, gen: int) -> None:
        cfg = self._config
        if cfg.adversarial_pressure <= 0:
            return
        pressure = cfg.adversarial_pressure * (1 + gen / cfg.generations)
        if (pressure > STRESS_REGIME_PRESSURE
                and Regime.RATE_SHOCK_CRASH not in self._sim_config.regimes_enabled):
            self._sim_config = self._sim_config.with_regime(Regime.RATE_SHOCK_CRASH)
            logger.info(
                "gen %d: adversarial pressure %.2f, rate_shock_crash regime enabled",
                gen, pressure,
            )


def evolve_portfolio(
    seed_portfolio: Portfolio,
    config: EvolutionConfig,
    market: MarketAssumptions | None = None,
) -> EvolutionResult:
    """Entry point: one full evolutionary run from a seed portfolio."""
    return EvolutionEngine(config, market).run(seed_portfolio)
