"""
Darwin Stress — Configuration loader.

Loads run defaults from a YAML file with environment variable overrides,
and turns them into the engine's SimulationConfig / EvolutionConfig.
Also hosts the caller-side portfolio validation that runs before either
entry point is invoked (the engine itself assumes valid input).

Usage:
    config = load_config("config.yaml")
    config = load_config()  # defaults only
    errors = validate_portfolio(portfolio)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from darwin_stress.evolution.engine import EvolutionConfig
from darwin_stress.evolution.fitness import FitnessWeights
from darwin_stress.interfaces.enums import ALL_REGIMES, Regime
from darwin_stress.interfaces.types import MarketAssumptions, Portfolio, SimulationConfig
from darwin_stress.market.assumptions import ConfigError, load_market_assumptions

logger = logging.getLogger("darwin.stress.config")

ALLOCATION_TOLERANCE = 0.01


# ═════════════════════════════════════════════════════════════
# Config dataclasses
# ═════════════════════════════════════════════════════════════

@dataclass
class SimulationDefaults:
    num_scenarios: int = 5000
    horizon_months: int = 12
    regimes_enabled: List[str] = field(
        default_factory=lambda: [r.value for r in ALL_REGIMES])
    seed: Optional[int] = None


@dataclass
class EvolutionDefaults:
    population_size: int = 20
    generations: int = 8
    mutation_rate: float = 0.6
    crossover_rate: float = 0.4
    elite_count: int = 3
    adversarial_pressure: float = 0.5
    num_scenarios: int = 2000
    horizon_months: int = 12
    sharpe_weight: float = 2.0
    cvar_weight: float = 1.5
    drawdown_weight: float = 1.0
    return_weight: float = 1.0
    seed: Optional[int] = None


@dataclass
class InfraConfig:
    log_level: str = "INFO"
    log_file: str = ""
    assumptions_path: str = ""


@dataclass
class StressConfig:
    """Top-level configuration."""
    simulation: SimulationDefaults = field(default_factory=SimulationDefaults)
    evolution: EvolutionDefaults = field(default_factory=EvolutionDefaults)
    infra: InfraConfig = field(default_factory=InfraConfig)

    def validate(self) -> List[str]:
        """Return list of validation errors (empty = valid)."""
        errors = []
        if not isinstance(self.simulation.regimes_enabled, list):
            return [
                "simulation.regimes_enabled: expected a list of regime names, "
                f"got {self.simulation.regimes_enabled!r}"
            ]
        for name in self.simulation.regimes_enabled:
            try:
                Regime(name)
            except ValueError:
                errors.append(f"simulation.regimes_enabled: unknown regime {name!r}")
        if not errors:
            errors.extend(self.simulation_config().validate())
            errors.extend(self.evolution_config().validate())
        return errors

    def simulation_config(self) -> SimulationConfig:
        s = self.simulation
        return SimulationConfig(
            num_scenarios=s.num_scenarios,
            horizon_months=s.horizon_months,
            regimes_enabled=tuple(Regime(r) for r in s.regimes_enabled),
            seed=s.seed,
        )

    def evolution_config(self) -> EvolutionConfig:
        e = self.evolution
        return EvolutionConfig(
            population_size=e.population_size,
            generations=e.generations,
            mutation_rate=e.mutation_rate,
            crossover_rate=e.crossover_rate,
            elite_count=e.elite_count,
            fitness_weights=FitnessWeights(
                sharpe=e.sharpe_weight,
                cvar=e.cvar_weight,
                max_drawdown=e.drawdown_weight,
                return_mean=e.return_weight,
            ),
            adversarial_pressure=e.adversarial_pressure,
            sim_config=SimulationConfig(
                num_scenarios=e.num_scenarios,
                horizon_months=e.horizon_months,
                regimes_enabled=tuple(Regime(r) for r in self.simulation.regimes_enabled),
            ),
            seed=e.seed,
        )

    def market(self) -> MarketAssumptions:
        return load_market_assumptions(self.infra.assumptions_path or None)


# ═════════════════════════════════════════════════════════════
# Loader
# ═════════════════════════════════════════════════════════════

def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name}: expected a mapping, got {type(value).__name__}")
    return value


_OPTIONAL_INT_FIELDS = {"seed"}


def _coerce(kind: type, value: Any, where: str) -> Any:
    """Convert a YAML scalar to the field's type; ConfigError on mismatch."""
    if kind is list:
        if not isinstance(value, list):
            raise ConfigError(f"{where}: expected a list, got {value!r}")
        return value
    if kind is str:
        if isinstance(value, (dict, list)):
            raise ConfigError(f"{where}: expected a string, got {value!r}")
        return str(value)
    if isinstance(value, bool) or isinstance(value, (dict, list)):
        raise ConfigError(f"{where}: expected a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}: expected a number, got {value!r}") from None
    if kind is int:
        if not number.is_integer():
            raise ConfigError(f"{where}: expected an integer, got {value!r}")
        return int(number)
    return number


def _apply(target: Any, values: Dict[str, Any], section: str) -> None:
    for key, value in values.items():
        if not hasattr(target, key):
            raise ConfigError(f"{section}: unknown field {key!r}")
        where = f"{section}.{key}"
        if key in _OPTIONAL_INT_FIELDS:
            setattr(target, key, None if value is None else _coerce(int, value, where))
            continue
        if value is None:
            raise ConfigError(f"{where}: value must not be null")
        setattr(target, key, _coerce(type(getattr(target, key)), value, where))


def load_config(path: str | None = None) -> StressConfig:
    """
    Load config from YAML file with env var overrides.

    Priority: env vars > YAML file > defaults
    """
    raw: Dict[str, Any] = {}

    if path and Path(path).exists():
        with open(path) as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"failed to parse {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        logger.info("loaded config from %s", path)
    elif path:
        logger.warning("config file %s not found, using defaults", path)

    config = StressConfig()
    _apply(config.simulation, _section(raw, "simulation"), "simulation")
    _apply(config.evolution, _section(raw, "evolution"), "evolution")
    _apply(config.infra, _section(raw, "infra"), "infra")

    def _env_int(name: str, default: Optional[int]) -> Optional[int]:
        raw_val = os.getenv(name)
        if raw_val is None or raw_val.strip() == "":
            return default
        try:
            return int(raw_val)
        except ValueError:
            logger.warning("invalid int in %s=%r; using default=%s", name, raw_val, default)
            return default

    def _env_float(name: str, default: float) -> float:
        raw_val = os.getenv(name)
        if raw_val is None or raw_val.strip() == "":
            return default
        try:
            return float(raw_val)
        except ValueError:
            logger.warning("invalid float in %s=%r; using default=%s", name, raw_val, default)
            return default

    seed = _env_int("DARWIN_SEED", None)
    if seed is not None:
        config.simulation.seed = seed
        config.evolution.seed = seed
    config.simulation.num_scenarios = _env_int(
        "DARWIN_SCENARIOS", config.simulation.num_scenarios)
    config.simulation.horizon_months = _env_int(
        "DARWIN_HORIZON_MONTHS", config.simulation.horizon_months)
    config.evolution.horizon_months = _env_int(
        "DARWIN_HORIZON_MONTHS", config.evolution.horizon_months)
    config.evolution.population_size = _env_int(
        "DARWIN_POPULATION", config.evolution.population_size)
    config.evolution.generations = _env_int(
        "DARWIN_GENERATIONS", config.evolution.generations)
    config.evolution.adversarial_pressure = _env_float(
        "DARWIN_ADVERSARIAL_PRESSURE", config.evolution.adversarial_pressure)
    config.infra.assumptions_path = os.getenv(
        "DARWIN_ASSUMPTIONS", config.infra.assumptions_path)
    config.infra.log_level = os.getenv("LOG_LEVEL", config.infra.log_level)

    return config


# ═════════════════════════════════════════════════════════════
# Portfolio validation (caller side)
# ═════════════════════════════════════════════════════════════

def parse_allocations(allocations: Dict[str, Any]) -> Portfolio:
    """Build a Portfolio from {asset_name: weight}; unknown names raise ConfigError."""
    try:
        return Portfolio.from_allocations(
            {name: float(weight) for name, weight in allocations.items()})
    except ValueError as exc:
        raise ConfigError(f"invalid allocation: {exc}") from exc


def validate_portfolio(
    portfolio: Portfolio,
    tolerance: float = ALLOCATION_TOLERANCE,
) -> List[str]:
    """Return list of validation errors (empty = valid)."""
    errors = []
    negative = [a.value for a, w in portfolio.allocations.items() if w < 0]
    if negative:
        errors.append(f"Allocations must be non-negative (got negative {', '.join(negative)})")
    total = portfolio.total()
    if abs(total - 1.0) > tolerance:
        errors.append(f"Allocations must sum to 100% (got {total * 100:.1f}%)")
    return errors
