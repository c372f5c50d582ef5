"""
Darwin Stress — Capital-market assumptions and regime table.

Built-in reference data plus a YAML loader. Values are annualized;
betas are sensitivities to the scaled macro shocks used by the simulation
engine (rate per 100 bps, inflation and growth per 10 points, risk-off per
1 z-score).

Usage:
    market = default_market()
    market = load_market_assumptions("assumptions.yaml")  # partial overrides

YAML layout (any subset; missing fields keep the defaults):

    assets:
      tips: {expected_return: 0.05, beta_inflation: 0.3}
    regimes:
      stagflation: {probability: 0.2, vol_multiplier: 1.6}
"""
from __future__ import annotations

import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict

import yaml

from darwin_stress.interfaces.enums import AssetClass, Regime
from darwin_stress.interfaces.types import (
    AssetAssumptions, MarketAssumptions, RegimeConfig,
)

logger = logging.getLogger("darwin.stress.market")


class ConfigError(ValueError):
    """Malformed configuration or reference data."""


# ═════════════════════════════════════════════════════════════
# Built-in tables
# ═════════════════════════════════════════════════════════════

DEFAULT_ASSETS: Dict[AssetClass, AssetAssumptions] = {
    #                                          ret    vol    rate   infl   growth  riskoff
    AssetClass.US_EQUITIES:       AssetAssumptions(0.075, 0.16, -0.03, -0.15,  0.60, -0.08),
    AssetClass.INTL_EQUITIES:     AssetAssumptions(0.070, 0.17, -0.03, -0.12,  0.60, -0.09),
    AssetClass.EMERGING_EQUITIES: AssetAssumptions(0.085, 0.22, -0.05, -0.10,  0.80, -0.12),
    AssetClass.LONG_TERM_BONDS:   AssetAssumptions(0.045, 0.12, -0.15, -0.30, -0.20,  0.04),
    AssetClass.SHORT_TERM_BONDS:  AssetAssumptions(0.040, 0.03, -0.02, -0.05, -0.02,  0.01),
    AssetClass.TIPS:              AssetAssumptions(0.055, 0.07, -0.04,  0.30, -0.05,  0.01),
    AssetClass.REITS:             AssetAssumptions(0.065, 0.19, -0.08,  0.05,  0.50, -0.10),
    AssetClass.COMMODITIES:       AssetAssumptions(0.060, 0.18,  0.00,  0.60,  0.30, -0.03),
    AssetClass.GOLD:              AssetAssumptions(0.055, 0.15, -0.02,  0.40, -0.10,  0.05),
    AssetClass.CASH:              AssetAssumptions(0.035, 0.005, 0.01, -0.02,  0.00,  0.00),
}

DEFAULT_REGIMES: Dict[Regime, RegimeConfig] = {
    Regime.NORMAL: RegimeConfig(
        probability=0.55,
        vol_multiplier=1.0,
        description="Baseline growth with historical correlations",
    ),
    Regime.RATE_SHOCK_CRASH: RegimeConfig(
        probability=0.15,
        vol_multiplier=1.8,
        correlation_overrides={"rates_inflation": 0.6, "stocks_bonds": 0.5},
        description="2022-style rate shock: stocks and bonds fall together",
    ),
    Regime.STAGFLATION: RegimeConfig(
        probability=0.15,
        vol_multiplier=1.5,
        correlation_overrides={"inflation_growth": -0.5},
        description="Persistent inflation with stalling growth",
    ),
    Regime.DEFLATION: RegimeConfig(
        probability=0.15,
        vol_multiplier=1.5,
        correlation_overrides={"risk_off_equities": -0.7},
        description="Demand collapse with flight to quality",
    ),
}


def default_market() -> MarketAssumptions:
    return MarketAssumptions(assets=dict(DEFAULT_ASSETS), regimes=dict(DEFAULT_REGIMES))


# ═════════════════════════════════════════════════════════════
# Loader
# ═════════════════════════════════════════════════════════════

_ASSET_FIELDS = tuple(f.name for f in fields(AssetAssumptions))
_REGIME_FIELDS = tuple(f.name for f in fields(RegimeConfig))


def _merge_asset(name: str, base: AssetAssumptions, raw: Any) -> AssetAssumptions:
    if not isinstance(raw, dict):
        raise ConfigError(f"assets.{name}: expected a mapping, got {type(raw).__name__}")
    unknown = sorted(set(raw) - set(_ASSET_FIELDS))
    if unknown:
        raise ConfigError(f"assets.{name}: unknown fields {unknown}")
    merged = replace(base, **{k: float(v) for k, v in raw.items()})
    if merged.volatility <= 0:
        raise ConfigError(f"assets.{name}: volatility must be > 0")
    return merged


def _merge_regime(name: str, base: RegimeConfig, raw: Any) -> RegimeConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"regimes.{name}: expected a mapping, got {type(raw).__name__}")
    unknown = sorted(set(raw) - set(_REGIME_FIELDS))
    if unknown:
        raise ConfigError(f"regimes.{name}: unknown fields {unknown}")
    updates: Dict[str, Any] = {}
    for key, value in raw.items():
        if key == "correlation_overrides":
            updates[key] = {str(k): float(v) for k, v in (value or {}).items()}
        elif key == "description":
            updates[key] = str(value)
        else:
            updates[key] = float(value)
    merged = replace(base, **updates)
    if merged.probability < 0:
        raise ConfigError(f"regimes.{name}: probability must be >= 0")
    return merged


def parse_market_assumptions(raw: Dict[str, Any]) -> MarketAssumptions:
    """Merge a raw {assets:, regimes:} mapping over the built-in tables."""
    market = default_market()
    assets = dict(market.assets)
    regimes = dict(market.regimes)

    for name, entry in (raw.get("assets") or {}).items():
        try:
            asset = AssetClass(name)
        except ValueError:
            raise ConfigError(f"unknown asset class {name!r}") from None
        assets[asset] = _merge_asset(name, assets[asset], entry)

    for name, entry in (raw.get("regimes") or {}).items():
        try:
            regime = Regime(name)
        except ValueError:
            raise ConfigError(f"unknown regime {name!r}") from None
        regimes[regime] = _merge_regime(name, regimes[regime], entry)

    return MarketAssumptions(assets=assets, regimes=regimes)


def load_market_assumptions(path: str | None = None) -> MarketAssumptions:
    """
    Load reference data from YAML. A missing file falls back to the
    built-in tables; a malformed one raises ConfigError.
    """
    if not path or not Path(path).exists():
        if path:
            logger.warning("assumptions file %s not found, using defaults", path)
        return default_market()

    with open(path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"failed to parse {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    market = parse_market_assumptions(raw)
    logger.info(
        "loaded market assumptions from %s (%d asset overrides, %d regime overrides)",
        path, len(raw.get("assets") or {}), len(raw.get("regimes") or {}),
    )
    return market
