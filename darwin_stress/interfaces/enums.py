"""
Darwin Stress — Enumerations.
Layer 0 (interfaces). Zero dependencies.
"""
from enum import Enum


class AssetClass(Enum):
    US_EQUITIES       = "us_equities"
    INTL_EQUITIES     = "intl_equities"
    EMERGING_EQUITIES = "emerging_equities"
    LONG_TERM_BONDS   = "long_term_bonds"
    SHORT_TERM_BONDS  = "short_term_bonds"
    TIPS              = "tips"
    REITS             = "reits"
    COMMODITIES       = "commodities"
    GOLD              = "gold"
    CASH              = "cash"


# Canonical order for every allocation vector.
ALL_ASSETS = tuple(AssetClass)


class Regime(Enum):
    """Macro regime families sampled per scenario."""
    NORMAL           = "normal"
    RATE_SHOCK_CRASH = "rate_shock_crash"  # 2022-style stock/bond crash
    STAGFLATION      = "stagflation"
    DEFLATION        = "deflation"

    @classmethod
    def _missing_(cls, value):
        if value == "stress_2022":
            return cls.RATE_SHOCK_CRASH
        return None


ALL_REGIMES = tuple(Regime)


class Provenance(Enum):
    """How an evolved portfolio came to exist."""
    SEED             = "seed"
    MUTATION         = "mutation"
    CROSSOVER        = "crossover"
    RANDOM_IMMIGRANT = "random_immigrant"
    ELITE            = "elite"


class MutationKind(Enum):
    POINT_TRANSFER = "point_transfer"
    GAUSSIAN       = "gaussian"
    SWAP           = "swap"
    ZERO_OUT       = "zero_out"
    HEDGE_SHIFT    = "hedge_shift"


class CrossoverKind(Enum):
    UNIFORM = "uniform"
    BLEND   = "blend"
