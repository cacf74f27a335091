"""Core enums used throughout the allocation engine."""

from __future__ import annotations

from enum import Enum


# ─── Asset Classes ─────────────────────────────────────────────────────────────


class AssetClass(str, Enum):
    """Tradable asset class categories.

    Declaration order is the canonical order used for tie-breaking.
    """

    EQUITIES = "EQUITIES"
    OPTIONS = "OPTIONS"
    FUTURES = "FUTURES"
    ETF = "ETF"
    FOREX = "FOREX"
    CRYPTO = "CRYPTO"

    @classmethod
    def ordered(cls) -> tuple[AssetClass, ...]:
        return tuple(cls)

    @property
    def rank(self) -> int:
        return list(AssetClass).index(self)

    @property
    def is_alternative(self) -> bool:
        return self in ALTERNATIVE_CLASSES


ALTERNATIVE_CLASSES = frozenset({AssetClass.OPTIONS, AssetClass.FUTURES, AssetClass.CRYPTO})


# ─── Risk Profiles ─────────────────────────────────────────────────────────────


class RiskProfile(str, Enum):
    """Investor risk tolerance tiers, least to most aggressive."""

    CONSERVATIVE = "CONSERVATIVE"
    MODERATE_CONSERVATIVE = "MODERATE_CONSERVATIVE"
    MODERATE = "MODERATE"
    MODERATE_AGGRESSIVE = "MODERATE_AGGRESSIVE"
    AGGRESSIVE = "AGGRESSIVE"

    @classmethod
    def ordered(cls) -> tuple[RiskProfile, ...]:
        return tuple(cls)


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


# ─── Market Regime ─────────────────────────────────────────────────────────────


class TrendDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


class InterestRateLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class EconomicPhase(str, Enum):
    EXPANSION = "EXPANSION"
    PEAK = "PEAK"
    CONTRACTION = "CONTRACTION"
    TROUGH = "TROUGH"


class MarketCondition(str, Enum):
    """Coarse classification of a market metrics snapshot."""

    BULL = "BULL"
    BEAR = "BEAR"
    SIDEWAYS = "SIDEWAYS"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    LOW_VOLATILITY = "LOW_VOLATILITY"
    CRISIS = "CRISIS"


# ─── Optimization ──────────────────────────────────────────────────────────────


class OptimizationObjective(str, Enum):
    MAX_SHARPE = "MAX_SHARPE"
    MIN_RISK = "MIN_RISK"
    MAX_RETURN = "MAX_RETURN"
    MAX_DIVERSIFICATION = "MAX_DIVERSIFICATION"
    RISK_PARITY = "RISK_PARITY"


class ConstraintType(str, Enum):
    MIN_ALLOCATION = "MIN_ALLOCATION"
    MAX_ALLOCATION = "MAX_ALLOCATION"


# ─── Rebalancing ───────────────────────────────────────────────────────────────


class TransactionCostModel(str, Enum):
    FIXED = "FIXED"            # Flat fee per trade
    PERCENTAGE = "PERCENTAGE"  # Fraction of traded notional


class RebalanceAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
