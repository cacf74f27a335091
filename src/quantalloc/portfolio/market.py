"""
Market-condition tilts applied to baseline weights.

Every tilt is a strictly positive multiplier, so tilts compose in any
order and never flip a sign. Output weights are NOT normalized.

Tilts:
    1. Volatility   continuous exp(k × (VIX − 20)) per class, CRYPTO decays fastest
    2. Sentiment    growth classes scale with sentiment around 50
    3. Credit       spreads above 200bps cut leveraged/speculative classes, lift ETF
    4. Crisis       VIX, sentiment AND credit all stressed at once → defensive shift
    5. Trend        strong UP lifts EQUITIES/OPTIONS, strong DOWN cuts them equally
    6. Rates        inflation above 3% and HIGH rates cut FUTURES/OPTIONS
"""

from __future__ import annotations

import logging
import math

from quantalloc.models.enums import (
    AssetClass,
    InterestRateLevel,
    MarketCondition,
    TrendDirection,
)
from quantalloc.models.types import MarketMetrics, Weights

logger = logging.getLogger(__name__)

A = AssetClass

# ─── Volatility Tilt ──────────────────────────────────────────────────────────

VIX_REFERENCE = 20.0

# Sensitivity per VIX point. Negative shrinks the class as VIX rises.
_VOLATILITY_SENSITIVITY: dict[AssetClass, float] = {
    A.CRYPTO: -0.030,
    A.OPTIONS: -0.015,
    A.FUTURES: -0.015,
    A.EQUITIES: -0.008,
    A.FOREX: 0.0,
    A.ETF: 0.010,
}

# ─── Sentiment / Credit / Trend / Rates ───────────────────────────────────────

SENTIMENT_CLASSES = (A.EQUITIES, A.OPTIONS, A.CRYPTO)
SENTIMENT_SWING = 0.30  # ±30% at sentiment 0 / 100

CREDIT_CALM_BPS = 200.0
CREDIT_STRESS_RANGE_BPS = 400.0
CREDIT_SENSITIVE_CLASSES = (A.FUTURES, A.OPTIONS, A.CRYPTO)
CREDIT_CUT = 0.30
CREDIT_ETF_LIFT = 0.20

TREND_CLASSES = (A.EQUITIES, A.OPTIONS)
TREND_SWING = 0.20

RATE_SENSITIVE_CLASSES = (A.FUTURES, A.OPTIONS)
INFLATION_COMFORT = 3.0
INFLATION_DECAY = 0.05
_RATE_FACTOR: dict[InterestRateLevel, float] = {
    InterestRateLevel.HIGH: 0.85,
    InterestRateLevel.MEDIUM: 1.0,
    InterestRateLevel.LOW: 1.05,
}

# ─── Crisis Regime ────────────────────────────────────────────────────────────

CRISIS_VIX = 30.0
CRISIS_SENTIMENT = 25.0
CRISIS_SPREAD_BPS = 400.0

_CRISIS_MULTIPLIERS: dict[AssetClass, float] = {
    A.ETF: 1.5,
    A.FOREX: 1.1,
    A.EQUITIES: 0.7,
    A.OPTIONS: 0.4,
    A.FUTURES: 0.4,
    A.CRYPTO: 0.2,
}

# ─── Classification ───────────────────────────────────────────────────────────

HIGH_VOLATILITY_VIX = 25.0
LOW_VOLATILITY_VIX = 12.0


def is_crisis(metrics: MarketMetrics) -> bool:
    """All three stress signals must fire together."""
    return (
        metrics.volatility_index >= CRISIS_VIX
        and metrics.sentiment_score <= CRISIS_SENTIMENT
        and metrics.credit_spread >= CRISIS_SPREAD_BPS
    )


def assess_market_condition(metrics: MarketMetrics) -> MarketCondition:
    """Coarse regime label for a market snapshot."""
    if is_crisis(metrics):
        return MarketCondition.CRISIS
    if metrics.volatility_index > HIGH_VOLATILITY_VIX:
        return MarketCondition.HIGH_VOLATILITY
    if metrics.volatility_index < LOW_VOLATILITY_VIX:
        return MarketCondition.LOW_VOLATILITY
    if (
        metrics.trend_direction == TrendDirection.UP
        and metrics.market_strength > 60
        and metrics.sentiment_score > 60
    ):
        return MarketCondition.BULL
    if (
        metrics.trend_direction == TrendDirection.DOWN
        and metrics.market_strength < 40
        and metrics.sentiment_score < 40
    ):
        return MarketCondition.BEAR
    return MarketCondition.SIDEWAYS


def _clip(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class MarketConditionAdjuster:
    """Applies condition-driven multiplicative tilts to baseline weights."""

    def multipliers(self, metrics: MarketMetrics) -> dict[AssetClass, float]:
        """Combined multiplier per class for this snapshot."""
        factors = {asset: 1.0 for asset in AssetClass}

        # 1. Volatility
        vix_gap = metrics.volatility_index - VIX_REFERENCE
        for asset, k in _VOLATILITY_SENSITIVITY.items():
            factors[asset] *= math.exp(k * vix_gap)

        # 2. Sentiment
        sentiment = _clip(metrics.sentiment_score, 0.0, 100.0)
        sentiment_factor = 1.0 + SENTIMENT_SWING * (sentiment - 50.0) / 50.0
        for asset in SENTIMENT_CLASSES:
            factors[asset] *= sentiment_factor

        # 3. Credit stress
        stress = _clip((metrics.credit_spread - CREDIT_CALM_BPS) / CREDIT_STRESS_RANGE_BPS)
        if stress > 0:
            for asset in CREDIT_SENSITIVE_CLASSES:
                factors[asset] *= 1.0 - CREDIT_CUT * stress
            factors[A.ETF] *= 1.0 + CREDIT_ETF_LIFT * stress

        # 4. Crisis
        if is_crisis(metrics):
            for asset, m in _CRISIS_MULTIPLIERS.items():
                factors[asset] *= m

        # 5. Trend
        intensity = _clip((metrics.market_strength - 50.0) / 50.0)
        if metrics.trend_direction == TrendDirection.UP:
            trend_factor = 1.0 + TREND_SWING * intensity
        elif metrics.trend_direction == TrendDirection.DOWN:
            trend_factor = 1.0 - TREND_SWING * intensity
        else:
            trend_factor = 1.0
        for asset in TREND_CLASSES:
            factors[asset] *= trend_factor

        # 6. Rates / inflation
        inflation_excess = max(metrics.inflation_rate - INFLATION_COMFORT, 0.0)
        rate_factor = math.exp(-INFLATION_DECAY * inflation_excess)
        rate_factor *= _RATE_FACTOR.get(metrics.interest_rate_level, 1.0)
        for asset in RATE_SENSITIVE_CLASSES:
            factors[asset] *= rate_factor

        return factors

    def adjust(self, weights: Weights, metrics: MarketMetrics) -> Weights:
        """Tilt weights for the given conditions; result is floored at zero."""
        factors = self.multipliers(metrics)
        tilted = {asset: max(0.0, weights.get(asset, 0.0) * factors[asset]) for asset in AssetClass}
        logger.debug(
            "Market tilts (VIX=%.1f, sentiment=%.0f, spread=%.0f): %s",
            metrics.volatility_index,
            metrics.sentiment_score,
            metrics.credit_spread,
            {a.value: round(f, 3) for a, f in factors.items()},
        )
        return tilted
