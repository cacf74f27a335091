"""
Risk profile catalog and profile inference.

The catalog is a static, read-only table of the five canonical tiers.
Lookups return ``None`` for unknown keys instead of raising.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from quantalloc.models.enums import AssetClass, MarketCondition, RiskProfile
from quantalloc.models.types import AllocationInput, RiskProfileDefinition

logger = logging.getLogger(__name__)


def _allocations(**weights: float) -> Mapping[AssetClass, float]:
    return MappingProxyType({asset: weights.get(asset.value, 0.0) for asset in AssetClass})


# Base allocations may sum to less than 1.0; the remainder is resolved by
# normalization downstream.
_DEFINITIONS: tuple[RiskProfileDefinition, ...] = (
    RiskProfileDefinition(
        profile=RiskProfile.CONSERVATIVE,
        description="Capital preservation focused with minimal volatility",
        base_allocations=_allocations(EQUITIES=0.20, OPTIONS=0.05, ETF=0.50, FOREX=0.10),
        max_volatility=8.0,
        max_drawdown=10.0,
        target_return=5.0,
        risk_score=20.0,
    ),
    RiskProfileDefinition(
        profile=RiskProfile.MODERATE_CONSERVATIVE,
        description="Income focused with moderate growth potential",
        base_allocations=_allocations(
            EQUITIES=0.30, OPTIONS=0.10, FUTURES=0.05, ETF=0.40, FOREX=0.10, CRYPTO=0.05
        ),
        max_volatility=12.0,
        max_drawdown=15.0,
        target_return=7.0,
        risk_score=35.0,
    ),
    RiskProfileDefinition(
        profile=RiskProfile.MODERATE,
        description="Balanced growth and income with managed volatility",
        base_allocations=_allocations(
            EQUITIES=0.40, OPTIONS=0.15, FUTURES=0.10, ETF=0.25, FOREX=0.05, CRYPTO=0.05
        ),
        max_volatility=15.0,
        max_drawdown=20.0,
        target_return=10.0,
        risk_score=50.0,
    ),
    RiskProfileDefinition(
        profile=RiskProfile.MODERATE_AGGRESSIVE,
        description="Growth focused with higher volatility tolerance",
        base_allocations=_allocations(
            EQUITIES=0.45, OPTIONS=0.20, FUTURES=0.10, ETF=0.10, FOREX=0.10, CRYPTO=0.05
        ),
        max_volatility=20.0,
        max_drawdown=25.0,
        target_return=13.0,
        risk_score=70.0,
    ),
    RiskProfileDefinition(
        profile=RiskProfile.AGGRESSIVE,
        description="Maximum growth with high volatility acceptance",
        base_allocations=_allocations(
            EQUITIES=0.50, OPTIONS=0.20, FUTURES=0.15, ETF=0.05, FOREX=0.05, CRYPTO=0.05
        ),
        max_volatility=30.0,
        max_drawdown=35.0,
        target_return=18.0,
        risk_score=85.0,
    ),
)

RISK_PROFILE_CATALOG: Mapping[RiskProfile, RiskProfileDefinition] = MappingProxyType(
    {definition.profile: definition for definition in _DEFINITIONS}
)


def get_default_risk_profile(profile: RiskProfile | str) -> RiskProfileDefinition | None:
    """Look up a canonical tier. Returns None for anything that is not one."""
    try:
        key = RiskProfile(profile)
    except ValueError:
        return None
    return RISK_PROFILE_CATALOG.get(key)


# ─── Inference ─────────────────────────────────────────────────────────────────

# Score adjustments applied to the MODERATE midpoint (50).
_CONDITION_ADJUSTMENT: dict[MarketCondition, int] = {
    MarketCondition.CRISIS: -15,
    MarketCondition.HIGH_VOLATILITY: -5,
    MarketCondition.BEAR: -5,
    MarketCondition.SIDEWAYS: 0,
    MarketCondition.BULL: 5,
    MarketCondition.LOW_VOLATILITY: 5,
}

# Upper score bounds, exclusive.
_SCORE_BUCKETS: tuple[tuple[int, RiskProfile], ...] = (
    (30, RiskProfile.CONSERVATIVE),
    (45, RiskProfile.MODERATE_CONSERVATIVE),
    (60, RiskProfile.MODERATE),
    (75, RiskProfile.MODERATE_AGGRESSIVE),
)


def infer_risk_profile(
    data: AllocationInput,
    condition: MarketCondition,
    time_horizon: float | None = None,
) -> RiskProfile:
    """Derive a tier from the market regime and any explicit preferences.

    Starts at the MODERATE midpoint and nudges the score; with no signal
    the result is MODERATE. Never raises.
    """
    score = 50
    score += _CONDITION_ADJUSTMENT.get(condition, 0)

    prefs = data.preferences
    if prefs is not None:
        if prefs.max_drawdown is not None:
            if prefs.max_drawdown < 15:
                score -= 15
            elif prefs.max_drawdown > 25:
                score += 15
        if prefs.target_return is not None:
            if prefs.target_return < 6:
                score -= 10
            elif prefs.target_return > 12:
                score += 10
        # Many exclusions usually signal a cautious investor
        score -= 5 * len(set(prefs.excluded_asset_classes))

    if data.account_size < 10_000:
        score -= 10
    elif data.account_size > 100_000:
        score += 10

    if time_horizon is not None:
        if time_horizon <= 2:
            score -= 5
        elif time_horizon >= 10:
            score += 5

    for bound, profile in _SCORE_BUCKETS:
        if score < bound:
            break
    else:
        profile = RiskProfile.AGGRESSIVE

    logger.debug("Inferred risk profile %s (score=%d, condition=%s)", profile.value, score, condition.value)
    return profile
