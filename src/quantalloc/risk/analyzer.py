"""
Portfolio risk scoring and variance decomposition.

Risk score is volatility measured against the resolved profile's
volatility budget:

    score = clip(50 × vol / max_volatility, 0, 100)

so a portfolio exactly at its budget scores 50 (MEDIUM), and one at twice
its budget scores 100 (EXTREME).
"""

from __future__ import annotations

import logging
import math

from quantalloc.models.enums import AssetClass, RiskLevel
from quantalloc.models.types import PortfolioMetrics, RiskAnalysis, RiskProfileDefinition, Weights
from quantalloc.portfolio.correlation import CovarianceModel
from quantalloc.portfolio.metrics import CVAR_Z_95, MARKET_PROXY, PortfolioMetricsCalculator

logger = logging.getLogger(__name__)

SCORE_AT_BUDGET = 50.0

# Upper score bounds, exclusive.
_LEVEL_CUTS: tuple[tuple[float, RiskLevel], ...] = (
    (40.0, RiskLevel.LOW),
    (60.0, RiskLevel.MEDIUM),
    (80.0, RiskLevel.HIGH),
)


def risk_level_for(score: float) -> RiskLevel:
    for bound, level in _LEVEL_CUTS:
        if score < bound:
            return level
    return RiskLevel.EXTREME


class RiskAnalyzer:
    """Scores portfolio risk and attributes variance to each class."""

    def __init__(self, model: CovarianceModel, calculator: PortfolioMetricsCalculator) -> None:
        self.model = model
        self.calculator = calculator

    @staticmethod
    def risk_score(volatility: float, profile: RiskProfileDefinition) -> float:
        if profile.max_volatility <= 0:
            return 100.0
        score = SCORE_AT_BUDGET * volatility / profile.max_volatility
        return max(0.0, min(100.0, score))

    def decompose(self, weights: Weights) -> dict[AssetClass, float]:
        """Percentage of total variance contributed by each class (sums to 100)."""
        contributions = self.model.marginal_contributions(weights)
        total = sum(contributions.values())
        if total > 1e-12:
            return {asset: 100.0 * c / total for asset, c in contributions.items()}

        # Zero-variance portfolio: attribute by weight
        weight_total = sum(weights.values())
        if weight_total <= 0:
            return {asset: 0.0 for asset in AssetClass}
        return {asset: 100.0 * w / weight_total for asset, w in weights.items()}

    def analyze(
        self,
        weights: Weights,
        metrics: PortfolioMetrics,
        profile: RiskProfileDefinition,
    ) -> RiskAnalysis:
        volatility = metrics.expected_volatility
        score = self.risk_score(volatility, profile)

        # Systematic share is the part explained by the EQUITIES proxy
        if MARKET_PROXY in self.model.universe:
            proxy_vol = self.model.volatilities[self.model.index(MARKET_PROXY)]
            systematic = abs(metrics.beta) * proxy_vol
        else:
            systematic = volatility
        systematic = min(systematic, volatility)
        idiosyncratic = math.sqrt(max(volatility ** 2 - systematic ** 2, 0.0))

        held_weight = sum(weights.values())
        liquidity = held_weight * 100.0 - self.calculator.weighted_liquidity(weights)
        hhi = sum(w * w for w in weights.values())

        analysis = RiskAnalysis(
            risk_score=score,
            risk_level=risk_level_for(score),
            risk_decomposition=self.decompose(weights),
            systematic_risk=systematic,
            idiosyncratic_risk=idiosyncratic,
            tail_risk=CVAR_Z_95 * volatility - metrics.expected_return,
            liquidity_risk=max(liquidity, 0.0),
            concentration_risk=hhi * 100.0,
            currency_risk=(weights.get(AssetClass.FOREX, 0.0) + weights.get(AssetClass.CRYPTO, 0.0)) * 50.0,
        )
        logger.debug("Risk score %.1f (%s) for vol %.2f%%", score, analysis.risk_level.value, volatility)
        return analysis
