"""
Diversification analytics: concentration, effective breadth and the
diversification ratio.
"""

from __future__ import annotations

from quantalloc.models.types import DiversificationMetrics, Weights
from quantalloc.portfolio.correlation import CovarianceModel

HELD_THRESHOLD = 0.01  # A class counts as held above 1%


class DiversificationAnalyzer:
    """Measures how spread out a set of weights is."""

    def __init__(self, model: CovarianceModel) -> None:
        self.model = model

    @staticmethod
    def herfindahl_index(weights: Weights) -> float:
        return sum(w * w for w in weights.values())

    def diversification_ratio(self, weights: Weights) -> float:
        """Weighted-average volatility over portfolio volatility, floored at 1."""
        volatility = self.model.volatility(weights)
        if volatility <= 0:
            return 1.0
        return max(1.0, self.model.weighted_volatility(weights) / volatility)

    def average_correlation(self, weights: Weights) -> float:
        """Weight-weighted mean of off-diagonal correlations."""
        assets = [a for a, w in weights.items() if w > 0 and a in self.model.universe]
        numerator = 0.0
        denominator = 0.0
        for a in assets:
            for b in assets:
                if a == b:
                    continue
                pair_weight = weights[a] * weights[b]
                numerator += pair_weight * self.model.correlation_of(a, b)
                denominator += pair_weight
        return numerator / denominator if denominator > 0 else 0.0

    def max_pairwise_correlation(self, weights: Weights) -> float:
        held = [a for a, w in weights.items() if w > HELD_THRESHOLD and a in self.model.universe]
        pairs = [
            self.model.correlation_of(a, b)
            for i, a in enumerate(held)
            for b in held[i + 1:]
        ]
        return max(pairs) if pairs else 0.0

    def asset_class_diversity(self, weights: Weights) -> float:
        """Share of eligible classes holding more than 1%."""
        eligible = self.model.universe.eligible
        if not eligible:
            return 0.0
        held = sum(1 for asset in eligible if weights.get(asset, 0.0) > HELD_THRESHOLD)
        return held / len(eligible)

    def analyze(self, weights: Weights) -> DiversificationMetrics:
        hhi = self.herfindahl_index(weights)
        return DiversificationMetrics(
            herfindahl_index=hhi,
            effective_number_of_assets=1.0 / hhi if hhi > 0 else 0.0,
            diversification_ratio=self.diversification_ratio(weights),
            average_correlation=self.average_correlation(weights),
            asset_class_diversity=self.asset_class_diversity(weights),
            max_pairwise_correlation=self.max_pairwise_correlation(weights),
            correlation_matrix=self.model.correlation_matrix(),
        )
