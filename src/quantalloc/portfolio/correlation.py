"""
Correlation reconciliation and the variance-covariance model.

Correlations arrive per class and may be asymmetric or incomplete.
Missing pairs default to 0; one-sided pairs use the side that is present;
disagreeing pairs are averaged.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from quantalloc.models.enums import AssetClass
from quantalloc.models.types import Weights
from quantalloc.portfolio.universe import AssetUniverse

logger = logging.getLogger(__name__)

CLASSES: tuple[AssetClass, ...] = AssetClass.ordered()


def reconcile_correlation(universe: AssetUniverse, a: AssetClass, b: AssetClass) -> float:
    """Pairwise correlation between two assessed classes, in [-1, 1]."""
    if a == b:
        return 1.0
    char_a = universe.get(a)
    char_b = universe.get(b)
    if char_a is None or char_b is None:
        return 0.0

    ab = char_a.correlations.get(b)
    ba = char_b.correlations.get(a)
    if ab is None and ba is None:
        return 0.0
    if ab is None:
        value = ba
    elif ba is None:
        value = ab
    else:
        if not math.isclose(ab, ba, abs_tol=1e-12):
            logger.debug("Asymmetric correlation %s/%s: %.4f vs %.4f, averaging", a.value, b.value, ab, ba)
        value = (ab + ba) / 2.0
    return max(-1.0, min(1.0, float(value)))


class CovarianceModel:
    """Variance-covariance structure over the full six-class universe.

    Classes without characteristics have zero volatility and zero rows, so
    any weight they carry contributes nothing.

    Example:
        model = CovarianceModel(universe)
        model.variance(weights)      # wᵀΣw in %²
        model.volatility(weights)    # sqrt, clamped at zero
    """

    def __init__(self, universe: AssetUniverse):
        self.universe = universe
        n = len(CLASSES)
        self.volatilities = np.zeros(n)
        self.expected_returns = np.zeros(n)
        for i, asset in enumerate(CLASSES):
            char = universe.get(asset)
            if char is not None:
                self.volatilities[i] = max(char.volatility, 0.0)
                self.expected_returns[i] = char.expected_return

        self.correlation = np.eye(n)
        for i, a in enumerate(CLASSES):
            for j in range(i + 1, n):
                rho = reconcile_correlation(universe, a, CLASSES[j])
                self.correlation[i, j] = rho
                self.correlation[j, i] = rho

        self.matrix = np.outer(self.volatilities, self.volatilities) * self.correlation

    @staticmethod
    def vector(weights: Weights) -> np.ndarray:
        return np.array([weights.get(asset, 0.0) for asset in CLASSES], dtype=float)

    @staticmethod
    def to_weights(vector: np.ndarray) -> Weights:
        return {asset: float(vector[i]) for i, asset in enumerate(CLASSES)}

    @staticmethod
    def index(asset: AssetClass) -> int:
        return CLASSES.index(asset)

    def variance(self, weights: Weights) -> float:
        w = self.vector(weights)
        return float(w @ self.matrix @ w)

    def volatility(self, weights: Weights) -> float:
        # Clamp before sqrt: a non-PSD input matrix can produce tiny negatives
        return math.sqrt(max(self.variance(weights), 0.0))

    def marginal_contributions(self, weights: Weights) -> Weights:
        """w_i · (Σw)_i for each class; these sum to the portfolio variance."""
        w = self.vector(weights)
        return self.to_weights(w * (self.matrix @ w))

    def covariance_with(self, weights: Weights, asset: AssetClass) -> float:
        """Covariance between the portfolio and a single class."""
        w = self.vector(weights)
        return float((self.matrix @ w)[self.index(asset)])

    def weighted_volatility(self, weights: Weights) -> float:
        return float(self.vector(weights) @ self.volatilities)

    def correlation_of(self, a: AssetClass, b: AssetClass) -> float:
        return float(self.correlation[self.index(a), self.index(b)])

    def correlation_matrix(self) -> dict[AssetClass, dict[AssetClass, float]]:
        assessed = self.universe.assessed
        return {a: {b: self.correlation_of(a, b) for b in assessed} for a in assessed}
