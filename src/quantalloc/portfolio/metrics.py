"""
Portfolio-level return and risk metrics.

All inputs are percent-denominated (returns, volatilities, drawdowns); the
risk-free rate is a fraction and is scaled to percent here.
"""

from __future__ import annotations

import math

from quantalloc.models.enums import AssetClass
from quantalloc.models.types import PortfolioMetrics, Weights
from quantalloc.portfolio.correlation import CovarianceModel

Z_95 = 1.645         # One-tailed 95% normal quantile
CVAR_Z_95 = 2.063    # Expected shortfall multiplier at 95%
MARKET_RISK_PREMIUM = 6.0  # %, used for alpha against the EQUITIES proxy
DRAWDOWN_TO_DOWNSIDE = 2.0  # A max drawdown spans roughly two downside deviations

MARKET_PROXY = AssetClass.EQUITIES


class PortfolioMetricsCalculator:
    """Computes expected return, volatility and risk-adjusted ratios."""

    def __init__(self, model: CovarianceModel, risk_free_rate: float = 0.04) -> None:
        self.model = model
        self.risk_free_pct = risk_free_rate * 100.0

    def _weighted(self, weights: Weights, attribute: str) -> float:
        total = 0.0
        for asset, w in weights.items():
            char = self.model.universe.get(asset)
            if char is not None:
                total += w * getattr(char, attribute)
        return total

    def expected_return(self, weights: Weights) -> float:
        return self._weighted(weights, "expected_return")

    def weighted_drawdown(self, weights: Weights) -> float:
        return self._weighted(weights, "max_drawdown")

    def weighted_liquidity(self, weights: Weights) -> float:
        return self._weighted(weights, "liquidity_score")

    def portfolio_drawdown(self, weights: Weights, volatility: float) -> float:
        """Component drawdowns tempered by the diversification benefit.

        Never exceeds the weighted average of component drawdowns.
        """
        weighted_mdd = self.weighted_drawdown(weights)
        weighted_vol = self.model.weighted_volatility(weights)
        if weighted_vol <= 0:
            return weighted_mdd
        return min(weighted_mdd, weighted_mdd * volatility / weighted_vol)

    def beta(self, weights: Weights) -> float:
        """Beta against EQUITIES; 1.0 when the proxy is not assessed."""
        if MARKET_PROXY not in self.model.universe:
            return 1.0
        proxy_var = self.model.matrix[self.model.index(MARKET_PROXY)][self.model.index(MARKET_PROXY)]
        if proxy_var <= 0:
            return 1.0
        return self.model.covariance_with(weights, MARKET_PROXY) / proxy_var

    def tracking_error(self, weights: Weights) -> float:
        if MARKET_PROXY not in self.model.universe:
            return 0.0
        idx = self.model.index(MARKET_PROXY)
        active_var = (
            self.model.variance(weights)
            - 2.0 * self.model.covariance_with(weights, MARKET_PROXY)
            + self.model.matrix[idx][idx]
        )
        return math.sqrt(max(active_var, 0.0))

    def calculate(self, weights: Weights) -> PortfolioMetrics:
        expected_return = self.expected_return(weights)
        volatility = self.model.volatility(weights)
        excess = expected_return - self.risk_free_pct

        sharpe = excess / volatility if volatility > 0 else 0.0

        downside = self.weighted_drawdown(weights) / DRAWDOWN_TO_DOWNSIDE
        sortino = excess / downside if downside > 0 else 0.0

        beta = self.beta(weights)
        alpha = expected_return - (self.risk_free_pct + beta * MARKET_RISK_PREMIUM)
        tracking = self.tracking_error(weights)
        information_ratio = alpha / tracking if tracking > 1e-9 else 0.0

        return PortfolioMetrics(
            expected_return=expected_return,
            expected_volatility=volatility,
            sharpe_ratio=sharpe,
            sortino_ratio=sortino,
            max_drawdown=self.portfolio_drawdown(weights, volatility),
            value_at_risk_95=expected_return - Z_95 * volatility,
            conditional_var_95=expected_return - CVAR_Z_95 * volatility,
            beta=beta,
            alpha=alpha,
            information_ratio=information_ratio,
        )
