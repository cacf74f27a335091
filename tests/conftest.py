"""
Shared fixtures: a six-class universe and a neutral market snapshot.
"""

import pytest

from quantalloc.models.enums import AssetClass
from quantalloc.models.types import AllocationInput, AssetClassCharacteristics, MarketMetrics

A = AssetClass


def _characteristics():
    return [
        AssetClassCharacteristics(
            asset_class=A.EQUITIES, volatility=18, expected_return=10, sharpe_ratio=0.55,
            max_drawdown=35, liquidity_score=95, transaction_cost=0.001, minimum_investment=1,
            correlations={A.OPTIONS: 0.65, A.FUTURES: 0.5, A.ETF: 0.85, A.FOREX: 0.2, A.CRYPTO: 0.3},
        ),
        AssetClassCharacteristics(
            asset_class=A.OPTIONS, volatility=30, expected_return=15, sharpe_ratio=0.5,
            max_drawdown=50, liquidity_score=70, transaction_cost=0.005, minimum_investment=100,
            correlations={A.EQUITIES: 0.65, A.FUTURES: 0.4, A.ETF: 0.55, A.FOREX: 0.1, A.CRYPTO: 0.2},
        ),
        AssetClassCharacteristics(
            asset_class=A.FUTURES, volatility=25, expected_return=12, sharpe_ratio=0.48,
            max_drawdown=40, liquidity_score=80, transaction_cost=0.002, minimum_investment=1000,
            correlations={A.EQUITIES: 0.5, A.OPTIONS: 0.4, A.ETF: 0.6, A.FOREX: 0.3, A.CRYPTO: 0.15},
        ),
        AssetClassCharacteristics(
            asset_class=A.ETF, volatility=12, expected_return=7, sharpe_ratio=0.58,
            max_drawdown=20, liquidity_score=98, transaction_cost=0.001, minimum_investment=1,
            correlations={A.EQUITIES: 0.85, A.OPTIONS: 0.55, A.FUTURES: 0.6, A.FOREX: 0.15, A.CRYPTO: 0.25},
        ),
        AssetClassCharacteristics(
            asset_class=A.FOREX, volatility=10, expected_return=4, sharpe_ratio=0.4,
            max_drawdown=15, liquidity_score=99, transaction_cost=0.0005, minimum_investment=100,
            correlations={A.EQUITIES: 0.2, A.OPTIONS: 0.1, A.FUTURES: 0.3, A.ETF: 0.15, A.CRYPTO: 0.1},
        ),
        AssetClassCharacteristics(
            asset_class=A.CRYPTO, volatility=60, expected_return=25, sharpe_ratio=0.42,
            max_drawdown=80, liquidity_score=60, transaction_cost=0.01, minimum_investment=10,
            correlations={A.EQUITIES: 0.3, A.OPTIONS: 0.2, A.FUTURES: 0.15, A.ETF: 0.25, A.FOREX: 0.1},
        ),
    ]


@pytest.fixture
def characteristics():
    return _characteristics()


@pytest.fixture
def neutral_market():
    return MarketMetrics()


@pytest.fixture
def make_input():
    """Factory for requests on the standard universe; keyword overrides pass through."""

    def _make(**overrides):
        fields = {
            "market_conditions": MarketMetrics(),
            "account_size": 100_000.0,
            "asset_characteristics": _characteristics(),
        }
        fields.update(overrides)
        return AllocationInput(**fields)

    return _make
