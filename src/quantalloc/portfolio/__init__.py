"""
Portfolio Multi-Asset Allocation Engine
Handles risk profiles, market tilts, constrained optimization and rebalancing.
The request facade lives in quantalloc.portfolio.engine.
"""

from .profiles import RISK_PROFILE_CATALOG, get_default_risk_profile, infer_risk_profile
from .universe import AssetUniverse
from .correlation import CovarianceModel
from .market import MarketConditionAdjuster, assess_market_condition
from .optimizer import ConstraintsAndObjectiveOptimizer
from .rebalancer import RebalancingPlanner

__all__ = [
    "RISK_PROFILE_CATALOG",
    "get_default_risk_profile",
    "infer_risk_profile",
    "AssetUniverse",
    "CovarianceModel",
    "MarketConditionAdjuster",
    "assess_market_condition",
    "ConstraintsAndObjectiveOptimizer",
    "RebalancingPlanner",
]
