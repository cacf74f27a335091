"""Core data types (dataclasses) used throughout the allocation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from quantalloc.config import settings
from quantalloc.models.enums import (
    AssetClass,
    ConstraintType,
    EconomicPhase,
    InterestRateLevel,
    MarketCondition,
    OptimizationObjective,
    RebalanceAction,
    RiskLevel,
    RiskProfile,
    TransactionCostModel,
    TrendDirection,
)

# Every weight mapping carries all six asset classes.
Weights = dict[AssetClass, float]


def zero_weights() -> Weights:
    return {asset: 0.0 for asset in AssetClass}


# ─── Inputs ────────────────────────────────────────────────────────────────────


@dataclass
class AssetClassCharacteristics:
    """Statistical profile of one asset class (percent units unless noted)."""

    asset_class: AssetClass
    volatility: float         # Annualized %, e.g. 18.0
    expected_return: float    # Annualized %
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0  # %
    liquidity_score: float = 50.0  # 0-100
    correlations: dict[AssetClass, float] = field(default_factory=dict)
    market_size: float = 0.0
    transaction_cost: float = 0.001  # Fraction of notional
    minimum_investment: float = 0.0

    def __post_init__(self) -> None:
        self.asset_class = AssetClass(self.asset_class)
        self.correlations = {AssetClass(k): float(v) for k, v in self.correlations.items()}


@dataclass
class MarketMetrics:
    """Market snapshot supplied by the market-data collaborator."""

    volatility_index: float = 18.0
    trend_direction: TrendDirection = TrendDirection.NEUTRAL
    market_strength: float = 50.0  # 0-100
    sentiment_score: float = 50.0  # 0-100
    interest_rate_level: InterestRateLevel = InterestRateLevel.MEDIUM
    inflation_rate: float = 2.5  # %
    credit_spread: float = 150.0  # bps
    economic_phase: EconomicPhase = EconomicPhase.EXPANSION

    def __post_init__(self) -> None:
        self.trend_direction = TrendDirection(self.trend_direction)
        self.interest_rate_level = InterestRateLevel(self.interest_rate_level)
        self.economic_phase = EconomicPhase(self.economic_phase)


@dataclass
class AllocationPreferences:
    """Investor preferences. Fractions for allocation bounds, % for return/drawdown."""

    excluded_asset_classes: list[AssetClass] = field(default_factory=list)
    preferred_asset_classes: list[AssetClass] = field(default_factory=list)
    min_allocation_per_class: float | None = None
    max_allocation_per_class: float | None = None
    max_drawdown: float | None = None
    target_return: float | None = None
    rebalancing_frequency: int | None = None  # Days

    def __post_init__(self) -> None:
        self.excluded_asset_classes = [AssetClass(a) for a in self.excluded_asset_classes]
        self.preferred_asset_classes = [AssetClass(a) for a in self.preferred_asset_classes]


@dataclass
class AllocationConstraint:
    """Explicit per-class bound. Only hard minimums raise a floor."""

    type: ConstraintType
    asset_class: AssetClass
    value: float
    hard: bool = True

    def __post_init__(self) -> None:
        self.type = ConstraintType(self.type)
        self.asset_class = AssetClass(self.asset_class)


@dataclass
class AllocationInput:
    """Everything the engine needs for one recommendation."""

    market_conditions: MarketMetrics
    account_size: float
    asset_characteristics: list[AssetClassCharacteristics]
    risk_profile: RiskProfile | str | None = None
    current_positions: dict[AssetClass, float] | None = None  # Dollars per class
    preferences: AllocationPreferences | None = None
    constraints: list[AllocationConstraint] = field(default_factory=list)


@dataclass
class EngineConfig:
    """Engine settings. Unset fields resolve from ``quantalloc.config.settings``."""

    objective: OptimizationObjective = field(
        default_factory=lambda: OptimizationObjective(settings.default_objective)
    )
    risk_free_rate: float = field(default_factory=lambda: settings.risk_free_rate)
    rebalancing_threshold: float = field(default_factory=lambda: settings.rebalancing_threshold)
    transaction_cost_model: TransactionCostModel = field(
        default_factory=lambda: TransactionCostModel(settings.transaction_cost_model)
    )
    time_horizon: float = field(default_factory=lambda: settings.time_horizon_years)
    allow_leverage: bool = field(default_factory=lambda: settings.allow_leverage)
    include_alternatives: bool = field(default_factory=lambda: settings.include_alternatives)
    objective_blend: float = field(default_factory=lambda: settings.objective_blend)

    def __post_init__(self) -> None:
        self.objective = OptimizationObjective(self.objective)
        self.transaction_cost_model = TransactionCostModel(self.transaction_cost_model)
        if not 0.0 <= self.objective_blend <= 1.0:
            raise ValueError("objective_blend must be between 0 and 1")
        if self.rebalancing_threshold < 0:
            raise ValueError("rebalancing_threshold must be non-negative")


# ─── Risk Profiles ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RiskProfileDefinition:
    """Canonical tier: baseline weights and target metrics."""

    profile: RiskProfile
    description: str
    base_allocations: dict[AssetClass, float]
    max_volatility: float  # %
    max_drawdown: float    # %
    target_return: float   # %
    risk_score: float      # 0-100

    @property
    def total_allocation(self) -> float:
        return sum(self.base_allocations.values())


# ─── Outputs ───────────────────────────────────────────────────────────────────


@dataclass
class PortfolioMetrics:
    expected_return: float
    expected_volatility: float
    sharpe_ratio: float
    sortino_ratio: float
    max_drawdown: float
    value_at_risk_95: float
    conditional_var_95: float = 0.0
    beta: float = 1.0
    alpha: float = 0.0
    information_ratio: float = 0.0


@dataclass
class DiversificationMetrics:
    herfindahl_index: float
    effective_number_of_assets: float
    diversification_ratio: float
    average_correlation: float
    asset_class_diversity: float  # 0-1 share of eligible classes held
    max_pairwise_correlation: float = 0.0
    correlation_matrix: dict[AssetClass, dict[AssetClass, float]] = field(default_factory=dict)


@dataclass
class RiskAnalysis:
    risk_score: float  # 0-100
    risk_level: RiskLevel
    risk_decomposition: dict[AssetClass, float]  # % of variance, sums to 100
    systematic_risk: float = 0.0
    idiosyncratic_risk: float = 0.0
    tail_risk: float = 0.0
    liquidity_risk: float = 0.0
    concentration_risk: float = 0.0
    currency_risk: float = 0.0


@dataclass
class AssetAllocation:
    asset_class: AssetClass
    allocation: float           # Fraction of account
    amount: float               # Dollars
    risk_contribution: float    # Fraction of portfolio variance
    return_contribution: float  # % of portfolio return
    rationale: str
    confidence: float           # (0, 1]


@dataclass
class RebalancingAction:
    asset_class: AssetClass
    current_allocation: float
    target_allocation: float
    drift: float
    action: RebalanceAction
    trade_amount: float
    estimated_cost: float
    priority: int  # 1 = most urgent
    reason: str


@dataclass
class AllocationRecommendation:
    id: str
    timestamp: datetime
    next_rebalancing_date: datetime
    methodology: str
    risk_profile: RiskProfile
    market_condition: MarketCondition
    allocations: list[AssetAllocation]
    portfolio_metrics: PortfolioMetrics
    risk_analysis: RiskAnalysis
    diversification: DiversificationMetrics
    warnings: list[str] = field(default_factory=list)
    rebalancing: list[RebalancingAction] | None = None

    def allocation_for(self, asset_class: AssetClass) -> AssetAllocation | None:
        for entry in self.allocations:
            if entry.asset_class == asset_class:
                return entry
        return None

    @property
    def weights(self) -> Weights:
        out = zero_weights()
        for entry in self.allocations:
            out[entry.asset_class] = entry.allocation
        return out
