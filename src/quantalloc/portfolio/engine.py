"""
Orchestrates one allocation request end to end.

Pipeline:
    validate → resolve/infer profile → baseline weights → market tilts →
    constraints + objective → metrics, diversification, risk →
    per-class rationale → warnings → rebalancing plan (when holdings given)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from quantalloc.config import settings
from quantalloc.models.enums import AssetClass, MarketCondition, RiskProfile
from quantalloc.models.types import (
    AllocationInput,
    AllocationRecommendation,
    AssetAllocation,
    AssetClassCharacteristics,
    EngineConfig,
    RiskAnalysis,
    RiskProfileDefinition,
    Weights,
)
from quantalloc.portfolio.advisories import WarningsGenerator
from quantalloc.portfolio.correlation import CovarianceModel
from quantalloc.portfolio.diversification import DiversificationAnalyzer
from quantalloc.portfolio.market import MarketConditionAdjuster, assess_market_condition
from quantalloc.portfolio.metrics import PortfolioMetricsCalculator
from quantalloc.portfolio.objectives import METHODOLOGY
from quantalloc.portfolio.optimizer import ConstraintsAndObjectiveOptimizer
from quantalloc.portfolio.profiles import RISK_PROFILE_CATALOG, infer_risk_profile
from quantalloc.portfolio.rebalancer import RebalancingPlanner
from quantalloc.portfolio.universe import AssetUniverse
from quantalloc.risk.analyzer import RiskAnalyzer

logger = logging.getLogger(__name__)


class AllocationInputError(ValueError):
    """Request cannot produce an allocation."""


# ─── Rationale ─────────────────────────────────────────────────────────────────


def _size_label(weight: float) -> str:
    if weight > 0.30:
        return "Core holding"
    if weight > 0.15:
        return "Significant position"
    if weight > 0.05:
        return "Moderate allocation"
    return "Tactical allocation"


def allocation_rationale(
    asset: AssetClass,
    weight: float,
    char: AssetClassCharacteristics,
    profile: RiskProfile,
    excluded: bool = False,
    eligible: bool = True,
) -> str:
    """One-line human explanation for a class's weight."""
    if weight <= 0:
        if excluded:
            return "Excluded by preference"
        if not eligible:
            return "Not eligible: alternatives are disabled"
        return "No allocation at current market conditions"

    reasons = [_size_label(weight)]
    if char.sharpe_ratio > 1.5:
        reasons.append("strong risk-adjusted returns")
    if char.volatility < 15:
        reasons.append("low volatility")
    elif char.volatility > 25:
        reasons.append("high growth potential")
    if char.liquidity_score > 80:
        reasons.append("high liquidity")

    if profile == RiskProfile.CONSERVATIVE and asset == AssetClass.ETF:
        reasons.append("diversification and stability")
    elif profile == RiskProfile.AGGRESSIVE and asset == AssetClass.OPTIONS:
        reasons.append("leveraged growth opportunities")

    return f"{weight * 100:.1f}% allocation - {', '.join(reasons)}"


def allocation_confidence(char: AssetClassCharacteristics) -> float:
    liquidity = max(0.0, min(100.0, char.liquidity_score))
    return min(0.95, 0.7 + liquidity / 200.0)


# ─── Engine ────────────────────────────────────────────────────────────────────


class AssetAllocationEngine:
    """Facade producing allocation recommendations.

    Stateless across calls: every request builds its own universe, covariance
    model and analyzers.

    Example:
        engine = AssetAllocationEngine(EngineConfig(objective="RISK_PARITY"))
        recommendation = await engine.generate_allocation(data)
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.adjuster = MarketConditionAdjuster()
        self.warnings = WarningsGenerator()

    # ─── Validation ───────────────────────────────────────────────────────────

    def _validate(self, data: AllocationInput) -> RiskProfile | None:
        """Reject unusable requests; returns the explicit profile, if any."""
        if data.account_size is None or data.account_size <= 0:
            raise AllocationInputError(f"account_size must be positive, got {data.account_size}")
        if not data.asset_characteristics:
            raise AllocationInputError("asset_characteristics must not be empty")

        prefs = data.preferences
        if prefs is not None and prefs.rebalancing_frequency is not None and prefs.rebalancing_frequency <= 0:
            raise AllocationInputError(
                f"rebalancing_frequency must be positive, got {prefs.rebalancing_frequency}"
            )

        for key in data.current_positions or {}:
            try:
                AssetClass(key)
            except ValueError as e:
                raise AllocationInputError(f"Unknown asset class in current_positions: {key!r}") from e

        if data.risk_profile is None:
            return None
        try:
            return RiskProfile(data.risk_profile)
        except ValueError as e:
            raise AllocationInputError(f"Unknown risk profile: {data.risk_profile!r}") from e

    def _resolve_profile(
        self,
        data: AllocationInput,
        explicit: RiskProfile | None,
        condition: MarketCondition,
    ) -> RiskProfileDefinition:
        profile = explicit or infer_risk_profile(data, condition, self.config.time_horizon)
        return RISK_PROFILE_CATALOG[profile]

    @staticmethod
    def _referenced(data: AllocationInput, profile: RiskProfileDefinition) -> set[AssetClass]:
        referenced = {a for a, w in profile.base_allocations.items() if w > 0}
        if data.preferences is not None:
            referenced.update(data.preferences.preferred_asset_classes)
        referenced.update(c.asset_class for c in data.constraints)
        referenced.update(AssetClass(a) for a in (data.current_positions or {}))
        return referenced

    # ─── Assembly ─────────────────────────────────────────────────────────────

    def _build_allocations(
        self,
        universe: AssetUniverse,
        weights: Weights,
        risk: RiskAnalysis,
        account_size: float,
        profile: RiskProfile,
        excluded: list[AssetClass],
    ) -> list[AssetAllocation]:
        entries = []
        for asset in universe.assessed:
            char = universe.get(asset)
            weight = weights.get(asset, 0.0)
            entries.append(
                AssetAllocation(
                    asset_class=asset,
                    allocation=weight,
                    amount=weight * account_size,
                    risk_contribution=risk.risk_decomposition.get(asset, 0.0) / 100.0,
                    return_contribution=weight * char.expected_return,
                    rationale=allocation_rationale(
                        asset,
                        weight,
                        char,
                        profile,
                        excluded=asset in excluded,
                        eligible=universe.is_eligible(asset),
                    ),
                    confidence=allocation_confidence(char),
                )
            )
        entries.sort(key=lambda e: (-e.allocation, e.asset_class.rank))
        return entries

    async def generate_allocation(self, data: AllocationInput) -> AllocationRecommendation:
        """Produce a full recommendation for one request.

        Raises:
            AllocationInputError: If the request is unusable.
        """
        explicit = self._validate(data)

        universe = AssetUniverse(data.asset_characteristics, self.config.include_alternatives)
        if not universe.eligible:
            raise AllocationInputError("No asset class is eligible for allocation")

        condition = assess_market_condition(data.market_conditions)
        definition = self._resolve_profile(data, explicit, condition)
        universe.flag_missing(self._referenced(data, definition))

        model = CovarianceModel(universe)
        calculator = PortfolioMetricsCalculator(model, self.config.risk_free_rate)

        # Baseline → tilts → constraints + objective
        baseline = dict(definition.base_allocations)
        tilted = self.adjuster.adjust(baseline, data.market_conditions)
        optimizer = ConstraintsAndObjectiveOptimizer(universe, model, self.config)
        result = optimizer.optimize(tilted, definition, data.preferences, data.constraints)
        weights = result.weights

        metrics = calculator.calculate(weights)
        diversification = DiversificationAnalyzer(model).analyze(weights)
        risk = RiskAnalyzer(model, calculator).analyze(weights, metrics, definition)

        allocations = self._build_allocations(
            universe, weights, risk, data.account_size, definition.profile, result.excluded
        )
        warnings = self.warnings.generate(data, weights, risk, universe.notes + result.notes)

        rebalancing = None
        if data.current_positions is not None:
            planner = RebalancingPlanner(
                universe,
                self.config.rebalancing_threshold,
                self.config.transaction_cost_model,
            )
            positions = {AssetClass(a): float(v) for a, v in data.current_positions.items()}
            rebalancing = planner.plan(positions, weights, data.account_size)

        prefs = data.preferences
        frequency = (
            prefs.rebalancing_frequency
            if prefs is not None and prefs.rebalancing_frequency is not None
            else settings.default_rebalancing_days
        )
        methodology = f"{METHODOLOGY[self.config.objective]} tailored for {definition.profile.value} risk profile"
        if self.config.allow_leverage:
            methodology += " (leverage permitted; gross exposure held at 100%)"

        timestamp = datetime.now(timezone.utc)
        recommendation = AllocationRecommendation(
            id=f"alloc_{int(timestamp.timestamp() * 1000)}_{uuid.uuid4().hex[:7]}",
            timestamp=timestamp,
            next_rebalancing_date=timestamp + timedelta(days=frequency),
            methodology=methodology,
            risk_profile=definition.profile,
            market_condition=condition,
            allocations=allocations,
            portfolio_metrics=metrics,
            risk_analysis=risk,
            diversification=diversification,
            warnings=warnings,
            rebalancing=rebalancing,
        )

        logger.info(
            "Allocation %s: profile=%s condition=%s objective=%s return=%.2f%% vol=%.2f%% warnings=%d",
            recommendation.id,
            definition.profile.value,
            condition.value,
            self.config.objective.value,
            metrics.expected_return,
            metrics.expected_volatility,
            len(warnings),
        )
        return recommendation


async def generate_optimal_allocation(
    data: AllocationInput,
    config: EngineConfig | None = None,
) -> AllocationRecommendation:
    """One-shot helper: build an engine and run a single request."""
    return await AssetAllocationEngine(config).generate_allocation(data)
