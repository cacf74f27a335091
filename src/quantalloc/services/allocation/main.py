"""
Allocation Service: HTTP wrapper around the asset allocation engine.

Handles:
- Risk profile catalog lookups
- Allocation recommendations (with optional rebalancing plans)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from quantalloc.config import settings
from quantalloc.models.enums import (
    AssetClass,
    ConstraintType,
    EconomicPhase,
    InterestRateLevel,
    OptimizationObjective,
    TransactionCostModel,
    TrendDirection,
)
from quantalloc.models.types import (
    AllocationConstraint,
    AllocationInput,
    AllocationPreferences,
    AssetClassCharacteristics,
    EngineConfig,
    MarketMetrics,
)
from quantalloc.portfolio.engine import AssetAllocationEngine
from quantalloc.portfolio.profiles import get_default_risk_profile

logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Allocation Service started (env=%s, objective=%s)", settings.env.value, settings.default_objective)
    yield
    logger.info("Allocation Service shutting down")


app = FastAPI(title="Quantalloc Allocation Service", version="0.1.0", lifespan=lifespan)


# ─── Request Models ────────────────────────────────────────────────────────────


class MarketMetricsModel(BaseModel):
    volatility_index: float = 18.0
    trend_direction: TrendDirection = TrendDirection.NEUTRAL
    market_strength: float = 50.0
    sentiment_score: float = 50.0
    interest_rate_level: InterestRateLevel = InterestRateLevel.MEDIUM
    inflation_rate: float = 2.5
    credit_spread: float = 150.0
    economic_phase: EconomicPhase = EconomicPhase.EXPANSION


class CharacteristicsModel(BaseModel):
    asset_class: AssetClass
    volatility: float
    expected_return: float
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    liquidity_score: float = 50.0
    correlations: dict[AssetClass, float] = {}
    market_size: float = 0.0
    transaction_cost: float = 0.001
    minimum_investment: float = 0.0


class PreferencesModel(BaseModel):
    excluded_asset_classes: list[AssetClass] = []
    preferred_asset_classes: list[AssetClass] = []
    min_allocation_per_class: float | None = None
    max_allocation_per_class: float | None = None
    max_drawdown: float | None = None
    target_return: float | None = None
    rebalancing_frequency: int | None = None


class ConstraintModel(BaseModel):
    type: ConstraintType
    asset_class: AssetClass
    value: float
    hard: bool = True


class EngineConfigModel(BaseModel):
    objective: OptimizationObjective | None = None
    risk_free_rate: float | None = None
    rebalancing_threshold: float | None = None
    transaction_cost_model: TransactionCostModel | None = None
    time_horizon: float | None = None
    allow_leverage: bool | None = None
    include_alternatives: bool | None = None
    objective_blend: float | None = None


class AllocationRequest(BaseModel):
    market_conditions: MarketMetricsModel = Field(default_factory=MarketMetricsModel)
    account_size: float
    asset_characteristics: list[CharacteristicsModel]
    risk_profile: str | None = None
    current_positions: dict[AssetClass, float] | None = None
    preferences: PreferencesModel | None = None
    constraints: list[ConstraintModel] = []
    config: EngineConfigModel | None = None

    def to_input(self) -> AllocationInput:
        return AllocationInput(
            market_conditions=MarketMetrics(**self.market_conditions.model_dump()),
            account_size=self.account_size,
            asset_characteristics=[
                AssetClassCharacteristics(**c.model_dump()) for c in self.asset_characteristics
            ],
            risk_profile=self.risk_profile,
            current_positions=self.current_positions,
            preferences=AllocationPreferences(**self.preferences.model_dump()) if self.preferences else None,
            constraints=[AllocationConstraint(**c.model_dump()) for c in self.constraints],
        )

    def to_config(self) -> EngineConfig:
        if self.config is None:
            return EngineConfig()
        return EngineConfig(**self.config.model_dump(exclude_none=True))


# ─── Endpoints ─────────────────────────────────────────────────────────────────


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "allocation-service"}


@app.get("/profiles/{profile}")
async def get_profile(profile: str):
    """Canonical definition for one risk tier."""
    definition = get_default_risk_profile(profile.upper())
    if definition is None:
        raise HTTPException(status_code=404, detail=f"Unknown risk profile: {profile}")
    return {
        "profile": definition.profile.value,
        "description": definition.description,
        "base_allocations": {a.value: w for a, w in definition.base_allocations.items()},
        "max_volatility": definition.max_volatility,
        "max_drawdown": definition.max_drawdown,
        "target_return": definition.target_return,
        "risk_score": definition.risk_score,
    }


@app.post("/allocations")
async def create_allocation(req: AllocationRequest):
    """Generate a recommendation for the submitted request."""
    try:
        engine = AssetAllocationEngine(req.to_config())
        recommendation = await engine.generate_allocation(req.to_input())
    except ValueError as e:  # AllocationInputError or EngineConfig validation
        logger.warning("Rejected allocation request: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    return jsonable_encoder(recommendation)


if __name__ == "__main__":
    uvicorn.run("quantalloc.services.allocation.main:app", host="0.0.0.0", port=8010, reload=True)
