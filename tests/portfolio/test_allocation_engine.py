"""
End-to-end tests for AssetAllocationEngine.generate_allocation.
"""

from datetime import timedelta

import pytest

from quantalloc.models.enums import (
    AssetClass,
    MarketCondition,
    RebalanceAction,
    RiskLevel,
    RiskProfile,
)
from quantalloc.models.types import (
    AllocationPreferences,
    AssetClassCharacteristics,
    EngineConfig,
    MarketMetrics,
)
from quantalloc.portfolio.engine import (
    AllocationInputError,
    AssetAllocationEngine,
    generate_optimal_allocation,
)

A = AssetClass

CRISIS = MarketMetrics(volatility_index=45, sentiment_score=15, credit_spread=600)
NEUTRAL = MarketMetrics(volatility_index=18, sentiment_score=50, credit_spread=150)


@pytest.fixture
def engine():
    return AssetAllocationEngine()


# ── Shape ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_allocations_sum_to_one(engine, make_input):
    rec = await engine.generate_allocation(make_input())
    assert sum(a.allocation for a in rec.allocations) == pytest.approx(1.0, abs=0.01)
    assert sum(a.amount for a in rec.allocations) == pytest.approx(100_000.0, abs=100.0)
    assert {a.asset_class for a in rec.allocations} == set(AssetClass)


@pytest.mark.asyncio
async def test_sorted_by_allocation(engine, make_input):
    rec = await engine.generate_allocation(make_input())
    sizes = [a.allocation for a in rec.allocations]
    assert sizes == sorted(sizes, reverse=True)


@pytest.mark.asyncio
async def test_rationale_and_confidence(engine, make_input):
    rec = await engine.generate_allocation(make_input())
    for entry in rec.allocations:
        assert entry.rationale
        assert 0.0 < entry.confidence <= 1.0
    top = rec.allocations[0]
    assert top.rationale.startswith(f"{top.allocation * 100:.1f}% allocation - ")


@pytest.mark.asyncio
async def test_risk_and_diversification_ranges(engine, make_input):
    rec = await engine.generate_allocation(make_input())
    assert 0.0 <= rec.risk_analysis.risk_score <= 100.0
    assert rec.risk_analysis.risk_level in set(RiskLevel)
    d = rec.diversification
    assert 0.0 < d.herfindahl_index <= 1.0
    assert d.effective_number_of_assets == pytest.approx(1.0 / d.herfindahl_index)
    assert d.diversification_ratio >= 1.0
    assert sum(a.risk_contribution for a in rec.allocations) == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_recommendation_metadata(engine, make_input):
    rec = await engine.generate_allocation(make_input())
    assert rec.id.startswith("alloc_")
    assert rec.next_rebalancing_date - rec.timestamp == timedelta(days=90)
    assert rec.risk_profile is RiskProfile.MODERATE
    assert rec.market_condition is MarketCondition.SIDEWAYS
    assert "MODERATE risk profile" in rec.methodology
    assert rec.rebalancing is None


@pytest.mark.asyncio
async def test_custom_rebalancing_frequency(engine, make_input):
    prefs = AllocationPreferences(rebalancing_frequency=30)
    rec = await engine.generate_allocation(make_input(preferences=prefs))
    assert rec.next_rebalancing_date - rec.timestamp == timedelta(days=30)


# ── Profiles ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_explicit_profile_string(engine, make_input):
    rec = await engine.generate_allocation(make_input(risk_profile="AGGRESSIVE"))
    assert rec.risk_profile is RiskProfile.AGGRESSIVE


@pytest.mark.asyncio
async def test_crisis_infers_cautious_profile(engine, make_input):
    rec = await engine.generate_allocation(make_input(market_conditions=CRISIS))
    assert rec.market_condition is MarketCondition.CRISIS
    assert rec.risk_profile is RiskProfile.MODERATE_CONSERVATIVE


# ── Market Response ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rising_vix_never_increases_crypto(engine, make_input):
    crypto = []
    for vix in (10, 15, 20, 25, 30, 35):
        data = make_input(risk_profile="MODERATE", market_conditions=MarketMetrics(volatility_index=vix))
        rec = await engine.generate_allocation(data)
        crypto.append(rec.weights[A.CRYPTO])
    assert all(later <= earlier + 1e-12 for earlier, later in zip(crypto, crypto[1:]))


@pytest.mark.asyncio
async def test_rising_vix_never_increases_crypto_with_inferred_profile(engine, make_input):
    # A 5k account moves from MODERATE to MODERATE_CONSERVATIVE as VIX leaves the calm band
    crypto, profiles = [], []
    for vix in (10, 15, 20, 25, 30, 35):
        data = make_input(account_size=5_000, market_conditions=MarketMetrics(volatility_index=vix))
        rec = await engine.generate_allocation(data)
        crypto.append(rec.weights[A.CRYPTO])
        profiles.append(rec.risk_profile)
    assert profiles[0] is RiskProfile.MODERATE
    assert profiles[-1] is RiskProfile.MODERATE_CONSERVATIVE
    assert all(later <= earlier + 1e-12 for earlier, later in zip(crypto, crypto[1:]))


@pytest.mark.asyncio
async def test_crisis_does_not_reduce_etf(engine, make_input):
    neutral = await engine.generate_allocation(make_input(risk_profile="MODERATE", market_conditions=NEUTRAL))
    crisis = await engine.generate_allocation(make_input(risk_profile="MODERATE", market_conditions=CRISIS))
    assert crisis.weights[A.ETF] >= neutral.weights[A.ETF]


@pytest.mark.asyncio
async def test_crisis_does_not_reduce_etf_with_inferred_profile(engine, make_input):
    neutral = await engine.generate_allocation(make_input(market_conditions=NEUTRAL))
    crisis = await engine.generate_allocation(make_input(market_conditions=CRISIS))
    assert neutral.risk_profile is RiskProfile.MODERATE
    assert crisis.risk_profile is RiskProfile.MODERATE_CONSERVATIVE
    assert crisis.weights[A.ETF] >= neutral.weights[A.ETF]


# ── Preferences ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_exclusion_lowers_class(engine, make_input):
    base = await engine.generate_allocation(make_input(risk_profile="MODERATE"))
    prefs = AllocationPreferences(excluded_asset_classes=[A.CRYPTO])
    excluded = await engine.generate_allocation(make_input(risk_profile="MODERATE", preferences=prefs))
    assert base.weights[A.CRYPTO] > 0
    assert excluded.weights[A.CRYPTO] < base.weights[A.CRYPTO]
    assert excluded.allocation_for(A.CRYPTO).rationale == "Excluded by preference"


@pytest.mark.asyncio
async def test_alternatives_disabled(make_input):
    engine = AssetAllocationEngine(EngineConfig(include_alternatives=False))
    rec = await engine.generate_allocation(make_input())
    for asset in (A.OPTIONS, A.FUTURES, A.CRYPTO):
        assert rec.weights[asset] == 0.0
        assert rec.allocation_for(asset).confidence > 0
    assert sum(rec.weights.values()) == pytest.approx(1.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("objective", ["MIN_RISK", "MAX_RETURN", "RISK_PARITY", "MAX_DIVERSIFICATION"])
async def test_every_objective(make_input, objective):
    engine = AssetAllocationEngine(EngineConfig(objective=objective))
    rec = await engine.generate_allocation(make_input())
    assert sum(rec.weights.values()) == pytest.approx(1.0, abs=1e-6)
    assert rec.methodology.endswith("risk profile")


# ── Warnings ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_small_account_warning(engine, make_input):
    rec = await engine.generate_allocation(make_input(account_size=1_000))
    assert any("small account" in w.lower() for w in rec.warnings)


@pytest.mark.asyncio
async def test_high_volatility_warning(engine, make_input):
    rec = await engine.generate_allocation(make_input(market_conditions=MarketMetrics(volatility_index=35)))
    assert any("volatility" in w.lower() for w in rec.warnings)
    assert any("Market volatility is elevated" in w for w in rec.warnings)


@pytest.mark.asyncio
async def test_calm_market_has_no_volatility_warning(engine, make_input):
    rec = await engine.generate_allocation(make_input())
    assert not any("volatility is elevated" in w for w in rec.warnings)
    assert not any("small account" in w.lower() for w in rec.warnings)


@pytest.mark.asyncio
async def test_missing_characteristics_warned(engine, make_input, characteristics):
    subset = [c for c in characteristics if c.asset_class != A.FUTURES]
    rec = await engine.generate_allocation(make_input(asset_characteristics=subset))
    assert rec.allocation_for(A.FUTURES) is None
    assert rec.weights[A.FUTURES] == 0.0
    assert any("FUTURES" in w for w in rec.warnings)


# ── Rebalancing ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rebalancing_plan(engine, make_input):
    positions = {A.EQUITIES: 60_000.0, A.ETF: 40_000.0}
    rec = await engine.generate_allocation(make_input(current_positions=positions))
    actions = rec.rebalancing
    assert actions
    assert [a.priority for a in actions] == list(range(1, len(actions) + 1))
    drifts = [a.drift for a in actions]
    assert drifts == sorted(drifts, reverse=True)
    for a in actions:
        assert a.action in set(RebalanceAction)
        assert a.drift >= 0
        assert a.trade_amount == pytest.approx(a.drift * 100_000.0)
        assert a.estimated_cost >= 0.0
        if a.trade_amount == 0.0:
            assert a.estimated_cost == 0.0
    covered = {a.asset_class for a in actions}
    assert {A.EQUITIES, A.ETF} <= covered
    assert {asset for asset, w in rec.weights.items() if w > 0} <= covered


# ── Determinism ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_idempotent_apart_from_identity(engine, make_input):
    first = await engine.generate_allocation(make_input())
    second = await engine.generate_allocation(make_input())
    assert [(a.asset_class, a.allocation) for a in first.allocations] == [
        (a.asset_class, a.allocation) for a in second.allocations
    ]
    assert first.portfolio_metrics == second.portfolio_metrics
    assert first.diversification == second.diversification
    assert first.risk_analysis == second.risk_analysis
    assert first.warnings == second.warnings
    assert first.id != second.id


@pytest.mark.asyncio
async def test_convenience_coroutine(make_input):
    rec = await generate_optimal_allocation(make_input(), EngineConfig(objective="MIN_RISK"))
    assert "Minimum variance" in rec.methodology


# ── Validation ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"account_size": 0},
        {"account_size": -100},
        {"asset_characteristics": []},
        {"risk_profile": "YOLO"},
        {"preferences": AllocationPreferences(rebalancing_frequency=0)},
        {"current_positions": {"BONDS": 10_000.0}},
    ],
)
async def test_invalid_input(engine, make_input, overrides):
    with pytest.raises(AllocationInputError):
        await engine.generate_allocation(make_input(**overrides))


@pytest.mark.asyncio
async def test_nothing_eligible(make_input, characteristics):
    crypto_only = [c for c in characteristics if c.asset_class == A.CRYPTO]
    engine = AssetAllocationEngine(EngineConfig(include_alternatives=False))
    with pytest.raises(AllocationInputError):
        await engine.generate_allocation(make_input(asset_characteristics=crypto_only))


def test_input_error_is_value_error():
    assert issubclass(AllocationInputError, ValueError)


# ── Negative Correlation ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_risk_parity_with_hedging_class(make_input):
    hedged = [
        AssetClassCharacteristics(
            A.EQUITIES, volatility=18, expected_return=10, correlations={A.ETF: 0.85, A.FOREX: -0.5}
        ),
        AssetClassCharacteristics(
            A.ETF, volatility=12, expected_return=7, correlations={A.EQUITIES: 0.85, A.FOREX: -0.4}
        ),
        AssetClassCharacteristics(
            A.FOREX, volatility=10, expected_return=4, correlations={A.EQUITIES: -0.5, A.ETF: -0.4}
        ),
    ]
    engine = AssetAllocationEngine(EngineConfig(objective="RISK_PARITY"))
    rec = await engine.generate_allocation(
        make_input(risk_profile="AGGRESSIVE", asset_characteristics=hedged)
    )
    assert not any("did not converge" in w for w in rec.warnings)
    for asset in (A.EQUITIES, A.ETF, A.FOREX):
        assert rec.weights[asset] > 0
        assert rec.risk_analysis.risk_decomposition[asset] == pytest.approx(100 / 3, abs=0.05)
