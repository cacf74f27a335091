"""
Constraint application and objective-driven reshaping.

Order of operations:
    (a) exclusions, freed weight redistributed pro-rata
    (b) ineligible classes zeroed (alternatives gate, missing characteristics)
    (c) preferred-class floors
    (d) per-class floors and caps (preferences and explicit constraints)
    (e) objective reshaping over the active set
    (f) bounds re-applied and weights renormalized to 1.0

Objective failures fall back to the pre-objective weights with a note;
this stage never raises for valid input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from quantalloc.config import settings
from quantalloc.models.enums import AssetClass, ConstraintType
from quantalloc.models.types import (
    AllocationConstraint,
    AllocationPreferences,
    EngineConfig,
    RiskProfileDefinition,
    Weights,
    zero_weights,
)
from quantalloc.portfolio.correlation import CovarianceModel
from quantalloc.portfolio.objectives import OBJECTIVES, OptimizationError, build_context
from quantalloc.portfolio.universe import AssetUniverse

logger = logging.getLogger(__name__)

SUM_TOLERANCE = 1e-6


@dataclass
class OptimizationResult:
    weights: Weights
    pre_objective: Weights
    eligible: list[AssetClass]
    excluded: list[AssetClass] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    fell_back: bool = False


def normalize(weights: Weights, eligible: list[AssetClass]) -> Weights:
    """Scale eligible weights to sum to 1; equal weight when all are zero."""
    out = zero_weights()
    if not eligible:
        return out
    total = sum(max(weights.get(a, 0.0), 0.0) for a in eligible)
    if total <= 0:
        for a in eligible:
            out[a] = 1.0 / len(eligible)
        return out
    for a in eligible:
        out[a] = max(weights.get(a, 0.0), 0.0) / total
    return out


def apply_bounds(
    weights: Weights,
    eligible: list[AssetClass],
    floors: dict[AssetClass, float],
    caps: dict[AssetClass, float],
) -> Weights:
    """Clamp to [floor, cap] per class while keeping the total at 1.

    Excess is taken pro-rata from weight above floors; shortfall is added
    pro-rata to classes still below their cap. Bounds must be feasible.
    """
    w = {a: max(weights.get(a, 0.0), 0.0) for a in eligible}
    for _ in range(2 * len(eligible) + 2):
        w = {a: min(max(v, floors.get(a, 0.0)), caps.get(a, 1.0)) for a, v in w.items()}
        gap = 1.0 - sum(w.values())
        if abs(gap) < 1e-12:
            break
        if gap < 0:
            slack = {a: w[a] - floors.get(a, 0.0) for a in w if w[a] > floors.get(a, 0.0)}
        else:
            slack = {a: w[a] for a in w if w[a] < caps.get(a, 1.0)}
            if slack and sum(slack.values()) <= 0:
                slack = {a: 1.0 for a in slack}
        basis = sum(slack.values())
        if basis <= 0:
            break
        for a, s in slack.items():
            w[a] += gap * s / basis
    out = zero_weights()
    out.update(w)
    return normalize(out, eligible)


class ConstraintsAndObjectiveOptimizer:
    """Applies exclusions, bounds and the configured objective."""

    def __init__(self, universe: AssetUniverse, model: CovarianceModel, config: EngineConfig):
        self.universe = universe
        self.model = model
        self.config = config

    # ─── Constraint Stages ────────────────────────────────────────────────────

    def _eligible_after_exclusions(
        self,
        excluded: set[AssetClass],
    ) -> tuple[list[AssetClass], list[AssetClass]]:
        eligible = self.universe.eligible
        remaining = [a for a in eligible if a not in excluded]
        if not remaining:
            logger.warning("Ignoring exclusions %s: nothing would remain", sorted(e.value for e in excluded))
            return eligible, []
        applied = [a for a in eligible if a in excluded]
        return remaining, applied

    def _bounds(
        self,
        eligible: list[AssetClass],
        preferences: AllocationPreferences | None,
        constraints: list[AllocationConstraint],
        notes: list[str],
    ) -> tuple[dict[AssetClass, float], dict[AssetClass, float]]:
        floors: dict[AssetClass, float] = {}
        caps: dict[AssetClass, float] = {}

        def raise_floor(asset: AssetClass, value: float) -> None:
            if asset in eligible and value > 0:
                floors[asset] = max(floors.get(asset, 0.0), value)

        def lower_cap(asset: AssetClass, value: float) -> None:
            if asset in eligible:
                caps[asset] = min(caps.get(asset, 1.0), max(value, 0.0))

        if preferences is not None:
            for asset in preferences.preferred_asset_classes:
                raise_floor(asset, settings.preferred_class_floor)
            if preferences.min_allocation_per_class:
                for asset in eligible:
                    raise_floor(asset, preferences.min_allocation_per_class)
            if preferences.max_allocation_per_class is not None:
                for asset in eligible:
                    lower_cap(asset, preferences.max_allocation_per_class)

        for constraint in constraints:
            if constraint.type == ConstraintType.MIN_ALLOCATION and constraint.hard:
                raise_floor(constraint.asset_class, constraint.value)
            elif constraint.type == ConstraintType.MAX_ALLOCATION:
                lower_cap(constraint.asset_class, constraint.value)

        floor_total = sum(floors.values())
        if floor_total > 1.0:
            notes.append(
                f"Minimum allocations total {floor_total:.0%}; floors were scaled down proportionally."
            )
            floors = {a: f / floor_total for a, f in floors.items()}

        # A cap below its floor yields to the floor
        for asset, cap in list(caps.items()):
            if cap < floors.get(asset, 0.0):
                caps[asset] = floors[asset]
        cap_total = sum(caps.get(a, 1.0) for a in eligible)
        if cap_total < 1.0:
            notes.append(
                f"Maximum allocations total {cap_total:.0%}; caps were ignored to stay fully invested."
            )
            caps = {}

        return floors, caps

    # ─── Pipeline ─────────────────────────────────────────────────────────────

    def optimize(
        self,
        weights: Weights,
        profile: RiskProfileDefinition,
        preferences: AllocationPreferences | None = None,
        constraints: list[AllocationConstraint] | None = None,
    ) -> OptimizationResult:
        notes: list[str] = []
        excluded = set(preferences.excluded_asset_classes) if preferences else set()

        # (a) + (b)
        eligible, applied = self._eligible_after_exclusions(excluded)
        constrained = normalize(weights, eligible)

        # (c) + (d)
        floors, caps = self._bounds(eligible, preferences, constraints or [], notes)
        constrained = apply_bounds(constrained, eligible, floors, caps)
        logger.debug("Constrained weights: %s", {a.value: round(w, 4) for a, w in constrained.items()})

        # (e)
        active = [a for a in eligible if constrained[a] > 0]
        objective = self.config.objective
        ctx = build_context(
            model=self.model,
            active=active,
            profile=profile,
            risk_free_rate=self.config.risk_free_rate,
            blend=self.config.objective_blend,
        )
        fell_back = False
        try:
            shaped = OBJECTIVES[objective](constrained, ctx)
        except OptimizationError as e:
            logger.warning("Objective %s failed (%s); using constraint-respecting weights", objective.value, e)
            notes.append(
                f"Optimization objective {objective.value} did not converge ({e}); "
                "constraint-respecting weights were used instead."
            )
            shaped = constrained
            fell_back = True

        # (f)
        final = apply_bounds(shaped, eligible, floors, caps)
        total = sum(final.values())
        if abs(total - 1.0) > SUM_TOLERANCE:
            final = normalize(final, eligible)

        return OptimizationResult(
            weights=final,
            pre_objective=constrained,
            eligible=eligible,
            excluded=applied,
            notes=notes,
            fell_back=fell_back,
        )
