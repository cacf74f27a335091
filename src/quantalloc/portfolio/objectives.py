"""
Optimization objectives, one pure function per objective.

Each objective takes normalized weights plus an ``ObjectiveContext`` and
returns reshaped weights over the context's active set (eligible classes
already holding weight). Classes outside the active set always come back
as zero. Objectives raise ``OptimizationError`` when the covariance
structure is degenerate or the solver fails to converge; the caller
decides how to recover.

Targets are solved with SLSQP over the long-only simplex (bounds [0, 1],
weights summing to 1):

    MAX_SHARPE           blend toward the long-only tangency portfolio
    MIN_RISK             blend toward the long-only minimum-variance portfolio
    MAX_RETURN           blend toward excess return per unit of volatility
    MAX_DIVERSIFICATION  blend toward the long-only most-diversified portfolio
    RISK_PARITY          equal variance contributions (no blend)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy.optimize import minimize

from quantalloc.config import settings
from quantalloc.models.enums import AssetClass, OptimizationObjective
from quantalloc.models.types import RiskProfileDefinition, Weights, zero_weights
from quantalloc.portfolio.correlation import CovarianceModel

logger = logging.getLogger(__name__)

# Solver output below this is treated as an exact zero
DUST = 1e-9


class OptimizationError(RuntimeError):
    """Objective could not produce weights for this covariance structure."""


@dataclass(slots=True)
class ObjectiveContext:
    """Everything an objective may read. Objectives never mutate it."""

    model: CovarianceModel
    active: list[AssetClass]
    profile: RiskProfileDefinition
    risk_free_rate: float = 0.04  # Fraction
    blend: float = 0.5
    max_iterations: int = 500
    tolerance: float = 1e-4  # Max deviation of a parity share from 1/n
    solver_ftol: float = 1e-10
    max_condition_number: float = 1e12

    @property
    def indices(self) -> list[int]:
        return [self.model.index(asset) for asset in self.active]

    @property
    def risk_free_pct(self) -> float:
        return self.risk_free_rate * 100.0


# ─── Helpers ───────────────────────────────────────────────────────────────────


def _expand(indices: list[int], values: np.ndarray) -> Weights:
    out = zero_weights()
    for i, value in zip(indices, values):
        out[AssetClass.ordered()[i]] = float(value)
    return out


def _blend(weights: Weights, target: Weights, ctx: ObjectiveContext) -> Weights:
    """Move ``ctx.blend`` of the way from weights toward target, active set only."""
    out = zero_weights()
    for asset in ctx.active:
        out[asset] = (1.0 - ctx.blend) * weights.get(asset, 0.0) + ctx.blend * target.get(asset, 0.0)
    return out


def _require_active(ctx: ObjectiveContext) -> None:
    if not ctx.active:
        raise OptimizationError("No active asset classes to optimize")


def _active_covariance(ctx: ObjectiveContext) -> np.ndarray:
    """Covariance of the active block, scaled to a unit largest variance.

    Raises:
        OptimizationError: If the block is non-finite, singular or ill-conditioned.
    """
    _require_active(ctx)
    idx = ctx.indices
    sub = ctx.model.matrix[np.ix_(idx, idx)]
    if np.any(np.diag(sub) <= 0):
        raise OptimizationError("Every active class needs positive volatility")
    if not np.all(np.isfinite(sub)) or np.linalg.cond(sub) > ctx.max_condition_number:
        raise OptimizationError("Covariance matrix is singular or ill-conditioned")
    return sub / np.max(np.diag(sub))


def _solve_simplex(
    objective: Callable[[np.ndarray], tuple[float, np.ndarray]],
    n: int,
    ctx: ObjectiveContext,
) -> np.ndarray:
    """Minimize ``objective`` over long-only weights that sum to 1.

    ``objective`` returns (value, gradient). Starts from equal weights so the
    answer depends only on the covariance model, never on the input weights.
    """
    if n == 1:
        return np.ones(1)
    result = minimize(
        objective,
        np.full(n, 1.0 / n),
        jac=True,
        method="SLSQP",
        bounds=[(0.0, 1.0)] * n,
        constraints=[{"type": "eq", "fun": lambda w: np.sum(w) - 1.0, "jac": lambda w: np.ones_like(w)}],
        options={"maxiter": ctx.max_iterations, "ftol": ctx.solver_ftol},
    )
    if not result.success:
        raise OptimizationError(f"SLSQP did not converge: {result.message}")
    w = np.where(result.x < DUST, 0.0, result.x)
    if w.sum() <= 0:
        raise OptimizationError("Solver returned no positive weight")
    logger.debug("SLSQP converged in %d iterations", result.nit)
    return w / w.sum()


def _negative_ratio(numerator: np.ndarray, cov: np.ndarray):
    """Objective -(a·w)/sqrt(wᵀΣw) with its gradient."""

    def fn(w: np.ndarray) -> tuple[float, np.ndarray]:
        marginal = cov @ w
        vol = float(np.sqrt(max(w @ marginal, 1e-18)))
        top = float(numerator @ w)
        grad = -numerator / vol + top * marginal / vol**3
        return -top / vol, grad

    return fn


# ─── Objectives ────────────────────────────────────────────────────────────────


def max_sharpe(weights: Weights, ctx: ObjectiveContext) -> Weights:
    cov = _active_covariance(ctx)
    excess = ctx.model.expected_returns[ctx.indices] - ctx.risk_free_pct
    if not np.any(excess > 0):
        raise OptimizationError("No class offers a positive excess return")
    target = _solve_simplex(_negative_ratio(excess, cov), len(ctx.active), ctx)
    return _blend(weights, _expand(ctx.indices, target), ctx)


def min_risk(weights: Weights, ctx: ObjectiveContext) -> Weights:
    cov = _active_covariance(ctx)

    def variance(w: np.ndarray) -> tuple[float, np.ndarray]:
        marginal = cov @ w
        return float(w @ marginal), 2.0 * marginal

    target = _solve_simplex(variance, len(ctx.active), ctx)
    return _blend(weights, _expand(ctx.indices, target), ctx)


def max_diversification(weights: Weights, ctx: ObjectiveContext) -> Weights:
    """Maximize weighted-average volatility over portfolio volatility."""
    cov = _active_covariance(ctx)
    vols = np.sqrt(np.diag(cov))
    target = _solve_simplex(_negative_ratio(vols, cov), len(ctx.active), ctx)
    return _blend(weights, _expand(ctx.indices, target), ctx)


def max_return(weights: Weights, ctx: ObjectiveContext) -> Weights:
    """Favor classes with the best excess return per unit of volatility.

    Classes whose own volatility exceeds the profile budget are scaled
    down by budget / volatility.
    """
    _require_active(ctx)
    scores: dict[AssetClass, float] = {}
    for asset in ctx.active:
        char = ctx.model.universe.get(asset)
        if char is None or char.volatility <= 0:
            raise OptimizationError(f"{asset.value} has no usable volatility")
        ratio = max(char.expected_return - ctx.risk_free_pct, 0.0) / char.volatility
        penalty = min(1.0, ctx.profile.max_volatility / char.volatility)
        scores[asset] = ratio * penalty

    total = sum(scores.values())
    if total <= 0:
        raise OptimizationError("No class offers a positive excess return")
    target = zero_weights()
    for asset, score in scores.items():
        target[asset] = score / total
    return _blend(weights, target, ctx)


def risk_parity(weights: Weights, ctx: ObjectiveContext) -> Weights:
    """Equalize each class's share of portfolio variance.

    Solves min ½yᵀΣy − (1/n)·Σ log y over y > 0. The program is strictly
    convex for positive-definite Σ and its stationary point satisfies
    y_i(Σy)_i = 1/n, so the normalized y is the unique long-only equal risk
    contribution portfolio, negative correlations included. Input weights
    are ignored.
    """
    cov = _active_covariance(ctx)
    n = len(ctx.active)
    if n == 1:
        return _expand(ctx.indices, np.ones(1))

    def barrier(y: np.ndarray) -> tuple[float, np.ndarray]:
        y = np.maximum(y, DUST)
        marginal = cov @ y
        value = 0.5 * float(y @ marginal) - float(np.sum(np.log(y))) / n
        return value, marginal - 1.0 / (n * y)

    start = 1.0 / np.sqrt(np.diag(cov))
    result = minimize(
        barrier,
        start / np.sqrt(float(start @ cov @ start)),
        jac=True,
        method="SLSQP",
        bounds=[(DUST, None)] * n,
        options={"maxiter": ctx.max_iterations, "ftol": ctx.solver_ftol},
    )
    if not result.success:
        raise OptimizationError(f"Risk parity did not converge: {result.message}")

    w = result.x / result.x.sum()
    marginal = cov @ w
    shares = w * marginal / float(w @ marginal)
    deviation = float(np.max(np.abs(shares - 1.0 / n)))
    if deviation > ctx.tolerance:
        raise OptimizationError(f"Risk parity shares off by {deviation:.2e}")
    logger.debug("Risk parity converged in %d iterations", result.nit)
    return _expand(ctx.indices, w)


ObjectiveFn = Callable[[Weights, ObjectiveContext], Weights]

OBJECTIVES: dict[OptimizationObjective, ObjectiveFn] = {
    OptimizationObjective.MAX_SHARPE: max_sharpe,
    OptimizationObjective.MIN_RISK: min_risk,
    OptimizationObjective.MAX_RETURN: max_return,
    OptimizationObjective.MAX_DIVERSIFICATION: max_diversification,
    OptimizationObjective.RISK_PARITY: risk_parity,
}

METHODOLOGY: dict[OptimizationObjective, str] = {
    OptimizationObjective.MAX_SHARPE: "Sharpe ratio maximization with risk-adjusted return optimization",
    OptimizationObjective.MIN_RISK: "Minimum variance optimization prioritizing capital preservation",
    OptimizationObjective.MAX_RETURN: "Return maximization within risk tolerance constraints",
    OptimizationObjective.RISK_PARITY: "Equal risk contribution across asset classes",
    OptimizationObjective.MAX_DIVERSIFICATION: "Correlation-based diversification maximization",
}


def build_context(
    model: CovarianceModel,
    active: list[AssetClass],
    profile: RiskProfileDefinition,
    risk_free_rate: float,
    blend: float,
) -> ObjectiveContext:
    """Context with numerics taken from settings."""
    return ObjectiveContext(
        model=model,
        active=active,
        profile=profile,
        risk_free_rate=risk_free_rate,
        blend=blend,
        max_iterations=settings.optimizer_max_iterations,
        tolerance=settings.risk_parity_tolerance,
        solver_ftol=settings.optimizer_ftol,
        max_condition_number=settings.max_condition_number,
    )
