"""
Drift detection and rebalancing plans.
Compares current holdings with target weights and emits one action per class.
"""

from __future__ import annotations

import logging

from quantalloc.config import settings
from quantalloc.models.enums import AssetClass, RebalanceAction, TransactionCostModel
from quantalloc.models.types import RebalancingAction, Weights
from quantalloc.portfolio.universe import AssetUniverse

logger = logging.getLogger(__name__)


class RebalancingPlanner:
    """Turns drift between current and target weights into prioritized trades."""

    def __init__(
        self,
        universe: AssetUniverse,
        threshold: float,
        cost_model: TransactionCostModel = TransactionCostModel.PERCENTAGE,
    ):
        self.universe = universe
        self.threshold = threshold
        self.cost_model = cost_model

    def estimate_cost(self, asset: AssetClass, trade_amount: float) -> float:
        """Cost of moving trade_amount dollars; nothing to pay when nothing moves."""
        if trade_amount <= 0:
            return 0.0
        if self.cost_model == TransactionCostModel.FIXED:
            return settings.fixed_trade_fee
        char = self.universe.get(asset)
        rate = char.transaction_cost if char is not None else settings.default_transaction_cost
        return trade_amount * rate

    def plan(
        self,
        current_positions: dict[AssetClass, float],
        targets: Weights,
        account_size: float,
    ) -> list[RebalancingAction]:
        """
        Build actions for every class held now or targeted.

        HOLD rows still quote the cost of closing their drift, so a caller
        can see what a full rebalance would cost.

        Returns:
            Actions ordered by priority (1 = largest drift; ties go to the
            costlier trade, then canonical class order).
        """
        if account_size <= 0:
            return []

        classes = [
            asset for asset in AssetClass
            if asset in current_positions or targets.get(asset, 0.0) > 0
        ]

        actions = []
        for asset in classes:
            current = current_positions.get(asset, 0.0) / account_size
            target = targets.get(asset, 0.0)
            drift = abs(current - target)

            if drift < self.threshold:
                action = RebalanceAction.HOLD
                verdict = "within"
            else:
                action = RebalanceAction.BUY if target > current else RebalanceAction.SELL
                verdict = "exceeds"

            trade_amount = drift * account_size
            cost = self.estimate_cost(asset, trade_amount)
            actions.append(
                RebalancingAction(
                    asset_class=asset,
                    current_allocation=current,
                    target_allocation=target,
                    drift=drift,
                    action=action,
                    trade_amount=trade_amount,
                    estimated_cost=cost,
                    priority=0,
                    reason=f"Drift of {drift:.2%} {verdict} {self.threshold:.2%} threshold",
                )
            )

        actions.sort(key=lambda a: (-a.drift, -a.estimated_cost, a.asset_class.rank))
        for i, entry in enumerate(actions):
            entry.priority = i + 1

        trades = sum(1 for a in actions if a.action != RebalanceAction.HOLD)
        logger.debug("Rebalancing plan: %d actions, %d trades", len(actions), trades)
        return actions
