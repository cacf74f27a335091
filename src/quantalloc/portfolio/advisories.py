"""
Advisory warnings attached to a recommendation.

Messages are deterministic and always emitted in the same order. They never
block generation.
"""

from __future__ import annotations

from quantalloc.config import settings
from quantalloc.models.enums import AssetClass, RiskLevel
from quantalloc.models.types import AllocationInput, RiskAnalysis, Weights

RESIDUAL_WEIGHT = 0.001


class WarningsGenerator:
    """Builds the ordered list of advisory messages for one allocation."""

    def generate(
        self,
        data: AllocationInput,
        weights: Weights,
        risk: RiskAnalysis,
        notes: list[str] | None = None,
    ) -> list[str]:
        """
        Args:
            data: The request, for account size, VIX and exclusions.
            weights: Final weights.
            risk: Risk analysis of the final weights.
            notes: Data-quality and optimizer notes, appended last.
        """
        warnings: list[str] = []

        if data.account_size < settings.small_account_threshold:
            warnings.append(
                f"Small account size (${data.account_size:,.2f}) may limit diversification; "
                "consider ETFs for broader exposure."
            )

        vix = data.market_conditions.volatility_index
        if vix > settings.high_volatility_index:
            warnings.append(
                f"Market volatility is elevated (VIX {vix:.1f}); consider maintaining higher cash reserves."
            )

        for asset in AssetClass:
            if weights.get(asset, 0.0) > settings.concentration_threshold:
                warnings.append(
                    f"High concentration in {asset.value} ({weights[asset]:.1%}); "
                    "the portfolio may benefit from additional diversification."
                )

        excluded = data.preferences.excluded_asset_classes if data.preferences else []
        for asset in AssetClass:
            if asset in excluded and weights.get(asset, 0.0) > RESIDUAL_WEIGHT:
                warnings.append(
                    f"{asset.value} was excluded but still holds {weights[asset]:.1%} "
                    "because no other asset class was eligible."
                )

        if risk.risk_level in (RiskLevel.HIGH, RiskLevel.EXTREME):
            warnings.append(
                f"Portfolio risk level is {risk.risk_level.value}. "
                "Consider reducing exposure to volatile assets."
            )

        if risk.liquidity_risk > settings.liquidity_risk_threshold:
            warnings.append(
                "Some positions may have limited liquidity. Consider exit strategies in advance."
            )

        if weights.get(AssetClass.CRYPTO, 0.0) > settings.crypto_warning_threshold:
            warnings.append(
                f"Cryptocurrency allocation exceeds {settings.crypto_warning_threshold:.0%}. "
                "Be aware of high volatility and regulatory risks."
            )

        if weights.get(AssetClass.OPTIONS, 0.0) > settings.options_warning_threshold:
            warnings.append(
                "Options allocation is significant. Ensure adequate knowledge and risk management."
            )

        warnings.extend(notes or [])
        return warnings
