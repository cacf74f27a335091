"""
Tests for correlation reconciliation, the asset universe and the covariance model.
"""

import math

import pytest

from quantalloc.models.enums import AssetClass
from quantalloc.models.types import AssetClassCharacteristics, zero_weights
from quantalloc.portfolio.correlation import CovarianceModel, reconcile_correlation
from quantalloc.portfolio.universe import AssetUniverse

A = AssetClass


def _char(asset, vol=10.0, ret=5.0, **correlations):
    return AssetClassCharacteristics(
        asset_class=asset,
        volatility=vol,
        expected_return=ret,
        correlations={AssetClass(k): v for k, v in correlations.items()},
    )


class TestReconcile:
    def test_missing_pair_is_zero(self):
        u = AssetUniverse([_char(A.EQUITIES), _char(A.ETF)])
        assert reconcile_correlation(u, A.EQUITIES, A.ETF) == 0.0

    def test_one_sided_uses_present_side(self):
        u = AssetUniverse([_char(A.EQUITIES, ETF=0.8), _char(A.ETF)])
        assert reconcile_correlation(u, A.EQUITIES, A.ETF) == pytest.approx(0.8)
        assert reconcile_correlation(u, A.ETF, A.EQUITIES) == pytest.approx(0.8)

    def test_disagreeing_sides_averaged(self):
        u = AssetUniverse([_char(A.EQUITIES, ETF=0.8), _char(A.ETF, EQUITIES=0.6)])
        assert reconcile_correlation(u, A.EQUITIES, A.ETF) == pytest.approx(0.7)

    def test_clipped_to_unit_interval(self):
        u = AssetUniverse([_char(A.EQUITIES, ETF=1.7), _char(A.ETF)])
        assert reconcile_correlation(u, A.EQUITIES, A.ETF) == 1.0

    def test_unassessed_class_is_zero(self):
        u = AssetUniverse([_char(A.EQUITIES, CRYPTO=0.5)])
        assert reconcile_correlation(u, A.EQUITIES, A.CRYPTO) == 0.0

    def test_self_correlation(self):
        u = AssetUniverse([_char(A.EQUITIES)])
        assert reconcile_correlation(u, A.EQUITIES, A.EQUITIES) == 1.0


class TestUniverse:
    def test_duplicate_keeps_first(self):
        u = AssetUniverse([_char(A.ETF, vol=12), _char(A.ETF, vol=99)])
        assert len(u) == 1
        assert u.get(A.ETF).volatility == 12
        assert any("Duplicate" in note for note in u.notes)

    def test_alternatives_gate(self, characteristics):
        u = AssetUniverse(characteristics, include_alternatives=False)
        assert u.eligible == [A.EQUITIES, A.ETF, A.FOREX]
        assert len(u.assessed) == 6

    def test_flag_missing(self):
        u = AssetUniverse([_char(A.ETF)])
        missing = u.flag_missing([A.CRYPTO, A.ETF, A.EQUITIES])
        assert missing == [A.EQUITIES, A.CRYPTO]
        assert len(u.notes) == 2


class TestCovarianceModel:
    def test_matrix_symmetric_with_variances_on_diagonal(self, characteristics):
        model = CovarianceModel(AssetUniverse(characteristics))
        assert (model.matrix == model.matrix.T).all()
        assert model.matrix[0][0] == pytest.approx(18.0 ** 2)
        # EQUITIES/ETF: 18 × 12 × 0.85
        assert model.matrix[0][3] == pytest.approx(18 * 12 * 0.85)

    def test_uncorrelated_volatility(self):
        model = CovarianceModel(AssetUniverse([_char(A.EQUITIES, vol=10), _char(A.ETF, vol=20)]))
        weights = zero_weights()
        weights[A.EQUITIES] = 0.5
        weights[A.ETF] = 0.5
        assert model.variance(weights) == pytest.approx(125.0)
        assert model.volatility(weights) == pytest.approx(math.sqrt(125.0))

    def test_unassessed_weight_contributes_nothing(self):
        model = CovarianceModel(AssetUniverse([_char(A.EQUITIES, vol=10)]))
        weights = zero_weights()
        weights[A.EQUITIES] = 1.0
        weights[A.CRYPTO] = 0.5
        assert model.variance(weights) == pytest.approx(100.0)

    def test_marginal_contributions_sum_to_variance(self, characteristics):
        model = CovarianceModel(AssetUniverse(characteristics))
        weights = {asset: 1 / 6 for asset in AssetClass}
        contributions = model.marginal_contributions(weights)
        assert sum(contributions.values()) == pytest.approx(model.variance(weights))

    def test_correlation_matrix_covers_assessed_only(self):
        model = CovarianceModel(AssetUniverse([_char(A.EQUITIES, ETF=0.4), _char(A.ETF)]))
        matrix = model.correlation_matrix()
        assert set(matrix) == {A.EQUITIES, A.ETF}
        assert matrix[A.ETF][A.EQUITIES] == pytest.approx(0.4)
        assert matrix[A.ETF][A.ETF] == 1.0
