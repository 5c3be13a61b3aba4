"""Unit tests for normalized variable importance."""
import pytest
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestRegressor
from sklearn.tree import DecisionTreeRegressor

from conftest import FEATURES, FunctionEstimator

from tree_pricing.models import (
    TreeModel,
    ForestModel,
    ImportanceRecord,
    raw_importance,
    importance,
    importance_frame,
    compare_importance
)
from tree_pricing.config import ImportanceConfig
from tree_pricing.utils.exceptions import ConfigurationError, DegenerateImportanceError


@pytest.fixture
def signal_data() -> pd.DataFrame:
    """Target driven by x1 and x2; x3 is constant."""
    rng = np.random.default_rng(0)
    X = pd.DataFrame({
        'x1': rng.uniform(0, 1, 300),
        'x2': rng.uniform(0, 1, 300),
        'x3': np.zeros(300),
    })
    X['y'] = 3 * (X['x1'] > 0.5) + (X['x2'] > 0.3)
    return X


def _assert_normalized(records):
    total = sum(r.normalized_score for r in records)
    assert total == pytest.approx(1.0, abs=1e-9)
    assert all(r.normalized_score > 0 for r in records)
    scores = [r.normalized_score for r in records]
    assert scores == sorted(scores, reverse=True)


class TestImportance:
    """Test importance extraction per variant."""

    def test_tree_importance(self, signal_data):
        estimator = DecisionTreeRegressor(max_depth=3, random_state=0)
        estimator.fit(signal_data[['x1', 'x2', 'x3']], signal_data['y'])
        records = importance(TreeModel(estimator))

        _assert_normalized(records)
        assert [r.variable for r in records] == ['x1', 'x2']
        assert records[0].raw_score > records[1].raw_score

    def test_forest_importance(self, signal_data):
        estimator = RandomForestRegressor(n_estimators=5, max_depth=3, random_state=0)
        estimator.fit(signal_data[['x1', 'x2', 'x3']], signal_data['y'])
        records = importance(ForestModel(estimator))

        _assert_normalized(records)
        assert records[0].variable == 'x1'
        assert 'x3' not in {r.variable for r in records}

    def test_fitted_pipelines(self, tree_model, forest_model, boosted_model):
        for model in (tree_model, forest_model, boosted_model):
            records = importance(model)
            _assert_normalized(records)
            assert {r.variable for r in records} <= set(FEATURES)

    def test_raw_scores_cover_all_features(self, boosted_model):
        raw = raw_importance(boosted_model)
        assert set(raw) == set(FEATURES)
        assert all(score >= 0 for score in raw.values())

    def test_constant_target_is_degenerate(self):
        X = pd.DataFrame({'ageph': [20, 30, 40, 50], 'bm': [0, 1, 2, 3]})
        estimator = DecisionTreeRegressor().fit(X, [1.0, 1.0, 1.0, 1.0])
        with pytest.raises(DegenerateImportanceError):
            importance(TreeModel(estimator))

    def test_unsupported_variant(self):
        from tree_pricing.models import FittedModel

        with pytest.raises(ConfigurationError):
            importance(FittedModel(FunctionEstimator(len), features=['ageph']))


class TestReporting:
    """Test rounding and tabulation."""

    def test_reported_score_is_rounded(self):
        record = ImportanceRecord('bm', 12.5, 0.123456789)
        assert record.reported_score == 0.1235
        assert record.normalized_score == 0.123456789

    def test_importance_frame(self):
        records = [ImportanceRecord('bm', 3.0, 2 / 3), ImportanceRecord('ageph', 1.5, 1 / 3)]
        table = importance_frame(records)
        assert list(table.columns) == ['variable', 'raw_score', 'importance']
        assert table['importance'].tolist() == [0.6667, 0.3333]

        assert importance_frame(records, decimals=2)['importance'].tolist() == [0.67, 0.33]

    def test_importance_frame_reads_config(self):
        records = [ImportanceRecord('bm', 3.0, 2 / 3), ImportanceRecord('ageph', 1.5, 1 / 3)]
        config = ImportanceConfig(decimals=1)
        assert importance_frame(records, config=config)['importance'].tolist() == [0.7, 0.3]
        assert importance_frame(records, decimals=3, config=config)['importance'].tolist() == [0.667, 0.333]

    def test_compare_importance(self, tree_model, boosted_model):
        table = compare_importance({'tree': tree_model, 'gbm': boosted_model})
        assert list(table.columns) == ['tree', 'gbm']
        assert table.index.name == 'variable'
        assert (table >= 0).all().all()
        np.testing.assert_allclose(table.sum(axis=0), 1.0, atol=1e-3)

    def test_compare_importance_reads_config(self, tree_model, boosted_model):
        models = {'tree': tree_model, 'gbm': boosted_model}
        table = compare_importance(models, config=ImportanceConfig(decimals=2))
        np.testing.assert_allclose(table * 100, (table * 100).round(), atol=1e-9)
        np.testing.assert_allclose(table, compare_importance(models, decimals=2))

    def test_compare_requires_models(self):
        with pytest.raises(ConfigurationError):
            compare_importance({})
