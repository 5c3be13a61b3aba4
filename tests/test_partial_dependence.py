"""Unit tests for partial dependence, ICE and grid helpers."""
import pytest
import numpy as np
import pandas as pd

from conftest import FunctionEstimator

from tree_pricing.config import PartialDependenceConfig
from tree_pricing.explainability import (
    PartialDependenceEngine,
    with_column,
    with_columns,
    partial_dependence,
    individual_conditional_expectation,
    numeric_grid,
    grid_from_data
)
from tree_pricing.models import TreeModel
from tree_pricing.utils.exceptions import (
    DataValidationError,
    InvalidGridValueError,
    MissingFeatureError
)


@pytest.fixture
def three_policies() -> pd.DataFrame:
    return pd.DataFrame({'ageph': [30, 45, 60], 'bm': [0, 1, 2], 'power': [50, 70, 90]})


@pytest.fixture
def age_model() -> TreeModel:
    """Prediction grows with age and bonus-malus."""
    return TreeModel(
        FunctionEstimator(lambda X: 0.001 * X['ageph'] + 0.01 * X['bm']),
        features=['ageph', 'bm']
    )


class TestPartialDependence:
    """Test the PDP sweep."""

    def test_constant_model_full_age_range(self, constant_model, three_policies):
        curve = partial_dependence(constant_model, three_policies, 'ageph', numeric_grid(18, 90))

        assert list(curve.columns) == ['ageph', 'prediction']
        assert len(curve) == 73
        assert curve['ageph'].tolist() == list(range(18, 91))
        np.testing.assert_allclose(curve['prediction'], 0.1)

    def test_average_over_rows(self, age_model, three_policies):
        curve = partial_dependence(age_model, three_policies, 'ageph', [20, 40])
        # mean bm is 1
        np.testing.assert_allclose(curve['prediction'], [0.02 + 0.01, 0.04 + 0.01])

    def test_grid_order_is_kept(self, age_model, three_policies):
        curve = partial_dependence(age_model, three_policies, 'ageph', [70, 20, 45])
        assert curve['ageph'].tolist() == [70, 20, 45]
        assert curve['prediction'].iloc[0] > curve['prediction'].iloc[2] > curve['prediction'].iloc[1]

    def test_input_not_modified(self, tree_model, portfolio):
        sample = portfolio.head(100)
        before = sample.copy()
        partial_dependence(tree_model, sample, 'ageph', [18, 50, 90])
        individual_conditional_expectation(tree_model, sample, 'coverage', ['TPL', 'TPL++'])
        pd.testing.assert_frame_equal(sample, before)

    def test_parallel_matches_sequential(self, tree_model, portfolio):
        sample = portfolio.head(200)
        grid = numeric_grid(18, 90, 6)
        sequential = partial_dependence(tree_model, sample, 'ageph', grid, n_jobs=1)
        parallel = partial_dependence(tree_model, sample, 'ageph', grid, n_jobs=2)
        pd.testing.assert_frame_equal(sequential, parallel)

    def test_categorical_sweep(self, boosted_model, portfolio):
        curve = partial_dependence(boosted_model, portfolio.head(100), 'coverage', ['TPL++', 'TPL'])
        assert curve['coverage'].tolist() == ['TPL++', 'TPL']
        assert np.all(curve['prediction'] > 0)

    def test_grid_wider_than_observed_range(self, tree_model, portfolio):
        curve = partial_dependence(tree_model, portfolio.head(50), 'ageph', [5, 120])
        assert np.all(np.isfinite(curve['prediction']))


class TestGridValidation:
    """Test out-of-domain grids."""

    @pytest.mark.parametrize("grid, code", [
        ([], "GRID_EMPTY"),
        ([30, 'old'], "GRID_VALUE_NOT_NUMERIC"),
        ([30, True], "GRID_VALUE_NOT_NUMERIC"),
        ([30, float('nan')], "GRID_VALUE_NOT_NUMERIC"),
        ([30, float('inf')], "GRID_VALUE_NOT_NUMERIC"),
    ])
    def test_invalid_numeric_grid(self, age_model, three_policies, grid, code):
        with pytest.raises(InvalidGridValueError) as exc_info:
            partial_dependence(age_model, three_policies, 'ageph', grid)
        assert exc_info.value.error_code == code

    def test_unknown_level(self, boosted_model, portfolio):
        with pytest.raises(InvalidGridValueError) as exc_info:
            partial_dependence(boosted_model, portfolio.head(20), 'coverage', ['TPL', 'omnium'])
        assert exc_info.value.error_code == "GRID_VALUE_NOT_A_LEVEL"

    def test_numpy_grid(self, age_model, three_policies):
        curve = partial_dependence(age_model, three_policies, 'ageph', np.array([20.0, 40.0]))
        assert curve['ageph'].tolist() == [20.0, 40.0]

    def test_missing_sweep_feature(self, age_model, three_policies):
        with pytest.raises(MissingFeatureError) as exc_info:
            partial_dependence(age_model, three_policies, 'postcode', [1000])
        assert exc_info.value.feature == 'postcode'

    def test_missing_model_feature(self, age_model):
        with pytest.raises(MissingFeatureError):
            partial_dependence(age_model, pd.DataFrame({'ageph': [30]}), 'ageph', [40])

    def test_empty_data(self, age_model, three_policies):
        with pytest.raises(DataValidationError):
            partial_dependence(age_model, three_policies.iloc[0:0], 'ageph', [40])


class TestIndividualConditionalExpectation:
    """Test the ICE sweep."""

    def test_shape_and_labels(self, age_model, three_policies):
        data = three_policies.set_index(pd.Index([11, 12, 13]))
        ice = individual_conditional_expectation(age_model, data, 'ageph', [20, 40, 60, 80])

        assert ice.shape == (4, 3)
        assert ice.index.name == 'ageph'
        assert ice.index.tolist() == [20, 40, 60, 80]
        assert ice.columns.tolist() == [11, 12, 13]
        assert ice.loc[40, 13] == pytest.approx(0.04 + 0.02)

    def test_mean_equals_partial_dependence(self, tree_model, portfolio):
        sample = portfolio.head(150)
        grid = [18, 25, 40, 65, 90]
        ice = individual_conditional_expectation(tree_model, sample, 'ageph', grid)
        curve = partial_dependence(tree_model, sample, 'ageph', grid)
        np.testing.assert_allclose(ice.mean(axis=1).to_numpy(), curve['prediction'].to_numpy())


class TestHelpers:
    """Test data overrides and grid construction."""

    def test_with_column_keeps_categories(self, portfolio):
        modified = with_column(portfolio.head(10), 'fuel', 'diesel')
        assert (modified['fuel'] == 'diesel').all()
        assert list(modified['fuel'].cat.categories) == ['gasoline', 'diesel']
        assert modified.index.equals(portfolio.head(10).index)

    def test_with_columns(self, three_policies):
        modified = with_columns(three_policies, {'ageph': 18, 'bm': 22})
        assert modified['ageph'].tolist() == [18, 18, 18]
        assert modified['bm'].tolist() == [22, 22, 22]
        assert three_policies['ageph'].tolist() == [30, 45, 60]

    def test_numeric_grid(self):
        assert numeric_grid(18, 21) == [18, 19, 20, 21]
        assert numeric_grid(0, 1, 0.25) == [0.0, 0.25, 0.5, 0.75, 1.0]
        assert numeric_grid(5, 5) == [5]

    @pytest.mark.parametrize("args, code", [((18, 90, 0), "GRID_STEP"), ((90, 18, 1), "GRID_BOUNDS")])
    def test_invalid_numeric_grid(self, args, code):
        with pytest.raises(InvalidGridValueError) as exc_info:
            numeric_grid(*args)
        assert exc_info.value.error_code == code

    def test_grid_from_categorical(self, portfolio):
        assert grid_from_data(portfolio, 'coverage') == ['TPL', 'TPL+', 'TPL++']

    def test_grid_from_integer_feature(self, portfolio):
        grid = grid_from_data(portfolio, 'bm', resolution=50)
        assert all(isinstance(v, int) for v in grid)
        assert grid == list(range(grid[0], grid[-1] + 1))

    def test_grid_from_wide_feature(self, portfolio):
        grid = grid_from_data(portfolio, 'power', resolution=10)
        assert len(grid) == 10
        assert grid == sorted(grid)
        assert grid[0] >= portfolio['power'].min()
        assert grid[-1] <= portfolio['power'].max()


class TestPartialDependenceEngine:
    """Test the configured engine."""

    def test_subsample_is_reproducible(self, tree_model, portfolio):
        engine = PartialDependenceEngine(tree_model, PartialDependenceConfig(max_samples=100))
        first = engine.prepare(portfolio)
        second = engine.prepare(portfolio)
        assert len(first) == 100
        assert first.index.equals(second.index)

    def test_default_grid(self, tree_model, portfolio):
        engine = PartialDependenceEngine(tree_model, PartialDependenceConfig(grid_resolution=20))
        curve = engine.partial_dependence(portfolio.head(100), 'power')
        assert len(curve) == 20

    def test_ice_matches_function(self, tree_model, portfolio):
        engine = PartialDependenceEngine(tree_model)
        sample = portfolio.head(40)
        grid = [20, 60]
        pd.testing.assert_frame_equal(
            engine.individual_conditional_expectation(sample, 'ageph', grid),
            individual_conditional_expectation(tree_model, sample, 'ageph', grid)
        )

    def test_effects(self, tree_model, portfolio):
        engine = PartialDependenceEngine(tree_model, PartialDependenceConfig(max_samples=80))
        curves = engine.effects(portfolio, ['ageph', 'fuel'], grids={'ageph': [18, 40, 90]})
        assert set(curves) == {'ageph', 'fuel'}
        assert curves['ageph']['ageph'].tolist() == [18, 40, 90]
        assert curves['fuel']['fuel'].tolist() == ['gasoline', 'diesel']
