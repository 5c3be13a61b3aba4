"""Unit tests for portfolio loading, sampling and splitting."""
import pytest
import numpy as np
import pandas as pd
from pathlib import Path

from tree_pricing.data import (
    load_portfolio,
    require_columns,
    sample_rows,
    split_portfolio,
    severity_subset,
    rating_factors
)
from tree_pricing.utils.exceptions import (
    ConfigurationError,
    DataValidationError,
    FileOperationError,
    MissingFeatureError
)


@pytest.fixture
def portfolio_csv(tmp_path: Path) -> Path:
    """Small MTPL-style CSV file without an average column."""
    csv_file = tmp_path / "mtpl.csv"
    pd.DataFrame({
        'id': [1, 2, 3, 4],
        'ageph': [25, 40, 58, 33],
        'coverage': ['TPL', 'TPL+', 'TPL', 'TPL++'],
        'fuel': ['diesel', 'gasoline', 'gasoline', 'diesel'],
        'expo': [1.0, 0.5, 1.0, 0.25],
        'nclaims': [0, 1, 2, 0],
        'amount': [0.0, 800.0, 1500.0, 0.0],
    }).to_csv(csv_file, index=False)
    return csv_file


class TestLoadPortfolio:
    """Test CSV loading."""

    def test_load_casts_rating_factors(self, portfolio_csv: Path):
        data = load_portfolio(portfolio_csv)
        assert isinstance(data['coverage'].dtype, pd.CategoricalDtype)
        assert isinstance(data['fuel'].dtype, pd.CategoricalDtype)
        assert pd.api.types.is_integer_dtype(data['ageph'])

    def test_average_is_derived(self, portfolio_csv: Path):
        data = load_portfolio(portfolio_csv)
        np.testing.assert_allclose(data['average'], [0.0, 800.0, 750.0, 0.0])

    def test_explicit_categorical(self, portfolio_csv: Path):
        data = load_portfolio(portfolio_csv, categorical=['fuel'])
        assert isinstance(data['fuel'].dtype, pd.CategoricalDtype)
        assert not isinstance(data['coverage'].dtype, pd.CategoricalDtype)

    def test_missing_required_column(self, portfolio_csv: Path):
        with pytest.raises(MissingFeatureError) as exc_info:
            load_portfolio(portfolio_csv, required=('nclaims', 'expo', 'postcode'))
        assert exc_info.value.feature == 'postcode'

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileOperationError):
            load_portfolio(tmp_path / "missing.csv")


class TestRequireColumns:
    """Test column presence checks."""

    def test_reports_first_missing(self):
        data = pd.DataFrame({'ageph': [30]})
        with pytest.raises(MissingFeatureError) as exc_info:
            require_columns(data, ['ageph', 'bm', 'power'])
        assert exc_info.value.feature == 'bm'

    def test_present_columns(self):
        require_columns(pd.DataFrame({'ageph': [30], 'bm': [1]}), ['bm', 'ageph'])


class TestSampleRows:
    """Test reproducible subsampling."""

    def test_same_seed_same_rows(self, portfolio: pd.DataFrame):
        first = sample_rows(portfolio, 100, seed=54321)
        second = sample_rows(portfolio, 100, seed=54321)
        pd.testing.assert_frame_equal(first, second)

    def test_different_seed_different_rows(self, portfolio: pd.DataFrame):
        first = sample_rows(portfolio, 100, seed=1)
        second = sample_rows(portfolio, 100, seed=2)
        assert not first.index.equals(second.index)

    def test_rows_keep_original_order(self, portfolio: pd.DataFrame):
        sample = sample_rows(portfolio, 50, seed=3)
        assert len(sample) == 50
        assert sample.index.is_monotonic_increasing
        assert sample.index.is_unique

    def test_oversized_request_returns_copy(self, portfolio: pd.DataFrame):
        sample = sample_rows(portfolio, len(portfolio) + 10, seed=3)
        pd.testing.assert_frame_equal(sample, portfolio)
        assert sample is not portfolio

    def test_invalid_size(self, portfolio: pd.DataFrame):
        with pytest.raises(ConfigurationError):
            sample_rows(portfolio, 0, seed=3)


class TestSplitPortfolio:
    """Test train/test partitioning."""

    def test_split_sizes(self, portfolio: pd.DataFrame):
        train, test = split_portfolio(portfolio, test_size=0.25, seed=54321)
        assert len(train) + len(test) == len(portfolio)
        assert len(test) == 200
        assert set(train.index).isdisjoint(test.index)

    def test_split_is_reproducible(self, portfolio: pd.DataFrame):
        first_train, _ = split_portfolio(portfolio, seed=10)
        second_train, _ = split_portfolio(portfolio, seed=10)
        assert first_train.index.equals(second_train.index)

    def test_split_too_small(self):
        with pytest.raises(DataValidationError):
            split_portfolio(pd.DataFrame({'nclaims': [0]}))


class TestSubsets:
    """Test severity subsets and rating factor listing."""

    def test_severity_subset(self, portfolio: pd.DataFrame):
        severity = severity_subset(portfolio)
        assert (severity['nclaims'] > 0).all()
        assert len(severity) == int((portfolio['nclaims'] > 0).sum())

    def test_rating_factors(self, portfolio: pd.DataFrame):
        factors = rating_factors(portfolio)
        assert factors == ['ageph', 'bm', 'power', 'agec', 'coverage', 'fuel']
