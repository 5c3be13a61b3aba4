"""Test configuration for pytest."""
import os
import sys
from pathlib import Path
from typing import Callable, List

import pytest
import pandas as pd
import numpy as np

# Add package root to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tree_pricing.config import TreeConfig, ForestConfig, BoostedConfig
from tree_pricing.models import TreeModel, BoostedModel, fit_tree, fit_forest, fit_boosted

FEATURES = ['ageph', 'bm', 'power', 'agec', 'coverage', 'fuel']


class FunctionEstimator:
    """Estimator stub whose predictions are ``fn(X)``."""

    def __init__(self, fn: Callable[[pd.DataFrame], np.ndarray]):
        self.fn = fn
        self.seen_columns: List[List[str]] = []

    def predict(self, X):
        self.seen_columns.append(list(X.columns))
        return np.asarray(self.fn(X), dtype=float)


class MarginBooster:
    """XGBoost-like stub: ``margin_fn(X)`` is the linear predictor of a log link."""

    objective = 'count:poisson'

    def __init__(self, margin_fn: Callable[[pd.DataFrame], np.ndarray],
                 n_estimators: int = 50, max_depth: int = 3):
        self.margin_fn = margin_fn
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.last_call = None

    def predict(self, X, iteration_range=None, output_margin=False):
        self.last_call = {'iteration_range': iteration_range, 'output_margin': output_margin}
        margin = np.asarray(self.margin_fn(X), dtype=float)
        return margin if output_margin else np.exp(margin)


@pytest.fixture(scope="session")
def portfolio() -> pd.DataFrame:
    """Synthetic policy-level MTPL portfolio."""
    rng = np.random.default_rng(42)
    n_policies = 800

    df = pd.DataFrame({
        'ageph': rng.integers(18, 91, n_policies),
        'bm': rng.integers(0, 23, n_policies),
        'power': rng.integers(30, 151, n_policies),
        'agec': rng.integers(0, 21, n_policies),
        'coverage': pd.Categorical(
            rng.choice(['TPL', 'TPL+', 'TPL++'], n_policies, p=[0.6, 0.3, 0.1]),
            categories=['TPL', 'TPL+', 'TPL++']
        ),
        'fuel': pd.Categorical(
            rng.choice(['gasoline', 'diesel'], n_policies, p=[0.7, 0.3]),
            categories=['gasoline', 'diesel']
        ),
        'expo': rng.uniform(0.1, 1.0, n_policies).round(3),
    })

    # Young drivers and high bonus-malus levels claim more often
    log_rate = (
        -2.2
        + 0.04 * np.maximum(30 - df['ageph'], 0)
        + 0.06 * df['bm']
        + 0.002 * (df['power'] - 60)
        + 0.2 * (df['fuel'] == 'diesel')
    )
    df['nclaims'] = rng.poisson(df['expo'] * np.exp(log_rate))
    amount = np.where(
        df['nclaims'] > 0,
        rng.gamma(shape=1.5, scale=1000.0, size=n_policies) * df['nclaims'],
        0.0
    )
    df['amount'] = amount.round(2)
    df['average'] = np.where(df['nclaims'] > 0, df['amount'] / df['nclaims'].clip(lower=1), 0.0)
    return df


@pytest.fixture(scope="session")
def tree_model(portfolio: pd.DataFrame):
    """Small Poisson regression tree fitted on the portfolio."""
    return fit_tree(portfolio, FEATURES, TreeConfig(max_depth=3, min_samples_leaf=0.05))


@pytest.fixture(scope="session")
def forest_model(portfolio: pd.DataFrame):
    """Small random forest fitted on the portfolio."""
    config = ForestConfig(n_estimators=10, max_depth=4, min_samples_leaf=0.02, n_jobs=1)
    return fit_forest(portfolio, FEATURES, config)


@pytest.fixture(scope="session")
def boosted_model(portfolio: pd.DataFrame):
    """Small Poisson XGBoost ensemble fitted on the portfolio."""
    config = BoostedConfig(n_estimators=30, max_depth=3, learning_rate=0.3, n_jobs=1)
    return fit_boosted(portfolio, FEATURES, config)


@pytest.fixture
def constant_model() -> TreeModel:
    """Tree-variant model that predicts 0.1 for every row."""
    return TreeModel(
        FunctionEstimator(lambda X: np.full(len(X), 0.1)),
        features=['ageph', 'bm'],
        name='constant'
    )


@pytest.fixture
def additive_booster() -> BoostedModel:
    """Boosted stub without interactions on the link scale."""
    def margin(X):
        return -2.0 + 0.01 * X['ageph'] + 0.05 * X['bm'] + 0.001 * X['power']

    return BoostedModel(MarginBooster(margin), features=['ageph', 'bm', 'power'], name='additive')


@pytest.fixture
def interacting_booster() -> BoostedModel:
    """Boosted stub with an ageph x bm interaction on the link scale."""
    def margin(X):
        return -2.0 + 0.01 * X['ageph'] + 0.05 * X['bm'] + 0.002 * X['ageph'] * X['bm']

    return BoostedModel(MarginBooster(margin), features=['ageph', 'bm', 'power'], name='interacting')


@pytest.fixture
def premium_portfolio() -> pd.DataFrame:
    """Test portfolio with losses, exposure and two candidate premiums."""
    rng = np.random.default_rng(7)
    n_policies = 500
    risk = rng.gamma(shape=2.0, scale=50.0, size=n_policies)

    return pd.DataFrame({
        'expo': rng.uniform(0.2, 1.0, n_policies),
        'amount': rng.poisson(1.0, n_policies) * risk,
        'benchmark': np.full(n_policies, 100.0),
        'competitor': 0.5 * risk + 50.0,
    })


@pytest.fixture(autouse=True)
def cleanup_environment():
    """Clean up environment variables after each test."""
    original_env = dict(os.environ)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Directory for files written by a test."""
    path = tmp_path / "output"
    path.mkdir()
    return path


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "config: mark test as configuration-related"
    )
    config.addinivalue_line(
        "markers", "models: mark test as model-related"
    )
    config.addinivalue_line(
        "markers", "explainability: mark test as interpretation-related"
    )
    config.addinivalue_line(
        "markers", "evaluation: mark test as model comparison-related"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their file names."""
    for item in items:
        path = str(item.path)
        if "config" in path:
            item.add_marker(pytest.mark.config)
        elif any(key in path for key in ("prediction", "importance", "fitting", "variants")):
            item.add_marker(pytest.mark.models)
        elif any(key in path for key in ("partial_dependence", "grouped", "interaction")):
            item.add_marker(pytest.mark.explainability)
        elif any(key in path for key in ("deviance", "lift", "gini")):
            item.add_marker(pytest.mark.evaluation)
