"""Smoke tests for the plotting utilities."""
import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import pytest
from pathlib import Path

from tree_pricing.utils.plot_utils import (
    plot_importance,
    plot_partial_dependence,
    plot_grouped_effects,
    plot_lift,
    plot_interactions,
    save_plot
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


class TestPlots:
    """Each plot returns a figure and can be written to disk."""

    def test_importance(self, output_dir: Path):
        table = pd.DataFrame({'variable': ['bm', 'ageph'], 'raw_score': [3.0, 1.0], 'importance': [0.75, 0.25]})
        path = output_dir / "importance.png"
        fig = plot_importance(table, save_path=path)
        assert isinstance(fig, plt.Figure)
        assert path.exists()

    def test_partial_dependence_with_ice(self):
        curve = pd.DataFrame({'ageph': [18, 50, 90], 'prediction': [0.2, 0.12, 0.1]})
        ice = pd.DataFrame([[0.25, 0.15], [0.13, 0.11], [0.11, 0.09]],
                           index=pd.Index([18, 50, 90], name='ageph'), columns=[0, 1])
        fig = plot_partial_dependence(curve, ice=ice)
        assert fig.axes[0].get_xlabel() == 'ageph'

    def test_categorical_partial_dependence(self):
        curve = pd.DataFrame({'coverage': ['TPL', 'TPL+', 'TPL++'], 'prediction': [0.14, 0.12, 0.11]})
        fig = plot_partial_dependence(curve)
        labels = [t.get_text() for t in fig.axes[0].get_xticklabels()]
        assert labels == ['TPL', 'TPL+', 'TPL++']

    def test_grouped_effects(self):
        table = pd.DataFrame([[0.0, 0.1], [0.0, 0.3]],
                             index=pd.Index(['[0, 5]', '[6, 22]'], name='bm'),
                             columns=pd.Index([18, 90], name='ageph'))
        fig = plot_grouped_effects(table)
        assert len(fig.axes[0].get_lines()) == 2

    def test_lift(self):
        table = pd.DataFrame({
            'bin': [1, 2],
            'label': ['[0.90, 0.90]', '[1.10, 1.10]'],
            'competitor_error': [0.8, -0.27],
            'benchmark_error': [1.0, -0.33],
        })
        fig = plot_lift(table, metrics=('competitor_error', 'benchmark_error'), title="Double lift")
        assert fig.axes[0].get_title() == "Double lift"

    def test_interactions(self):
        table = pd.DataFrame({
            'feature_1': ['ageph', 'bm', 'power'],
            'feature_2': ['bm', 'power', 'agec'],
            'h_statistic': [0.3, 0.05, float('nan')],
        })
        fig = plot_interactions(table)
        assert len(fig.axes[0].patches) == 2

    def test_save_plot_creates_directories(self, output_dir: Path):
        fig, ax = plt.subplots()
        path = output_dir / "nested" / "figure.png"
        save_plot(fig, path)
        assert path.exists()
