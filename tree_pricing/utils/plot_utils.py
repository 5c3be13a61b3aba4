"""Plotting utilities for interpretation and lift tables.

Every function takes the plain tables produced by the analysis functions
and returns a matplotlib figure; pass ``save_path`` to write it to disk.
"""

from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .logger import get_logger
from .exceptions import FileOperationError

logger = get_logger(__name__)

PLOT_CONFIG = {
    "figsize": (10, 6),
    "dpi": 150,
    "save_format": "png",
    "color_palette": "deep",
    "ice_alpha": 0.2,
}


def setup_plot(figsize: Optional[Tuple[int, int]] = None) -> Tuple[plt.Figure, plt.Axes]:
    """Set up a matplotlib figure with consistent styling."""
    sns.set_palette(PLOT_CONFIG["color_palette"])
    fig, ax = plt.subplots(figsize=figsize or PLOT_CONFIG["figsize"], dpi=PLOT_CONFIG["dpi"])
    return fig, ax


def save_plot(fig: plt.Figure, filepath: Union[str, Path],
              close_after_save: bool = True) -> None:
    """Save matplotlib figure to file.

    Args:
        fig: Matplotlib figure
        filepath: Output file path
        close_after_save: Whether to close figure after saving
    """
    filepath = Path(filepath)
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(filepath, dpi=PLOT_CONFIG["dpi"], bbox_inches='tight',
                    format=filepath.suffix.lstrip('.') or PLOT_CONFIG["save_format"])
    except OSError as e:
        raise FileOperationError(
            f"Failed to save plot to {filepath}",
            error_code="PLOT_SAVE_FAILED",
            context={"path": str(filepath)}
        ) from e

    logger.info(f"Saved plot to {filepath}")

    if close_after_save:
        plt.close(fig)


def _finish(fig: plt.Figure, save_path: Optional[Union[str, Path]]) -> plt.Figure:
    if save_path:
        save_plot(fig, save_path, close_after_save=False)
    return fig


def plot_importance(importance_table: pd.DataFrame, title: str = "Variable importance",
                    save_path: Optional[Union[str, Path]] = None) -> plt.Figure:
    """Horizontal bars of an ``importance_frame`` table."""
    fig, ax = setup_plot()
    ordered = importance_table.sort_values("importance")
    ax.barh(ordered["variable"].astype(str), ordered["importance"])
    ax.set_xlabel("Normalized importance")
    ax.set_title(title)
    ax.grid(True, axis="x", alpha=0.3)
    return _finish(fig, save_path)


def plot_partial_dependence(curve: pd.DataFrame, ice: Optional[pd.DataFrame] = None,
                            max_ice_lines: int = 100, title: Optional[str] = None,
                            save_path: Optional[Union[str, Path]] = None) -> plt.Figure:
    """PDP curve, optionally over a sample of ICE curves.

    Args:
        curve: Output of ``partial_dependence``
        ice: Optional output of ``individual_conditional_expectation``
        max_ice_lines: Maximum number of ICE curves drawn
        title: Plot title
        save_path: Optional path to save plot
    """
    feature = curve.columns[0]
    fig, ax = setup_plot()
    positions = np.arange(len(curve))
    categorical = not pd.api.types.is_numeric_dtype(curve[feature])
    x_values = positions if categorical else curve[feature]

    if ice is not None:
        columns = ice.columns[:max_ice_lines]
        for column in columns:
            ax.plot(x_values, ice[column].to_numpy(), color="grey",
                    alpha=PLOT_CONFIG["ice_alpha"], lw=0.8)

    ax.plot(x_values, curve["prediction"], color="darkorange", lw=2.5, label="Partial dependence")
    if categorical:
        ax.set_xticks(positions)
        ax.set_xticklabels(curve[feature].astype(str))

    ax.set_xlabel(feature)
    ax.set_ylabel("Prediction")
    ax.set_title(title or f"Partial dependence of {feature}")
    ax.legend(loc="best")
    ax.grid(True, alpha=0.3)
    return _finish(fig, save_path)


def plot_grouped_effects(table: pd.DataFrame, title: Optional[str] = None,
                         save_path: Optional[Union[str, Path]] = None) -> plt.Figure:
    """One line per group of a ``grouped_partial_dependence`` table."""
    fig, ax = setup_plot()
    grid = list(table.columns)
    numeric = all(isinstance(v, (int, float, np.number)) for v in grid)
    x_values = grid if numeric else np.arange(len(grid))

    for label, row in table.iterrows():
        ax.plot(x_values, row.to_numpy(), lw=1.8, label=str(label))

    if not numeric:
        ax.set_xticks(x_values)
        ax.set_xticklabels([str(v) for v in grid])

    ax.set_xlabel(table.columns.name or "grid value")
    ax.set_ylabel("Centred effect")
    ax.set_title(title or f"Effect by {table.index.name}")
    ax.legend(title=table.index.name, loc="best", fontsize="small")
    ax.grid(True, alpha=0.3)
    return _finish(fig, save_path)


def plot_lift(lift_table: pd.DataFrame, metrics: Sequence[str] = ("loss_ratio",),
              title: str = "Loss ratio lift",
              save_path: Optional[Union[str, Path]] = None) -> plt.Figure:
    """Bars of lift table metrics per relativity bin.

    Works for ``loss_ratio_lift`` (default) and ``double_lift`` tables
    (``metrics=('competitor_error', 'benchmark_error')``).
    """
    fig, ax = setup_plot()
    long_table = lift_table.melt(id_vars=["label"], value_vars=list(metrics),
                                 var_name="metric", value_name="value")
    sns.barplot(data=long_table, x="label", y="value", hue="metric", ax=ax)
    ax.set_xlabel("Relativity bin")
    ax.set_ylabel(", ".join(metrics))
    ax.set_title(title)
    ax.tick_params(axis="x", rotation=45)
    ax.grid(True, axis="y", alpha=0.3)
    return _finish(fig, save_path)


def plot_interactions(h_table: pd.DataFrame, top_n: int = 15,
                      title: str = "Pairwise interaction strength (H-statistic)",
                      save_path: Optional[Union[str, Path]] = None) -> plt.Figure:
    """Horizontal bars of the strongest pairs from ``pairwise_h_statistics``."""
    fig, ax = setup_plot()
    top = h_table.dropna(subset=["h_statistic"]).head(top_n).iloc[::-1]
    labels = top["feature_1"].astype(str) + " x " + top["feature_2"].astype(str)
    ax.barh(labels, top["h_statistic"])
    ax.set_xlim(0, 1)
    ax.set_xlabel("H-statistic")
    ax.set_title(title)
    ax.grid(True, axis="x", alpha=0.3)
    return _finish(fig, save_path)
