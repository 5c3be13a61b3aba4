# tree_pricing/data/portfolio.py
"""Loading and partitioning of insurance portfolio data.

A portfolio is a ``pandas.DataFrame`` with one row per policy. Rating
factors are ordinary columns; the claim columns ``nclaims`` (claim
count), ``expo`` (exposure in policy years), ``amount`` (total claim
amount) and ``average`` (amount per claim) drive frequency and severity
modelling.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from ..utils.logger import get_logger
from ..utils.exceptions import (
    DataValidationError,
    FileOperationError,
    MissingFeatureError,
    handle_and_reraise,
    validate_parameter,
    create_error_context
)

logger = get_logger(__name__)

CLAIM_COLUMNS: Tuple[str, ...] = ("nclaims", "expo", "amount", "average")

# Rating factors of the Belgian MTPL portfolio stored as levels
DEFAULT_CATEGORICAL: Tuple[str, ...] = ("coverage", "fuel", "sex", "fleet", "use")


def require_columns(data: pd.DataFrame, columns: Iterable[str]) -> None:
    """Raise MissingFeatureError for the first column absent from ``data``.

    Args:
        data: Dataset to check
        columns: Column names that must be present

    Raises:
        MissingFeatureError: Naming the first missing column
    """
    for column in columns:
        if column not in data.columns:
            raise MissingFeatureError(
                column,
                context=create_error_context(feature=column, available=list(data.columns))
            )


def load_portfolio(
    path: Union[str, Path],
    categorical: Optional[Sequence[str]] = None,
    required: Sequence[str] = ("nclaims", "expo"),
    **read_kwargs
) -> pd.DataFrame:
    """Load a policy-level portfolio from CSV.

    Args:
        path: CSV file path
        categorical: Columns to cast to ``category`` dtype; defaults to the
            MTPL rating factors present in the file
        required: Columns the file must contain
        **read_kwargs: Extra arguments for ``pandas.read_csv``

    Returns:
        Portfolio DataFrame with an ``average`` column when claim amounts
        are available

    Raises:
        FileOperationError: If the file cannot be read
        MissingFeatureError: If a required column is absent
    """
    path = Path(path)
    logger.info(f"Loading portfolio from {path}")

    try:
        data = pd.read_csv(path, **read_kwargs)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        handle_and_reraise(
            e, FileOperationError,
            f"Failed to read portfolio file {path}",
            error_code="PORTFOLIO_READ_FAILED",
            context=create_error_context(path=str(path))
        )

    require_columns(data, required)

    if categorical is None:
        categorical = [col for col in DEFAULT_CATEGORICAL if col in data.columns]
    require_columns(data, categorical)
    for column in categorical:
        data[column] = data[column].astype("category")

    if "average" not in data.columns and {"amount", "nclaims"} <= set(data.columns):
        with np.errstate(divide="ignore", invalid="ignore"):
            data["average"] = np.where(data["nclaims"] > 0, data["amount"] / data["nclaims"], 0.0)

    logger.info(f"Loaded {len(data):,} policies with {data.shape[1]} columns")
    return data


def sample_rows(data: pd.DataFrame, n: int, seed: int) -> pd.DataFrame:
    """Draw a reproducible subsample of rows.

    The seed is an explicit argument so the selection never depends on
    global random state.

    Args:
        data: Dataset to sample from
        n: Number of rows to draw (without replacement)
        seed: Random seed

    Returns:
        Copy of the sampled rows in their original order
    """
    validate_parameter("n", n, min_value=1)

    if n >= len(data):
        return data.copy()

    rng = np.random.default_rng(seed)
    positions = np.sort(rng.choice(len(data), size=n, replace=False))
    logger.debug(f"Sampled {n:,} of {len(data):,} rows with seed {seed}")
    return data.iloc[positions].copy()


def split_portfolio(
    data: pd.DataFrame,
    test_size: float = 0.2,
    seed: int = 54321,
    stratify_claims: bool = True
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Partition a portfolio into training and held-out test sets.

    Args:
        data: Portfolio to split
        test_size: Fraction of policies in the test set
        seed: Random seed
        stratify_claims: Stratify on whether a policy has claims

    Returns:
        Tuple of (train, test) DataFrames
    """
    validate_parameter("test_size", test_size, min_value=0.0, max_value=1.0)

    if len(data) < 2:
        raise DataValidationError(
            "Cannot split a portfolio with fewer than two policies",
            error_code="PORTFOLIO_TOO_SMALL",
            context={"n_rows": len(data)}
        )

    stratify = None
    if stratify_claims and "nclaims" in data.columns:
        has_claim = (data["nclaims"] > 0).astype(int)
        # Stratification needs at least two members per class
        if has_claim.value_counts().min() >= 2 and has_claim.nunique() > 1:
            stratify = has_claim

    train, test = train_test_split(data, test_size=test_size, random_state=seed, stratify=stratify)
    logger.info(f"Split portfolio: {len(train):,} train / {len(test):,} test policies")
    return train, test


def severity_subset(data: pd.DataFrame) -> pd.DataFrame:
    """Return the policies with at least one claim."""
    require_columns(data, ["nclaims"])
    return data.loc[data["nclaims"] > 0].copy()


def rating_factors(data: pd.DataFrame, exclude: Sequence[str] = CLAIM_COLUMNS) -> List[str]:
    """List the columns that are not claim columns."""
    return [col for col in data.columns if col not in exclude]
