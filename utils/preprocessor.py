"""Module for stationarity and variance-stabilizing transformations of time series.

This module provides regular/seasonal differencing with its exact inverse, and the
Box-Cox power transform used by the seasonal ARIMA fitter. Every operation returns a
new series; inputs are never modified in place.
"""

import logging
from typing import Optional, Union

import numpy as np
import pandas as pd
from scipy import optimize
from scipy.special import boxcox, inv_boxcox

from models.errors import (
    InsufficientDataError,
    InvalidLagError,
    InvalidOrderError,
    InvalidTransformError,
)

logger = logging.getLogger(__name__)


def _validate_difference_args(order: int, lag: int) -> None:
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)) or order < 0:
        raise InvalidOrderError(f"Differencing order must be a non-negative integer, got {order!r}.")
    if isinstance(lag, bool) or not isinstance(lag, (int, np.integer)) or lag < 1:
        raise InvalidLagError(f"Differencing lag must be a positive integer, got {lag!r}.")


def difference(series: pd.Series, order: int = 1, lag: int = 1) -> pd.Series:
    """
    Apply first differences at step `lag`, `order` times.

    Use lag=1 for regular differencing and lag=s (e.g., 12) for seasonal differencing;
    chain calls to combine both.

    Args:
        series: Series to difference.
        order: Number of times to difference. Defaults to 1.
        lag: Step size of each difference. Defaults to 1.

    Returns:
        New series shorter by order * lag observations; its index starts order * lag
        periods after the input index.

    Raises:
        InvalidOrderError: If order is negative.
        InvalidLagError: If lag is smaller than 1.
        InsufficientDataError: If the series has no more than order * lag observations.
    """
    _validate_difference_args(order, lag)
    loss = order * lag
    if len(series) <= loss:
        raise InsufficientDataError(
            f"Series length ({len(series)}) must exceed order * lag ({order} * {lag} = {loss})."
        )

    result = series.astype(float).copy()
    for _ in range(order):
        result = result.diff(periods=lag).iloc[lag:]
    return result


def inverse_difference(differenced: pd.Series, initial: pd.Series, order: int = 1, lag: int = 1) -> pd.Series:
    """
    Reconstruct a series from its differences and the observations lost by differencing.

    Each level is recovered as x[t] = y[t] + x[t - lag], i.e. a cumulative sum per phase of
    the lag seeded with the first `lag` values of that level.

    Args:
        differenced: Output of `difference(original, order, lag)`.
        initial: The first order * lag observations of the original series.
        order: Differencing order used. Defaults to 1.
        lag: Differencing lag used. Defaults to 1.

    Returns:
        The reconstructed original series, indexed by initial.index followed by differenced.index.

    Raises:
        InvalidOrderError: If order is negative.
        InvalidLagError: If lag is smaller than 1.
        InsufficientDataError: If initial does not hold exactly order * lag observations.
    """
    _validate_difference_args(order, lag)
    if order == 0:
        return differenced.astype(float).copy()
    if len(initial) != order * lag:
        raise InsufficientDataError(
            f"initial must contain exactly order * lag = {order * lag} observations, got {len(initial)}."
        )

    # levels[k] holds the head of the k-times differenced series
    levels = [initial.to_numpy(dtype=float)]
    for _ in range(1, order):
        previous = levels[-1]
        levels.append(previous[lag:] - previous[:-lag])

    rebuilt = differenced.to_numpy(dtype=float)
    for k in range(order, 0, -1):
        seed = levels[k - 1][:lag]
        level = np.empty(len(rebuilt) + lag)
        level[:lag] = seed
        for phase in range(lag):
            level[lag + phase::lag] = seed[phase] + np.cumsum(rebuilt[phase::lag])
        rebuilt = level

    index = initial.index.append(differenced.index)
    return pd.Series(rebuilt, index=index, name=differenced.name)


def guerrero_lambda(values: np.ndarray, period: int, lower: float = -1.0, upper: float = 2.0) -> float:
    """
    Choose the Box-Cox lambda that stabilizes the variance across seasonal subseries (Guerrero, 1993).

    The series is cut into consecutive blocks of `period` observations (the oldest incomplete
    block is dropped). For each block the ratio sd / mean**(1 - lambda) is computed, and the
    lambda minimizing the coefficient of variation of these ratios is returned.

    Args:
        values: Strictly positive observations.
        period: Block length; the seasonal period, at least 2.
        lower: Smallest lambda considered. Defaults to -1.
        upper: Largest lambda considered. Defaults to 2.

    Returns:
        The selected lambda, within [lower, upper].

    Raises:
        InsufficientDataError: If fewer than two complete blocks are available.
        InvalidTransformError: If every block is constant.
    """
    period = max(2, int(period))
    n_blocks = len(values) // period
    if n_blocks < 2:
        raise InsufficientDataError(
            f"Estimating the Box-Cox lambda needs at least {2 * period} observations, got {len(values)}."
        )
    blocks = np.asarray(values, dtype=float)[len(values) - n_blocks * period:].reshape(n_blocks, period)
    means = blocks.mean(axis=1)
    sds = blocks.std(axis=1, ddof=1)
    if not np.any(sds > 0):
        raise InvalidTransformError("Cannot estimate Box-Cox lambda: every seasonal block is constant.")

    def coefficient_of_variation(lmbda: float) -> float:
        ratios = sds / means ** (1 - lmbda)
        return float(np.std(ratios, ddof=1) / np.mean(ratios))

    result = optimize.minimize_scalar(coefficient_of_variation, bounds=(lower, upper), method="bounded")
    return float(result.x)


class BoxCoxTransformer:
    """
    Box-Cox power transform with a fixed or estimated lambda.

    With lmbda="auto" the parameter is chosen by Guerrero's method: the lambda in [-1, 2]
    that makes the spread of each seasonal block proportional to a constant, which is what
    the ARIMA error model assumes after the transform. "log" is shorthand for lambda = 0.

    Attributes:
        lmbda: The transform parameter once known (after `fit` for "auto").
    """

    def __init__(self, lmbda: Union[str, float] = "auto") -> None:
        if isinstance(lmbda, str):
            if lmbda not in ("auto", "log"):
                raise InvalidTransformError(f"Unknown Box-Cox lambda '{lmbda}'. Use 'auto', 'log' or a number.")
            self.mode = lmbda
            self.lmbda: Optional[float] = 0.0 if lmbda == "log" else None
        elif isinstance(lmbda, (int, float, np.floating)) and not isinstance(lmbda, bool) and np.isfinite(lmbda):
            self.mode = "fixed"
            self.lmbda = float(lmbda)
        else:
            raise InvalidTransformError(f"Box-Cox lambda must be 'auto', 'log' or a finite number, got {lmbda!r}.")

    @staticmethod
    def _check_positive(values: np.ndarray) -> None:
        if np.any(values <= 0):
            raise InvalidTransformError("Box-Cox transform requires strictly positive values.")

    def fit(self, series: pd.Series, period: int = 2) -> "BoxCoxTransformer":
        """
        Estimate lambda when in "auto" mode.

        Args:
            series: Training observations (strictly positive).
            period: Seasonal period used to form the blocks. Defaults to 2 for non-seasonal data.

        Returns:
            The transformer itself.

        Raises:
            InvalidTransformError: If the series contains non-positive values or is constant.
            InsufficientDataError: If the series holds fewer than two blocks of `period` observations.
        """
        values = np.asarray(series, dtype=float)
        self._check_positive(values)
        if self.mode == "auto":
            if np.ptp(values) == 0:
                raise InvalidTransformError("Cannot estimate Box-Cox lambda for a constant series.")
            self.lmbda = guerrero_lambda(values, period)
            logger.info(f"Estimated Box-Cox lambda={self.lmbda:.4f} by Guerrero's method (period={max(2, int(period))})")
        return self

    def transform(self, series: pd.Series) -> pd.Series:
        if self.lmbda is None:
            raise RuntimeError("BoxCoxTransformer has not been fitted yet.")
        values = np.asarray(series, dtype=float)
        self._check_positive(values)
        return pd.Series(boxcox(values, self.lmbda), index=series.index, name=series.name)

    def fit_transform(self, series: pd.Series, period: int = 2) -> pd.Series:
        return self.fit(series, period).transform(series)

    def inverse_transform(self, values: Union[np.ndarray, pd.Series]) -> Union[np.ndarray, pd.Series]:
        """Map transformed values back to the original scale. Out-of-domain values become NaN."""
        if self.lmbda is None:
            raise RuntimeError("BoxCoxTransformer has not been fitted yet.")
        if isinstance(values, pd.Series):
            return pd.Series(inv_boxcox(values.to_numpy(dtype=float), self.lmbda), index=values.index, name=values.name)
        return inv_boxcox(np.asarray(values, dtype=float), self.lmbda)


def resolve_transform(transform: Union[None, str, float, BoxCoxTransformer]) -> Optional[BoxCoxTransformer]:
    """
    Turn a configuration value into a transformer.

    Args:
        transform: None or "none" for no transform, "auto", "log", a numeric lambda,
            or an existing BoxCoxTransformer.

    Returns:
        A BoxCoxTransformer, or None when no transform is requested.

    Raises:
        InvalidTransformError: If the value is not recognized.
    """
    if transform is None or (isinstance(transform, str) and transform == "none"):
        return None
    if isinstance(transform, BoxCoxTransformer):
        return transform
    return BoxCoxTransformer(transform)
