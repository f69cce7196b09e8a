"""Module for autocorrelation and stationarity diagnostics.

This module provides sample ACF/PACF estimates used to inspect a series before choosing
differencing and ARMA orders, plus ADF/KPSS stationarity tests. The forecaster itself never
branches on these values; they feed plots and reports.
"""

import logging
import warnings

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.stattools import acf as sm_acf
from statsmodels.tsa.stattools import acovf, adfuller, kpss, levinson_durbin

from models.errors import InsufficientDataError, InvalidLagError
from models.types import DiagnosticResult

logger = logging.getLogger(__name__)


def _prepare(series: pd.Series, max_lag: int) -> np.ndarray:
    values = np.asarray(series, dtype=float)
    if values.ndim != 1:
        raise ValueError("series must be one-dimensional.")
    if np.any(~np.isfinite(values)):
        raise ValueError("series cannot contain NaN or infinite values.")
    if isinstance(max_lag, bool) or not isinstance(max_lag, (int, np.integer)) or max_lag < 1:
        raise InvalidLagError(f"max_lag must be a positive integer, got {max_lag!r}.")
    if max_lag >= len(values):
        raise InvalidLagError(f"max_lag ({max_lag}) must be smaller than the series length ({len(values)}).")
    return values


def _is_constant(values: np.ndarray) -> bool:
    return bool(np.ptp(values) == 0)


def acf(series: pd.Series, max_lag: int) -> np.ndarray:
    """
    Sample autocorrelation at lags 1..max_lag.

    Uses the biased autocovariance estimator, which keeps every coefficient in [-1, 1].
    The autocorrelation of a constant series is undefined: all values are NaN.

    Args:
        series: Observations.
        max_lag: Largest lag; must be smaller than the series length.

    Returns:
        Array of max_lag coefficients (lag 0 excluded).

    Raises:
        InvalidLagError: If max_lag < 1 or max_lag >= len(series).
    """
    values = _prepare(series, max_lag)
    if _is_constant(values):
        logger.warning("ACF of a constant series is undefined; returning NaN.")
        return np.full(max_lag, np.nan)
    coefficients = sm_acf(values, nlags=max_lag, adjusted=False, fft=True)
    return np.clip(coefficients[1:], -1.0, 1.0)


def pacf(series: pd.Series, max_lag: int) -> np.ndarray:
    """
    Sample partial autocorrelation at lags 1..max_lag via the Levinson-Durbin recursion.

    Args:
        series: Observations.
        max_lag: Largest lag; must be smaller than the series length.

    Returns:
        Array of max_lag partial autocorrelations (lag 0 excluded). NaN for a constant series.

    Raises:
        InvalidLagError: If max_lag < 1 or max_lag >= len(series).
    """
    values = _prepare(series, max_lag)
    if _is_constant(values):
        logger.warning("PACF of a constant series is undefined; returning NaN.")
        return np.full(max_lag, np.nan)
    autocov = acovf(values, adjusted=False, demean=True, fft=True, nlag=max_lag)
    _, _, partial, _, _ = levinson_durbin(autocov, nlags=max_lag, isacov=True)
    return np.clip(np.asarray(partial)[1:max_lag + 1], -1.0, 1.0)


def default_max_lag(n_obs: int, seasonal_period: int = 1) -> int:
    """Number of lags to display: max(10, 3 * seasonal period), capped at n_obs - 1."""
    if n_obs < 2:
        raise InsufficientDataError("At least two observations are needed to compute autocorrelations.")
    return int(min(max(10, 3 * seasonal_period), n_obs - 1))


def stationarity_test(series: pd.Series, method: str = "adf") -> DiagnosticResult:
    """
    Run an Augmented Dickey-Fuller or KPSS stationarity test.

    ADF has a unit root as its null (small p-value suggests stationarity); KPSS has
    stationarity as its null (small p-value suggests differencing is needed).

    Args:
        series: Observations.
        method: 'adf' or 'kpss'. Defaults to 'adf'.

    Returns:
        DiagnosticResult with the test statistic, p-value and lag count used.

    Raises:
        ValueError: If the method is unknown or the series is constant.
        InsufficientDataError: If the series has fewer than 10 observations.
    """
    if method not in ("adf", "kpss"):
        raise ValueError("method must be 'adf' or 'kpss'.")
    values = np.asarray(series, dtype=float)
    if len(values) < 10:
        raise InsufficientDataError("Stationarity tests need at least 10 observations.")
    if _is_constant(values):
        raise ValueError("Stationarity tests are undefined for a constant series.")

    if method == "adf":
        statistic, p_value, used_lag, nobs, _, _ = adfuller(values, autolag="AIC")
        df = int(nobs)
    else:
        # KPSS p-values are interpolated from a table and clipped at its bounds
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", InterpolationWarning)
            statistic, p_value, used_lag, _ = kpss(values, regression="c", nlags="auto")
        df = len(values)
    logger.debug(f"{method.upper()} statistic={statistic:.4f}, p-value={p_value:.4f}, lags={used_lag}")
    return DiagnosticResult(
        statistic=float(statistic), p_value=float(p_value), lag=int(used_lag), df=df, test=method
    )
