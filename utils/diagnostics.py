"""Module for residual diagnostics of fitted forecasting models.

Provides the Ljung-Box portmanteau test used to check whether model residuals are
indistinguishable from white noise.
"""

import logging

import numpy as np
import pandas as pd
from statsmodels.stats.diagnostic import acorr_ljungbox

from models.errors import InsufficientDataError, InvalidLagError
from models.types import DiagnosticResult

logger = logging.getLogger(__name__)


def ljung_box(residuals: pd.Series, lag: int, fitted_param_count: int = 0) -> DiagnosticResult:
    """
    Ljung-Box Q test on the first `lag` residual autocorrelations.

    The chi-squared reference distribution has lag - fitted_param_count degrees of freedom.
    A p-value above the chosen significance (conventionally 0.05) means the white-noise
    hypothesis is not rejected; interpreting it is left to the caller.

    Args:
        residuals: Model residuals.
        lag: Number of autocorrelation lags in the statistic.
        fitted_param_count: Number of estimated ARMA coefficients. Defaults to 0.

    Returns:
        DiagnosticResult with the Q statistic, p-value, lag and degrees of freedom.

    Raises:
        ValueError: If residuals contain NaN/infinite values or fitted_param_count is negative.
        InvalidLagError: If lag < 1 or lag <= fitted_param_count.
        InsufficientDataError: If lag exceeds the number of residuals.
    """
    values = np.asarray(residuals, dtype=float)
    if np.any(~np.isfinite(values)):
        raise ValueError("residuals cannot contain NaN or infinite values.")
    if isinstance(lag, bool) or not isinstance(lag, (int, np.integer)) or lag < 1:
        raise InvalidLagError(f"lag must be a positive integer, got {lag!r}.")
    if not isinstance(fitted_param_count, (int, np.integer)) or fitted_param_count < 0:
        raise ValueError("fitted_param_count must be a non-negative integer.")
    if lag > len(values):
        raise InsufficientDataError(f"lag ({lag}) exceeds the number of residuals ({len(values)}).")
    if lag <= fitted_param_count:
        raise InvalidLagError(
            f"lag ({lag}) must exceed the number of fitted parameters ({fitted_param_count}) "
            "to leave positive degrees of freedom."
        )

    table = acorr_ljungbox(values, lags=[lag], model_df=fitted_param_count, return_df=True)
    statistic = float(table["lb_stat"].iloc[0])
    p_value = float(table["lb_pvalue"].iloc[0])
    df = lag - fitted_param_count
    logger.debug(f"Ljung-Box Q*={statistic:.4f}, df={df}, p-value={p_value:.4f} (lag={lag})")
    return DiagnosticResult(statistic=statistic, p_value=p_value, lag=lag, df=df, test="ljung_box")


def default_ljung_box_lag(n_obs: int, seasonal_period: int = 0) -> int:
    """
    Conventional lag for residual checks: min(2s, n/5) for seasonal data, min(10, n/5) otherwise.

    Args:
        n_obs: Number of residuals.
        seasonal_period: Seasonal period, 0 or 1 for non-seasonal models.

    Returns:
        Lag count, at least 1.
    """
    base = 2 * seasonal_period if seasonal_period > 1 else 10
    return max(1, min(base, n_obs // 5))
