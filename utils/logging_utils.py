"""Module for logging model fitting and diagnostic events.

This module provides functions to log the start, success and failure of a seasonal ARIMA
fit and the outcome of residual checks, so every forecaster reports in the same format.
"""

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def log_fit_start(model_name: str, order: Any, n_obs: int) -> None:
    """
    Log the start of a model fit.

    Args:
        model_name: Name of the model (e.g., 'sarima').
        order: Model order, logged through its string form.
        n_obs: Number of training observations.

    Raises:
        ValueError: If model_name is empty or n_obs is not positive.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(n_obs, int) or n_obs < 1:
        raise ValueError("n_obs must be a positive integer.")

    logger.info(f"[{model_name}] Fitting {order} on {n_obs} observations")


def log_fit_success(model_name: str, aic: float, n_iter: int) -> None:
    """
    Log the successful completion of a model fit.

    Args:
        model_name: Name of the model.
        aic: Akaike information criterion of the fitted model.
        n_iter: Number of optimizer iterations used.

    Raises:
        ValueError: If model_name is empty, aic is not a number, or n_iter is negative.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if isinstance(aic, bool) or not isinstance(aic, (int, float)):
        raise ValueError("aic must be a number.")
    if not isinstance(n_iter, int) or n_iter < 0:
        raise ValueError("n_iter must be a non-negative integer.")

    logger.info(f"[{model_name}] Fit converged after {n_iter} iterations. AIC: {float(aic):.4f}")


def log_fit_failure(model_name: str, model_params: Dict, exception: Exception) -> None:
    """
    Log a failed model fit.

    Args:
        model_name: Name of the model.
        model_params: Parameters used for the fit.
        exception: Exception that caused the failure.

    Raises:
        ValueError: If model_name is empty or model_params is not a dictionary.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(model_params, Dict):
        raise ValueError("model_params must be a dictionary.")

    logger.error(f"[{model_name}] Fit failed with model_params={model_params}: {str(exception)}")


def log_diagnostic(model_name: str, statistic: float, p_value: float, lag: int, significance: float = 0.05) -> None:
    """
    Log a Ljung-Box residual check and its interpretation.

    Args:
        model_name: Name of the model.
        statistic: Q statistic.
        p_value: p-value of the test.
        lag: Number of lags tested.
        significance: Test level. Defaults to 0.05.

    Raises:
        ValueError: If model_name is empty, p_value or significance lie outside [0, 1], or lag is not positive.
    """
    if not model_name:
        raise ValueError("model_name cannot be empty.")
    if not isinstance(p_value, (int, float)) or not 0.0 <= p_value <= 1.0:
        raise ValueError("p_value must be a number in [0, 1].")
    if not isinstance(lag, int) or lag < 1:
        raise ValueError("lag must be a positive integer.")
    if not 0.0 < significance < 1.0:
        raise ValueError("significance must be in (0, 1).")

    verdict = "consistent with white noise" if p_value > significance else "autocorrelated"
    message = (
        f"[{model_name}] Ljung-Box Q*={float(statistic):.4f}, lag={lag}, p-value={float(p_value):.4f}: "
        f"residuals {verdict}"
    )
    if p_value > significance:
        logger.info(message)
    else:
        logger.warning(message)
