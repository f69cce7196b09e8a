"""Module for projecting fitted seasonal ARIMA models forward.

The state-space forecast recursion supplies the point forecasts and forecast-error
variances on the model scale. Normal prediction intervals are built there and mapped back
through the inverse Box-Cox transform when one was applied at fit time, which makes the
bounds asymmetric around the point forecast.
"""

import logging

import numpy as np
import pandas as pd
from scipy import stats
from scipy.special import inv_boxcox

from models.errors import BackTransformError
from models.types import FittedModel, Forecast
from utils.data_utils import future_index

logger = logging.getLogger(__name__)


def _validate_forecast_args(horizon: int, confidence_level: float) -> None:
    if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)):
        raise ValueError(f"horizon must be an integer, got {horizon!r}.")
    if horizon < 1:
        raise ValueError("horizon must be positive.")
    if isinstance(confidence_level, bool) or not isinstance(confidence_level, (int, float, np.floating)):
        raise ValueError(f"confidence_level must be a number, got {confidence_level!r}.")
    if not 0.0 < confidence_level < 1.0:
        raise ValueError("confidence_level must be in (0, 1).")


def _bias_adjusted_mean(mean: np.ndarray, variance: np.ndarray, lmbda: float) -> np.ndarray:
    """Back-transformed mean of a normal variable, second-order Taylor approximation."""
    if lmbda == 0:
        return np.exp(mean) * (1 + variance / 2)
    base = lmbda * mean + 1
    return inv_boxcox(mean, lmbda) * (1 + variance * (1 - lmbda) / (2 * base ** 2))


def forecast(
    fitted_model: FittedModel,
    horizon: int,
    confidence_level: float = 0.95,
    bias_adjust: bool = False,
) -> Forecast:
    """
    Forecast `horizon` periods past the end of the training series.

    No upper bound is placed on the horizon; interval widths grow with it, and long-range
    forecasts should be read with that in mind.

    Args:
        fitted_model: Result of `fit_sarima`.
        horizon: Number of future periods.
        confidence_level: Coverage of the prediction intervals. Defaults to 0.95.
        bias_adjust: For transformed models, return the back-transformed mean instead of
            the median as point forecast. Defaults to False.

    Returns:
        Forecast indexed by the `horizon` timestamps immediately following the training series.

    Raises:
        ValueError: If horizon is not a positive integer, confidence_level lies outside (0, 1),
            or the fitted model has no estimation results attached.
        BackTransformError: If a point forecast or bound has no value on the original scale
            (the normal quantile lies outside the range of the Box-Cox transform).
    """
    _validate_forecast_args(horizon, confidence_level)
    if fitted_model.results is None:
        raise ValueError("Fitted model has no estimation results attached.")

    prediction = fitted_model.results.get_forecast(steps=horizon)
    scale = fitted_model.scale
    mean = scale * np.asarray(prediction.predicted_mean, dtype=float)
    variance = scale ** 2 * np.asarray(prediction.var_pred_mean, dtype=float)
    z = stats.norm.ppf(0.5 + confidence_level / 2)
    half_width = z * np.sqrt(variance)
    lower, upper = mean - half_width, mean + half_width

    lmbda = fitted_model.lmbda
    if lmbda is not None:
        point = _bias_adjusted_mean(mean, variance, lmbda) if bias_adjust else inv_boxcox(mean, lmbda)
        lower, upper = inv_boxcox(lower, lmbda), inv_boxcox(upper, lmbda)
        mean = point

    train_index = fitted_model.train_series.index
    index = future_index(train_index[-1], horizon, train_index.freqstr)
    frame = pd.DataFrame({"mean": mean, "lower": lower, "upper": upper}, index=index)
    undefined = ~np.isfinite(frame.to_numpy())
    if undefined.any():
        first = index[np.flatnonzero(undefined.any(axis=1))[0]]
        error = BackTransformError(
            f"Forecast for {fitted_model.order} with Box-Cox lambda={lmbda} is undefined on the original "
            f"scale from {first.date()} at {confidence_level:.0%} confidence; the interval leaves the "
            "domain of the inverse transform. Use a smaller horizon, confidence level or |lambda|."
        )
        logger.error(str(error))
        raise error
    logger.info(
        f"Forecast {horizon} step(s) from {fitted_model.order} at {confidence_level:.0%} confidence "
        f"({index[0].date()} to {index[-1].date()})"
    )
    return Forecast(frame=frame, confidence_level=float(confidence_level))
