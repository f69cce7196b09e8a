"""Module for scoring forecasts against held-out observations.

Provides point-forecast accuracy metrics (MAE, RMSE, SMAPE, MASE) and the empirical
coverage of prediction intervals.
"""

import logging
from typing import Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)


def _as_clean_array(values, name: str) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.size == 0:
        raise ValueError("Input arrays cannot be empty.")
    if np.any(np.isnan(array)):
        raise ValueError(f"{name} cannot contain NaN values.")
    if np.any(np.isinf(array)):
        raise ValueError(f"{name} cannot contain infinite values.")
    return array


def calculate_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    y_train: Optional[np.ndarray] = None,
    seasonal_period: int = 1,
    epsilon: float = 1e-10,
) -> Dict[str, float]:
    """
    Calculate MAE, RMSE, SMAPE and MASE for a set of point forecasts.

    MASE scales the MAE by the in-sample MAE of a (seasonal) naive forecast. The naive
    errors come from y_train when given, otherwise from y_true itself.

    Args:
        y_true: Actual values.
        y_pred: Predicted values.
        y_train: Training observations for the MASE scale. Defaults to None.
        seasonal_period: Lag of the naive forecast used by MASE. Defaults to 1.
        epsilon: Small constant guarding SMAPE and MASE against division by zero. Defaults to 1e-10.

    Returns:
        Dictionary with keys 'mae', 'rmse', 'smape' (percent) and 'mase'.

    Raises:
        ValueError: If inputs have different shapes, contain NaN/inf, or are too short for MASE.
    """
    y_true = _as_clean_array(y_true, "y_true")
    y_pred = _as_clean_array(y_pred, "y_pred")
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape}, y_pred {y_pred.shape}")
    if epsilon <= 0:
        raise ValueError("epsilon must be positive.")
    if seasonal_period < 1:
        raise ValueError("seasonal_period must be positive.")

    scale_source = _as_clean_array(y_train, "y_train") if y_train is not None else y_true
    if scale_source.size <= seasonal_period:
        raise ValueError(
            f"MASE requires more than {seasonal_period} values for the naive forecast calculation."
        )

    errors = y_true - y_pred
    mae = np.mean(np.abs(errors))
    rmse = np.sqrt(np.mean(errors ** 2))
    smape = np.mean(2 * np.abs(errors) / (np.abs(y_true) + np.abs(y_pred) + epsilon)) * 100

    naive_error = np.mean(np.abs(scale_source[seasonal_period:] - scale_source[:-seasonal_period]))
    if naive_error < epsilon:
        logger.warning(f"Naive error is very small ({naive_error}). Using epsilon ({epsilon}) as MASE scale.")
        naive_error = epsilon
    mase = mae / naive_error

    return {
        "mae": float(mae),
        "rmse": float(rmse),
        "smape": float(smape),
        "mase": float(mase),
    }


def interval_coverage(y_true: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
    """
    Fraction of actual values lying inside their prediction interval (bounds inclusive).

    Args:
        y_true: Actual values.
        lower: Lower interval bounds.
        upper: Upper interval bounds.

    Returns:
        Coverage in [0, 1].

    Raises:
        ValueError: If shapes differ, inputs contain NaN/inf, or any lower bound exceeds its upper bound.
    """
    y_true = _as_clean_array(y_true, "y_true")
    lower = _as_clean_array(lower, "lower")
    upper = _as_clean_array(upper, "upper")
    if not (y_true.shape == lower.shape == upper.shape):
        raise ValueError(f"Shape mismatch: y_true {y_true.shape}, lower {lower.shape}, upper {upper.shape}")
    if np.any(lower > upper):
        raise ValueError("lower bounds cannot exceed upper bounds.")
    return float(np.mean((y_true >= lower) & (y_true <= upper)))
