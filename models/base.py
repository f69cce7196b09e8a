"""Base module for time series forecasting models.

This module defines the abstract base class shared by the forecasters in the registry. It
provides parameter validation, point-forecast evaluation and a hold-out evaluation routine
that fits on a training series and scores the forecast against the following observations.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import pandas as pd

from models.types import Forecast
from utils.data_utils import validate_series
from utils.metrics import calculate_metrics, interval_coverage

logger = logging.getLogger(__name__)


class TSForecaster(ABC):
    """Abstract base class for univariate time series forecasting models."""

    # Class attributes set by the model registry
    model_name: str = "base"
    is_univariate: bool = True

    def __init__(self, model_params: Dict[str, Any], forecast_steps: int) -> None:
        """
        Initialize the forecaster with model-specific parameters.

        Args:
            model_params: Model-specific parameters (e.g., p, d, q for ARIMA).
            forecast_steps: Default number of steps to forecast.

        Raises:
            ValueError: If model_params is not a dictionary, contains unknown keys, or
                forecast_steps is not positive.
        """
        if not isinstance(model_params, dict):
            raise ValueError("model_params must be a dictionary.")
        if isinstance(forecast_steps, bool) or not isinstance(forecast_steps, int) or forecast_steps < 1:
            raise ValueError("forecast_steps must be positive.")

        unknown = set(model_params) - self.get_valid_params()
        if unknown:
            raise ValueError(f"Unknown parameter(s) for {self.__class__.__name__}: {sorted(unknown)}")

        self.model_params = model_params
        self.forecast_steps = forecast_steps
        self.model = None
        self.fitted = False
        self.last_fit_timestamp: Optional[pd.Timestamp] = None
        logger.info(f"Initialized {self.__class__.__name__} with params: {model_params}")

    def evaluate(self, y_true: pd.Series, y_pred: pd.Series, y_train: Optional[pd.Series] = None) -> Dict[str, float]:
        """
        Score point forecasts against actual values on their common timestamps.

        Args:
            y_true: Actual values.
            y_pred: Predicted values.
            y_train: Training series used to scale MASE. Defaults to None.

        Returns:
            Dictionary of metrics (mae, rmse, smape, mase). Empty if the series share no timestamps.
        """
        if y_true.empty or y_pred.empty:
            logger.warning("Empty input series provided for evaluation.")
            return {}

        y_true_aligned, y_pred_aligned = y_true.align(y_pred, join="inner")
        if y_true_aligned.empty:
            logger.warning("Could not align y_true and y_pred for evaluation.")
            return {}

        period = self.seasonal_period if self.seasonal_period > 1 else 1
        train_values = y_train.to_numpy() if y_train is not None else None
        return calculate_metrics(
            y_true_aligned.to_numpy(), y_pred_aligned.to_numpy(), y_train=train_values, seasonal_period=period
        )

    def evaluate_holdout(
        self, train_series: pd.Series, test_series: pd.Series, confidence_level: float = 0.95
    ) -> Dict[str, Any]:
        """
        Fit on the training series, forecast len(test_series) steps and score the forecast.

        Args:
            train_series: Training observations.
            test_series: Observations immediately following the training series.
            confidence_level: Coverage of the prediction intervals. Defaults to 0.95.

        Returns:
            Dictionary with the point metrics, 'coverage' of the intervals, and the 'forecast'.

        Raises:
            ValueError: If the test series does not start right after the training series.
        """
        train_series = validate_series(train_series)
        test_series = validate_series(test_series, freq=train_series.index.freqstr)
        expected_start = train_series.index[-1] + train_series.index.freq
        if test_series.index[0] != expected_start:
            raise ValueError(
                f"test_series must start at {expected_start.date()}, got {test_series.index[0].date()}."
            )

        self.fit(train_series)
        result: Forecast = self.forecast(len(test_series), confidence_level=confidence_level)
        metrics: Dict[str, Any] = self.evaluate(test_series, result.mean, y_train=train_series)
        metrics["coverage"] = interval_coverage(test_series.to_numpy(), result.lower.to_numpy(), result.upper.to_numpy())
        logger.info(
            f"[{self.model_name}] Hold-out over {len(test_series)} steps: "
            + ", ".join(f"{key}={value:.4f}" for key, value in metrics.items())
        )
        metrics["forecast"] = result
        return metrics

    @property
    def seasonal_period(self) -> int:
        return int(self.model_params.get("seasonal_period", 1))

    @abstractmethod
    def fit(self, train_series: pd.Series) -> Any:
        """
        Fit the model to the training data.

        Args:
            train_series: Training observations.
        """
        pass

    @abstractmethod
    def forecast(self, horizon: Optional[int] = None, confidence_level: float = 0.95, bias_adjust: bool = False) -> Forecast:
        """
        Forecast with prediction intervals.

        Args:
            horizon: Number of future periods. Defaults to forecast_steps.
            confidence_level: Coverage of the prediction intervals.
            bias_adjust: Whether to return back-transformed means instead of medians.
        """
        pass

    @abstractmethod
    def predict(self, forecast_steps: Optional[int] = None) -> pd.DataFrame:
        """
        Generate point predictions for the specified horizon.

        Args:
            forecast_steps: Number of steps to forecast.

        Returns:
            Predictions in a DataFrame indexed by future timestamps.
        """
        pass

    def get_valid_params(self) -> set:
        """
        Get the set of valid parameter names for the model.

        Returns:
            Set of valid parameter names.

        Raises:
            NotImplementedError: If not implemented by subclass.
        """
        raise NotImplementedError("Subclasses must implement get_valid_params.")
