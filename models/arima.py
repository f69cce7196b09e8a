"""Module for the non-seasonal ARIMA forecasting model."""

from typing import Any, Dict

from models.base_arima import ARIMABaseForecaster
from models.model_registry import register_model


@register_model("arima")
class ARIMAForecaster(ARIMABaseForecaster):
    """ARIMA(p,d,q) forecaster with the seasonal part fixed to zero."""

    def __init__(self, model_params: Dict[str, Any], forecast_steps: int) -> None:
        """
        Initialize the ARIMA forecaster.

        Args:
            model_params: Model-specific parameters (p, d, q, transform, maxiter).
            forecast_steps: Default number of steps to forecast.
        """
        super().__init__(model_params=model_params, forecast_steps=forecast_steps, seasonal=False)
