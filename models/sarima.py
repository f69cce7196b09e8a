"""Module for the seasonal ARIMA forecasting model."""

from typing import Any, Dict

from models.base_arima import ARIMABaseForecaster
from models.model_registry import register_model


@register_model("sarima")
class SARIMAForecaster(ARIMABaseForecaster):
    """ARIMA(p,d,q)(P,D,Q)[s] forecaster, e.g. ARIMA(1,1,1)(2,1,1)[12] for monthly CO2."""

    def __init__(self, model_params: Dict[str, Any], forecast_steps: int) -> None:
        """
        Initialize the SARIMA forecaster.

        Args:
            model_params: Model-specific parameters (p, d, q, P, D, Q, seasonal_period, transform, maxiter).
            forecast_steps: Default number of steps to forecast.
        """
        super().__init__(model_params=model_params, forecast_steps=forecast_steps, seasonal=True)
