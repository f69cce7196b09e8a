"""Base module for ARIMA/SARIMA time series forecasting models.

This module defines `fit_sarima`, which estimates a seasonal ARIMA model by exact Gaussian
maximum likelihood using the statsmodels state-space SARIMAX implementation, and the
ARIMABaseForecaster class, which wraps fitting, forecasting and residual diagnostics around
a training series.
"""

import logging
import warnings
from typing import Any, Dict, Optional, Set, Union

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.statespace.sarimax import SARIMAX

from models.base import TSForecaster
from models.errors import InsufficientDataError, InvalidOrderError, NonConvergenceError
from models.forecasting import forecast as forecast_model
from models.types import DiagnosticResult, FittedModel, Forecast, SeasonalOrder
from utils import autocorrelation
from utils.data_utils import validate_series
from utils.diagnostics import default_ljung_box_lag, ljung_box
from utils.logging_utils import log_diagnostic, log_fit_failure, log_fit_start, log_fit_success
from utils.preprocessor import BoxCoxTransformer, difference, resolve_transform

logger = logging.getLogger(__name__)


def _differenced_scale(endog: pd.Series, order: SeasonalOrder) -> float:
    """Standard deviation of the series after the model's differencing, 1.0 if degenerate."""
    values = endog
    if order.d:
        values = difference(values, order=order.d, lag=1)
    if order.is_seasonal and order.D:
        values = difference(values, order=order.D, lag=order.s)
    scale = float(np.std(values.to_numpy(), ddof=1)) if len(values) > 1 else 0.0
    return scale if np.isfinite(scale) and scale > 0 else 1.0


def fit_sarima(
    series: pd.Series,
    order: SeasonalOrder,
    transform: Union[None, str, float, BoxCoxTransformer] = None,
    maxiter: int = 500,
    method: str = "lbfgs",
    model_name: str = "sarima",
) -> FittedModel:
    """
    Estimate an ARIMA(p,d,q)(P,D,Q)[s] model on a training series.

    Differencing is handled inside the state-space model. The AR and MA polynomials are
    constrained to be stationary and invertible, and a constant is estimated only when the
    model has no differencing. Starting values come from statsmodels' deterministic
    defaults, so the same input always yields the same coefficients.

    A Box-Cox transformed series is divided by the standard deviation of its differenced
    values before estimation. The scale is undone on sigma2, the residuals, the likelihood
    and information criteria, the fitted values and the forecasts (`FittedModel.scale`).

    Args:
        series: Training observations with a fixed-frequency DatetimeIndex.
        order: Model orders.
        transform: Box-Cox setting: None/'none', 'auto', 'log', a numeric lambda, or a transformer.
        maxiter: Maximum number of optimizer iterations. Defaults to 500.
        method: statsmodels optimizer name. Defaults to 'lbfgs'.
        model_name: Name used to prefix log messages. Defaults to 'sarima'.

    Returns:
        FittedModel with coefficients, residuals (differencing loss excluded), information
        criteria and the statsmodels results object.

    Raises:
        InvalidOrderError: If the order is invalid or d + D*s is not smaller than the series length.
        InsufficientDataError: If too few observations remain after differencing to estimate the coefficients.
        InvalidTransformError: If the transform setting is invalid or the series is not strictly positive.
        NonConvergenceError: If the optimizer does not converge within maxiter iterations or fails numerically.
    """
    series = validate_series(series)
    order.validate()
    if not isinstance(maxiter, int) or maxiter < 1:
        raise ValueError("maxiter must be a positive integer.")

    n_obs = len(series)
    loss = order.differencing_loss
    if loss >= n_obs:
        raise InvalidOrderError(
            f"Differencing loss d + D*s = {loss} must be smaller than the series length ({n_obs})."
        )
    if n_obs - loss <= order.arma_param_count + 1:
        raise InsufficientDataError(
            f"{n_obs - loss} observation(s) remain after differencing; {order} needs more than "
            f"{order.arma_param_count + 1}."
        )

    transformer = resolve_transform(transform)
    scale = 1.0
    endog = series
    if transformer is not None:
        endog = transformer.fit_transform(series, period=order.s if order.is_seasonal else 2)
        # Box-Cox output can sit on a scale far from 1; fit on unit-variance differences
        scale = _differenced_scale(endog, order)
        endog = endog / scale
    trend = "c" if order.d + order.D == 0 else "n"

    log_fit_start(model_name, order, n_obs)
    model = SARIMAX(
        endog=endog,
        order=order.order,
        seasonal_order=order.seasonal_order,
        trend=trend,
        enforce_stationarity=True,
        enforce_invertibility=True,
    )
    try:
        with warnings.catch_warnings():
            # Convergence is read from mle_retvals below
            warnings.simplefilter("ignore", ConvergenceWarning)
            results = model.fit(disp=False, maxiter=maxiter, method=method)
    except (np.linalg.LinAlgError, ValueError) as e:
        log_fit_failure(model_name, {"order": str(order), "maxiter": maxiter}, e)
        raise NonConvergenceError(f"Estimation of {order} failed: {str(e)}") from e

    retvals = results.mle_retvals or {}
    if not retvals.get("converged", False) or not np.isfinite(results.llf):
        error = NonConvergenceError(
            f"Optimizer did not converge for {order} within {maxiter} iterations (method={method})."
        )
        log_fit_failure(model_name, {"order": str(order), "maxiter": maxiter}, error)
        raise error

    residuals = pd.Series(
        scale * np.asarray(results.resid, dtype=float), index=series.index, name="residuals"
    ).iloc[loss:]
    params = pd.Series(np.asarray(results.params, dtype=float), index=list(model.param_names))
    params["sigma2"] *= scale ** 2
    if "intercept" in params.index:
        params["intercept"] *= scale
    # Likelihood of the unscaled (transformed) data: Jacobian of the division by `scale`
    llf_shift = 0.0
    if scale != 1.0:
        llf_shift = -(n_obs - int(results.loglikelihood_burn)) * np.log(scale)
    n_iter = int(retvals.get("iterations", 0))
    fitted = FittedModel(
        order=order,
        train_series=series,
        params=params,
        residuals=residuals,
        sigma2=float(params["sigma2"]),
        llf=float(results.llf + llf_shift),
        aic=float(results.aic - 2 * llf_shift),
        aicc=float(results.aicc - 2 * llf_shift),
        bic=float(results.bic - 2 * llf_shift),
        n_iter=n_iter,
        lmbda=transformer.lmbda if transformer is not None else None,
        scale=scale,
        results=results,
    )
    log_fit_success(model_name, fitted.aic, n_iter)
    return fitted


class ARIMABaseForecaster(TSForecaster):
    """Base class for ARIMA/SARIMA time series forecasting models."""

    def __init__(self, model_params: Dict[str, Any], forecast_steps: int, seasonal: bool = False) -> None:
        """
        Initialize the ARIMA/SARIMA forecaster.

        Args:
            model_params: Model-specific parameters (p, d, q; P, D, Q, seasonal_period for SARIMA;
                optional transform and maxiter).
            forecast_steps: Default number of steps to forecast.
            seasonal: Whether to use SARIMA (True) or ARIMA (False). Defaults to False.

        Raises:
            ValueError: If model parameters are missing or invalid.
        """
        self.seasonal = seasonal
        super().__init__(model_params, forecast_steps)
        self.order = SeasonalOrder.from_params(model_params, seasonal=seasonal)
        self.transform = model_params.get("transform")
        self.maxiter = model_params.get("maxiter", 500)
        # Fail on a bad transform setting before any data is seen
        resolve_transform(self.transform)
        self.train_series: Optional[pd.Series] = None
        logger.info(f"Initialized {self.__class__.__name__} with order {self.order} and seasonal={seasonal}")

    def fit(self, train_series: pd.Series) -> FittedModel:
        """
        Fit the model to the training data.

        Args:
            train_series: Training observations with a fixed-frequency DatetimeIndex.

        Returns:
            The FittedModel, also kept in `self.model`.

        Raises:
            InvalidOrderError: If the order does not fit the series length.
            NonConvergenceError: If estimation fails.
        """
        self.fitted = False
        self.model = fit_sarima(
            train_series,
            self.order,
            transform=self.transform,
            maxiter=self.maxiter,
            model_name=self.model_name,
        )
        self.train_series = self.model.train_series
        self.last_fit_timestamp = self.train_series.index[-1]
        self.fitted = True
        return self.model

    def _require_fitted(self) -> FittedModel:
        if not self.fitted:
            raise ValueError("Model must be fitted before forecasting.")
        return self.model

    def forecast(self, horizon: Optional[int] = None, confidence_level: float = 0.95, bias_adjust: bool = False) -> Forecast:
        """
        Forecast with prediction intervals.

        Args:
            horizon: Number of future periods. Defaults to forecast_steps.
            confidence_level: Coverage of the prediction intervals. Defaults to 0.95.
            bias_adjust: Return back-transformed means instead of medians. Defaults to False.

        Returns:
            Forecast for the periods following the training series.

        Raises:
            ValueError: If the model is not fitted or the arguments are invalid.
            BackTransformError: If the interval leaves the domain of the inverse Box-Cox transform.
        """
        fitted = self._require_fitted()
        steps = horizon if horizon is not None else self.forecast_steps
        return forecast_model(fitted, steps, confidence_level=confidence_level, bias_adjust=bias_adjust)

    def predict(self, forecast_steps: Optional[int] = None) -> pd.DataFrame:
        """
        Generate point predictions for the specified horizon.

        Args:
            forecast_steps: Number of steps to forecast. Defaults to self.forecast_steps.

        Returns:
            Single-column DataFrame of predictions in the original scale.

        Raises:
            ValueError: If model is not fitted or forecast_steps is invalid.
        """
        result = self.forecast(forecast_steps)
        name = self.train_series.name if self.train_series.name is not None else "value"
        predictions = result.mean.to_frame(name=name)
        logger.info(f"Generated {len(predictions)} predictions for {self.__class__.__name__}")
        return predictions

    def diagnose(self, lag: Optional[int] = None, significance: float = 0.05) -> DiagnosticResult:
        """
        Run the Ljung-Box test on the residuals of the fitted model.

        Args:
            lag: Number of lags. Defaults to min(2s, n/5) for seasonal models, min(10, n/5) otherwise.
            significance: Level used when logging the interpretation. Defaults to 0.05.

        Returns:
            DiagnosticResult with degrees of freedom adjusted by the number of ARMA coefficients.
        """
        fitted = self._require_fitted()
        residuals = fitted.residuals
        lag = lag if lag is not None else default_ljung_box_lag(len(residuals), self.order.s)
        result = ljung_box(residuals, lag, fitted_param_count=self.order.arma_param_count)
        log_diagnostic(self.model_name, result.statistic, result.p_value, result.lag, significance)
        return result

    def _require_series(self, series: Optional[pd.Series]) -> pd.Series:
        if series is not None:
            return series
        if self.train_series is None:
            raise ValueError("No series given and the model has not been fitted.")
        return self.train_series

    def difference(self, series: Optional[pd.Series] = None) -> pd.Series:
        """Apply the model's regular and seasonal differencing to a series (training data by default)."""
        result = self._require_series(series)
        if self.order.d:
            result = difference(result, order=self.order.d, lag=1)
        if self.order.is_seasonal and self.order.D:
            result = difference(result, order=self.order.D, lag=self.order.s)
        return result

    def acf(self, max_lag: Optional[int] = None, series: Optional[pd.Series] = None):
        """
        Sample autocorrelations at lags 1..max_lag.

        Args:
            max_lag: Largest lag. Defaults to `default_max_lag` for the series length and seasonal period.
            series: Series to analyse, e.g. the output of `difference`. Defaults to the training series.

        Returns:
            Array of max_lag autocorrelations.

        Raises:
            ValueError: If no series is given and the model has not been fitted.
        """
        values = self._require_series(series)
        max_lag = max_lag or autocorrelation.default_max_lag(len(values), max(self.order.s, 1))
        return autocorrelation.acf(values, max_lag)

    def pacf(self, max_lag: Optional[int] = None, series: Optional[pd.Series] = None):
        """
        Sample partial autocorrelations at lags 1..max_lag (Durbin-Levinson).

        Args:
            max_lag: Largest lag. Defaults to `default_max_lag` for the series length and seasonal period.
            series: Series to analyse. Defaults to the training series.

        Returns:
            Array of max_lag partial autocorrelations.

        Raises:
            ValueError: If no series is given and the model has not been fitted.
        """
        values = self._require_series(series)
        max_lag = max_lag or autocorrelation.default_max_lag(len(values), max(self.order.s, 1))
        return autocorrelation.pacf(values, max_lag)

    def get_valid_params(self) -> Set[str]:
        """
        Get the set of valid parameter names for the ARIMA/SARIMA model.

        Returns:
            Set of valid parameter names.
        """
        valid_params = {"p", "d", "q", "transform", "maxiter"}
        if self.seasonal:
            valid_params.update({"P", "D", "Q", "seasonal_period"})
        return valid_params
