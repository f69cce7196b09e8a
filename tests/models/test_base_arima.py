"""Unit tests for seasonal ARIMA estimation and the ARIMA/SARIMA forecaster wrappers.

Covers `fit_sarima` (parameter layout, determinism, order and data-length checks, optimizer
failures) and the `ARIMABaseForecaster` API (fitting state, prediction, Ljung-Box
diagnostics, differencing and correlogram helpers). Estimation runs on short synthetic
monthly series; optimizer failures are simulated by mocking SARIMAX.
"""

import logging
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from models.arima import ARIMAForecaster
from models.base_arima import fit_sarima
from models.errors import InsufficientDataError, InvalidOrderError, InvalidTransformError, NonConvergenceError
from models.sarima import SARIMAForecaster
from models.types import DiagnosticResult, FittedModel, SeasonalOrder
from utils.data_utils import generate_synthetic_series
from utils.preprocessor import difference

AIRLINE = SeasonalOrder(0, 1, 1, 0, 1, 1, 12)
CO2_ORDER = SeasonalOrder(1, 1, 1, 2, 1, 1, 12)
SARIMA_PARAMS = {"p": 0, "d": 1, "q": 1, "P": 0, "D": 1, "Q": 1, "seasonal_period": 12}


# --- Test Helpers & Fixtures ---

def _monthly_series(n, seed=0, noise_level=0.3):
    return generate_synthetic_series(n, base_level=315.0, slope=0.12, amplitude=3.0, noise_level=noise_level, seed=seed)


def _ar1_series(phi, mean, n, seed):
    rng = np.random.default_rng(seed)
    values = np.zeros(n)
    for t in range(1, n):
        values[t] = phi * values[t - 1] + rng.normal()
    return pd.Series(values + mean, index=pd.date_range("1990-01-01", periods=n, freq="MS"), name="level")


def _quadratic_co2_series(n, seed):
    t = np.arange(n)
    rng = np.random.default_rng(seed)
    values = 315 + 0.065 * t + 0.00009 * t ** 2 + 3 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 0.3, n)
    return pd.Series(values, index=pd.date_range("1958-03-01", periods=n, freq="MS"), name="co2")


@pytest.fixture(scope="module")
def train_series():
    return _monthly_series(240, seed=11)


@pytest.fixture(scope="module")
def airline_fit(train_series):
    return fit_sarima(train_series, AIRLINE)


@pytest.fixture
def fitted_forecaster(train_series):
    forecaster = SARIMAForecaster(SARIMA_PARAMS, forecast_steps=12)
    forecaster.fit(train_series)
    return forecaster


# --- fit_sarima ---

def test_fit_sarima_returns_fitted_model(airline_fit, train_series):
    assert isinstance(airline_fit, FittedModel)
    assert list(airline_fit.params.index) == ["ma.L1", "ma.S.L12", "sigma2"]
    assert airline_fit.sigma2 == airline_fit.params["sigma2"]
    assert airline_fit.sigma2 > 0
    assert np.isfinite(airline_fit.llf)
    assert airline_fit.aic < airline_fit.aicc < airline_fit.bic
    assert airline_fit.lmbda is None
    assert airline_fit.nobs == 240


def test_fit_sarima_residuals_exclude_differencing_loss(airline_fit, train_series):
    """The first d + D*s residuals come from the diffuse start and are dropped."""
    assert len(airline_fit.residuals) == 240 - 13
    assert airline_fit.residuals.index[0] == train_series.index[13]
    assert np.all(np.isfinite(airline_fit.residuals.to_numpy()))
    assert len(airline_fit.fitted_values) == len(airline_fit.residuals)


def test_fit_sarima_coefficients_within_invertibility_region(airline_fit):
    assert abs(airline_fit.params["ma.L1"]) < 1
    assert abs(airline_fit.params["ma.S.L12"]) < 1


def test_fit_sarima_param_names_full_seasonal_order():
    fitted = fit_sarima(_monthly_series(180, seed=2), SeasonalOrder(1, 1, 1, 1, 1, 1, 12))
    assert list(fitted.params.index) == ["ar.L1", "ma.L1", "ar.S.L12", "ma.S.L12", "sigma2"]


def test_fit_sarima_is_deterministic(train_series, airline_fit):
    again = fit_sarima(train_series, AIRLINE)
    np.testing.assert_allclose(again.params.to_numpy(), airline_fit.params.to_numpy(), rtol=0, atol=1e-12)
    assert again.llf == airline_fit.llf


def test_fit_sarima_does_not_modify_input(train_series):
    original = train_series.copy()
    fit_sarima(train_series, SeasonalOrder(1, 1, 0))
    pd.testing.assert_series_equal(train_series, original)


@pytest.mark.parametrize("order, expected", [(SeasonalOrder(1, 0, 0), True), (SeasonalOrder(1, 1, 0), False)])
def test_fit_sarima_constant_only_without_differencing(order, expected):
    fitted = fit_sarima(_ar1_series(0.5, 10.0, 200, seed=3), order)
    assert ("intercept" in fitted.params.index) is expected


def test_fit_sarima_log_transform(train_series, caplog):
    with caplog.at_level(logging.INFO):
        fitted = fit_sarima(train_series, AIRLINE, transform="log", model_name="co2_sarima")
    assert fitted.lmbda == 0.0
    assert fitted.transformed
    # Residuals live on the log scale
    assert fitted.residuals.abs().max() < 0.1
    assert "[co2_sarima] Fitting ARIMA(0,1,1)(0,1,1)[12] on 240 observations" in caplog.text
    assert "[co2_sarima] Fit converged after" in caplog.text


@pytest.mark.parametrize("transform", ["auto", "log"])
@pytest.mark.parametrize("seed", [0, 1])
def test_fit_sarima_transformed_series_converges(transform, seed):
    """
    Scenario: ARIMA(1,1,1)(2,1,1)[12] on 753 months of an accelerating CO2-like series,
    fitted after a Box-Cox transform.
    Assumptions: estimation converges, and the scale applied before estimation is undone:
    sigma2 matches the residual variance on the transformed scale and the fitted values
    track the observations on the original scale.
    """
    series = _quadratic_co2_series(753, seed)
    fitted = fit_sarima(series, CO2_ORDER, transform=transform)

    assert fitted.transformed
    assert fitted.scale != 1.0
    assert fitted.n_iter < 500
    assert list(fitted.params.index) == ["ar.L1", "ma.L1", "ar.S.L12", "ar.S.L24", "ma.S.L12", "sigma2"]
    assert fitted.sigma2 == fitted.params["sigma2"]
    assert np.var(fitted.residuals.to_numpy()) == pytest.approx(fitted.sigma2, rel=0.3)
    errors = (series.iloc[CO2_ORDER.differencing_loss:] - fitted.fitted_values).abs()
    assert errors.mean() < 0.5
    assert np.isfinite(fitted.llf) and fitted.aic < fitted.bic


def test_fit_sarima_rescales_transformed_series(mocker, train_series):
    """The transformed series handed to SARIMAX has unit standard deviation after differencing."""
    mock_sarimax = mocker.patch("models.base_arima.SARIMAX")
    mock_sarimax.return_value.fit.side_effect = ValueError("stop")
    with pytest.raises(NonConvergenceError):
        fit_sarima(train_series, AIRLINE, transform="log")

    endog = mock_sarimax.call_args.kwargs["endog"]
    differenced = difference(difference(endog, order=1, lag=1), order=1, lag=12)
    assert differenced.std() == pytest.approx(1.0)
    scale = np.log(train_series).iloc[0] / endog.iloc[0]
    np.testing.assert_allclose(endog.to_numpy() * scale, np.log(train_series.to_numpy()))


def test_fit_sarima_without_transform_is_not_rescaled(airline_fit):
    assert airline_fit.scale == 1.0
    np.testing.assert_allclose(
        airline_fit.residuals.to_numpy(), np.asarray(airline_fit.results.resid)[13:], rtol=0, atol=1e-12
    )


def test_fit_sarima_transform_requires_positive_values():
    series = _ar1_series(0.5, 0.0, 120, seed=4)
    with pytest.raises(InvalidTransformError):
        fit_sarima(series, SeasonalOrder(1, 0, 0), transform="log")


def test_fit_sarima_differencing_exceeds_series_length():
    """d + D*s = 13 observations cannot be differenced out of a 12-month series."""
    with pytest.raises(InvalidOrderError, match="must be smaller than the series length"):
        fit_sarima(_monthly_series(12), SeasonalOrder(1, 1, 1, 1, 1, 1, 12))


def test_fit_sarima_too_few_observations_after_differencing():
    with pytest.raises(InsufficientDataError, match="remain after differencing"):
        fit_sarima(_monthly_series(20), SeasonalOrder(2, 1, 2, 1, 1, 1, 12))


@pytest.mark.parametrize("maxiter", [0, -5, 2.5])
def test_fit_sarima_invalid_maxiter(train_series, maxiter):
    with pytest.raises(ValueError, match="maxiter must be a positive integer."):
        fit_sarima(train_series, AIRLINE, maxiter=maxiter)


def test_fit_sarima_rejects_invalid_order(train_series):
    with pytest.raises(InvalidOrderError):
        fit_sarima(train_series, SeasonalOrder(-1, 1, 1))


def test_fit_sarima_non_convergence(mocker, train_series, caplog):
    """
    Scenario: the optimizer stops without converging.
    Assumptions: a NonConvergenceError is raised and the failure is logged; no partial fit is returned.
    """
    mock_sarimax = mocker.patch("models.base_arima.SARIMAX")
    results = MagicMock()
    results.mle_retvals = {"converged": False, "iterations": 3}
    results.llf = -100.0
    mock_sarimax.return_value.fit.return_value = results

    with caplog.at_level(logging.ERROR):
        with pytest.raises(NonConvergenceError, match="did not converge for ARIMA\\(0,1,1\\)\\(0,1,1\\)\\[12\\] within 3 iterations"):
            fit_sarima(train_series, AIRLINE, maxiter=3)
    assert "[sarima] Fit failed" in caplog.text
    mock_sarimax.return_value.fit.assert_called_once_with(disp=False, maxiter=3, method="lbfgs")


def test_fit_sarima_numerical_failure(mocker, train_series):
    mock_sarimax = mocker.patch("models.base_arima.SARIMAX")
    mock_sarimax.return_value.fit.side_effect = np.linalg.LinAlgError("Schur decomposition solver error.")
    with pytest.raises(NonConvergenceError, match="Schur decomposition"):
        fit_sarima(train_series, AIRLINE)


def test_fit_sarima_non_finite_likelihood(mocker, train_series):
    mock_sarimax = mocker.patch("models.base_arima.SARIMAX")
    results = MagicMock()
    results.mle_retvals = {"converged": True, "iterations": 10}
    results.llf = np.nan
    mock_sarimax.return_value.fit.return_value = results
    with pytest.raises(NonConvergenceError):
        fit_sarima(train_series, AIRLINE)


def test_fit_sarima_builds_constrained_model(mocker, train_series):
    """The state-space model enforces stationarity and invertibility and omits the constant when differenced."""
    mock_sarimax = mocker.patch("models.base_arima.SARIMAX")
    mock_sarimax.return_value.fit.side_effect = ValueError("stop")
    with pytest.raises(NonConvergenceError):
        fit_sarima(train_series, AIRLINE)
    kwargs = mock_sarimax.call_args.kwargs
    assert kwargs["order"] == (0, 1, 1)
    assert kwargs["seasonal_order"] == (0, 1, 1, 12)
    assert kwargs["trend"] == "n"
    assert kwargs["enforce_stationarity"] is True
    assert kwargs["enforce_invertibility"] is True


# --- ARIMABaseForecaster ---

def test_forecaster_initialization():
    forecaster = SARIMAForecaster({**SARIMA_PARAMS, "transform": "auto", "maxiter": 200}, forecast_steps=24)
    assert forecaster.order == AIRLINE
    assert forecaster.maxiter == 200
    assert forecaster.transform == "auto"
    assert forecaster.seasonal_period == 12
    assert not forecaster.fitted


@pytest.mark.parametrize("model_cls, params, error", [
    (SARIMAForecaster, {"p": 1, "d": 1, "q": 1}, InvalidOrderError),
    (SARIMAForecaster, {**SARIMA_PARAMS, "seasonal_period": 1}, InvalidOrderError),
    (SARIMAForecaster, {**SARIMA_PARAMS, "transform": "sqrt"}, InvalidTransformError),
    (ARIMAForecaster, {"p": 1, "d": 1, "q": -1}, InvalidOrderError),
    (ARIMAForecaster, {"p": 1, "d": 1, "q": 1, "P": 1}, ValueError),
])
def test_forecaster_invalid_params(model_cls, params, error):
    with pytest.raises(error):
        model_cls(params, forecast_steps=12)


def test_forecaster_fit_sets_state(fitted_forecaster, train_series):
    assert fitted_forecaster.fitted
    assert isinstance(fitted_forecaster.model, FittedModel)
    assert fitted_forecaster.last_fit_timestamp == train_series.index[-1]


def test_forecaster_forecast_before_fit_fails():
    forecaster = ARIMAForecaster({"p": 1, "d": 1, "q": 0}, forecast_steps=6)
    with pytest.raises(ValueError, match="Model must be fitted before forecasting."):
        forecaster.forecast()
    with pytest.raises(ValueError, match="Model must be fitted before forecasting."):
        forecaster.diagnose()


def test_forecaster_predict_uses_default_steps(fitted_forecaster, train_series):
    predictions = fitted_forecaster.predict()
    assert list(predictions.columns) == ["co2"]
    assert len(predictions) == 12
    assert predictions.index[0] == train_series.index[-1] + pd.offsets.MonthBegin(1)
    assert len(fitted_forecaster.predict(forecast_steps=3)) == 3


def test_forecaster_diagnose_adjusts_degrees_of_freedom(fitted_forecaster, caplog):
    """The default lag is 2s = 24 and the two MA coefficients are subtracted from the df."""
    with caplog.at_level(logging.INFO):
        result = fitted_forecaster.diagnose()
    assert isinstance(result, DiagnosticResult)
    assert result.lag == 24
    assert result.df == 22
    assert 0.0 <= result.p_value <= 1.0
    assert "[sarima] Ljung-Box" in caplog.text


def test_forecaster_difference_and_correlograms(fitted_forecaster, train_series):
    differenced = fitted_forecaster.difference()
    assert len(differenced) == len(train_series) - 13
    assert differenced.std() < train_series.diff().std()
    assert fitted_forecaster.acf(max_lag=24).shape == (24,)
    assert fitted_forecaster.pacf().shape == (36,)
    assert fitted_forecaster.acf(max_lag=5, series=differenced).shape == (5,)


def test_forecaster_helpers_without_series_fail():
    forecaster = ARIMAForecaster({"p": 1, "d": 1, "q": 0}, forecast_steps=6)
    with pytest.raises(ValueError, match="No series given and the model has not been fitted."):
        forecaster.difference()


def test_get_valid_params():
    assert ARIMAForecaster({"p": 0, "d": 1, "q": 1}, 1).get_valid_params() == {"p", "d", "q", "transform", "maxiter"}
    assert SARIMAForecaster(SARIMA_PARAMS, 1).get_valid_params() == {
        "p", "d", "q", "P", "D", "Q", "seasonal_period", "transform", "maxiter"
    }
