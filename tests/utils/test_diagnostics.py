"""Unit tests for the Ljung-Box residual test in `utils/diagnostics.py`."""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from models.errors import InsufficientDataError, InvalidLagError
from utils.diagnostics import default_ljung_box_lag, ljung_box


def test_ljung_box_is_calibrated_on_white_noise():
    """
    Scenario: 200 independent Gaussian white-noise series of length 500, tested at lag 10.
    Assumptions: the rejection rate at the 5% level stays close to 5%, and the p-values are
    consistent with a uniform distribution.
    """
    rng = np.random.default_rng(2024)
    p_values = np.array([ljung_box(rng.normal(size=500), lag=10).p_value for _ in range(200)])

    assert np.mean(p_values < 0.05) < 0.12
    assert stats.kstest(p_values, "uniform").pvalue > 0.001


def test_ljung_box_detects_autocorrelation():
    rng = np.random.default_rng(7)
    noise = rng.normal(size=500)
    values = np.zeros(500)
    for t in range(1, 500):
        values[t] = 0.6 * values[t - 1] + noise[t]
    result = ljung_box(pd.Series(values), lag=10)
    assert result.p_value < 0.01
    assert not result.is_white_noise()


def test_ljung_box_degrees_of_freedom_adjusted():
    rng = np.random.default_rng(8)
    residuals = rng.normal(size=300)
    plain = ljung_box(residuals, lag=24)
    adjusted = ljung_box(residuals, lag=24, fitted_param_count=4)

    assert plain.df == 24
    assert adjusted.df == 20
    assert adjusted.lag == 24
    assert adjusted.statistic == pytest.approx(plain.statistic)
    assert adjusted.p_value == pytest.approx(stats.chi2.sf(adjusted.statistic, 20))
    assert adjusted.test == "ljung_box"


def test_ljung_box_lag_exceeding_residuals():
    with pytest.raises(InsufficientDataError, match="exceeds the number of residuals"):
        ljung_box(np.ones(5) + np.arange(5), lag=6)


@pytest.mark.parametrize("lag, fitted_param_count", [(0, 0), (-3, 0), (4, 4), (3, 5)])
def test_ljung_box_invalid_lag(lag, fitted_param_count):
    residuals = np.random.default_rng(9).normal(size=100)
    with pytest.raises(InvalidLagError):
        ljung_box(residuals, lag=lag, fitted_param_count=fitted_param_count)


@pytest.mark.parametrize("residuals, count", [
    (np.array([0.1, np.nan, 0.3, 0.2]), 0),
    (np.array([0.1, -0.2, 0.3, 0.2]), -1),
])
def test_ljung_box_invalid_inputs(residuals, count):
    with pytest.raises(ValueError):
        ljung_box(residuals, lag=2, fitted_param_count=count)


@pytest.mark.parametrize("n_obs, period, expected", [(300, 12, 24), (50, 12, 10), (300, 0, 10), (30, 0, 6), (3, 0, 1)])
def test_default_ljung_box_lag(n_obs, period, expected):
    assert default_ljung_box_lag(n_obs, period) == expected
