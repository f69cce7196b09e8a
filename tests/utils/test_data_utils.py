"""Unit tests for series validation and synthetic data in `utils/data_utils.py`."""

import numpy as np
import pandas as pd
import pytest

from utils.data_utils import future_index, generate_synthetic_series, validate_series


@pytest.fixture
def monthly_series():
    index = pd.date_range("2020-01-01", periods=24, freq="MS")
    return pd.Series(np.arange(24, dtype=float), index=index, name="co2")


# --- validate_series ---

def test_validate_series_returns_float_copy_with_freq(monthly_series):
    result = validate_series(monthly_series.astype(int))
    assert result.dtype == float
    assert result.index.freqstr == "MS"
    assert result.name == "co2"
    assert result is not monthly_series


def test_validate_series_infers_missing_freq(monthly_series):
    """An index without an attached frequency is accepted when it is regular."""
    stripped = pd.Series(monthly_series.to_numpy(), index=pd.DatetimeIndex(list(monthly_series.index)))
    assert stripped.index.freq is None
    assert validate_series(stripped).index.freqstr == "MS"


def test_validate_series_detects_gaps(monthly_series):
    with pytest.raises(ValueError, match="has gaps"):
        validate_series(monthly_series.drop(monthly_series.index[5]), freq="MS")


@pytest.mark.parametrize("series, error_msg", [
    ([1.0, 2.0], "must be a pandas Series"),
    (pd.Series([], dtype=float), "cannot be empty"),
    (pd.Series([1.0, 2.0, 3.0]), "must have a DatetimeIndex"),
    (pd.Series([1.0, np.nan, 3.0], index=pd.date_range("2020-01-01", periods=3, freq="MS")), "NaN"),
    (pd.Series([1.0, np.inf, 3.0], index=pd.date_range("2020-01-01", periods=3, freq="MS")), "infinite"),
    (pd.Series([1.0, 2.0], index=pd.DatetimeIndex(["2020-01-01", "2020-02-01"])), "fewer than 3"),
])
def test_validate_series_invalid_inputs(series, error_msg):
    with pytest.raises(ValueError, match=error_msg):
        validate_series(series)


def test_validate_series_rejects_unsorted_index(monthly_series):
    with pytest.raises(ValueError, match="strictly increasing"):
        validate_series(monthly_series.iloc[::-1])


def test_validate_series_rejects_irregular_index():
    index = pd.DatetimeIndex(["2020-01-01", "2020-02-01", "2020-04-01", "2020-05-01"])
    with pytest.raises(ValueError, match="Cannot infer series frequency"):
        validate_series(pd.Series([1.0, 2.0, 3.0, 4.0], index=index))


# --- future_index ---

def test_future_index_continues_without_gap():
    index = future_index(pd.Timestamp("2020-12-01"), 3, "MS")
    assert list(index) == [pd.Timestamp("2021-01-01"), pd.Timestamp("2021-02-01"), pd.Timestamp("2021-03-01")]


@pytest.mark.parametrize("periods", [0, -2, 1.5])
def test_future_index_invalid_periods(periods):
    with pytest.raises(ValueError, match="periods must be a positive integer"):
        future_index(pd.Timestamp("2020-12-01"), periods, "MS")


# --- generate_synthetic_series ---

def test_generate_synthetic_series_is_seeded():
    first = generate_synthetic_series(120, seed=11)
    second = generate_synthetic_series(120, seed=11)
    other = generate_synthetic_series(120, seed=12)
    pd.testing.assert_series_equal(first, second)
    assert not np.allclose(first.to_numpy(), other.to_numpy())
    assert first.index[0] == pd.Timestamp("1958-03-01")
    assert first.index.freqstr == "MS"


def test_generate_synthetic_series_deterministic_component():
    series = generate_synthetic_series(24, base_level=10.0, slope=0.5, amplitude=2.0, noise_level=0.0)
    t = np.arange(24)
    np.testing.assert_allclose(series.to_numpy(), 10.0 + 0.5 * t + 2.0 * np.sin(2 * np.pi * t / 12))


@pytest.mark.parametrize("kwargs, error_msg", [
    ({"length": 0}, "length must be a positive integer"),
    ({"length": 10, "period": 0}, "period must be positive"),
    ({"length": 10, "noise_level": -1.0}, "noise_level cannot be negative"),
])
def test_generate_synthetic_series_invalid_arguments(kwargs, error_msg):
    with pytest.raises(ValueError, match=error_msg):
        generate_synthetic_series(**kwargs)
