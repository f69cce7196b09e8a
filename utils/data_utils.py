"""Module for validating and constructing equally spaced time series.

This module provides the checks every forecasting component runs on its input series
(fixed frequency, no gaps, finite values), index helpers for future periods, and a
generator for synthetic trend + seasonality series used in examples and tests.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd
from pandas.tseries.frequencies import to_offset

logger = logging.getLogger(__name__)


def validate_series(series: pd.Series, freq: Optional[str] = None) -> pd.Series:
    """
    Validate a univariate time series and return a copy with its frequency attached.

    Args:
        series: Series of observations indexed by a DatetimeIndex.
        freq: Expected frequency (e.g., 'MS'). If None, uses the index frequency or infers it.

    Returns:
        A float copy of the series whose index carries the frequency.

    Raises:
        ValueError: If the series is empty, not indexed by dates, has an unknown frequency,
            contains gaps or duplicate timestamps, or contains NaN or infinite values.
    """
    if not isinstance(series, pd.Series):
        raise ValueError("series must be a pandas Series.")
    if series.empty:
        raise ValueError("series cannot be empty.")
    if not isinstance(series.index, pd.DatetimeIndex):
        raise ValueError("series must have a DatetimeIndex.")
    if not series.index.is_monotonic_increasing or series.index.has_duplicates:
        raise ValueError("series index must be strictly increasing.")

    values = pd.to_numeric(series, errors="coerce").astype(float)
    if values.isna().any():
        raise ValueError("series cannot contain NaN or non-numeric values.")
    if np.isinf(values.to_numpy()).any():
        raise ValueError("series cannot contain infinite values.")

    freq = freq or series.index.freqstr
    if freq is None:
        if len(series) < 3:
            raise ValueError("Cannot infer the frequency of a series with fewer than 3 observations; pass freq.")
        freq = pd.infer_freq(series.index)
        if freq is None:
            raise ValueError("Cannot infer series frequency; the index has gaps or irregular spacing.")

    expected = pd.date_range(start=series.index[0], periods=len(series), freq=freq)
    if not np.array_equal(expected.values, series.index.values):
        missing = expected.difference(series.index)
        raise ValueError(
            f"series has gaps for frequency '{freq}': {len(missing)} expected period(s) missing, "
            f"first missing: {missing[0] if len(missing) else 'n/a'}"
        )

    result = values.copy()
    result.index = expected
    result.name = series.name
    return result


def future_index(last_timestamp: pd.Timestamp, periods: int, freq: str) -> pd.DatetimeIndex:
    """
    Build the index of the `periods` observations immediately following `last_timestamp`.

    Args:
        last_timestamp: Last observed timestamp.
        periods: Number of future periods.
        freq: Frequency string of the series.

    Returns:
        DatetimeIndex starting one period after last_timestamp.

    Raises:
        ValueError: If periods is not positive or freq is invalid.
    """
    if not isinstance(periods, (int, np.integer)) or periods < 1:
        raise ValueError("periods must be a positive integer.")
    offset = to_offset(freq)
    return pd.date_range(start=last_timestamp + offset, periods=periods, freq=offset)


def generate_synthetic_series(
    length: int,
    start_date: str = "1958-03-01",
    freq: str = "MS",
    base_level: float = 280.0,
    slope: float = 0.015,
    amplitude: float = 3.0,
    period: int = 12,
    noise_level: float = 0.1,
    seed: Optional[int] = 42,
    name: str = "co2",
) -> pd.Series:
    """
    Generate `base_level + slope*t + amplitude*sin(2*pi*t/period) + noise`.

    Args:
        length: Number of observations.
        start_date: First timestamp. Defaults to March 1958 (start of the Mauna Loa record).
        freq: Frequency of the index. Defaults to month start.
        base_level: Level at t=0.
        slope: Linear trend per period.
        amplitude: Amplitude of the sinusoidal seasonal component.
        period: Seasonal period in observations.
        noise_level: Standard deviation of the Gaussian noise. Zero gives a deterministic series.
        seed: Seed for the noise generator. Defaults to 42.
        name: Name of the returned series.

    Returns:
        Series with a fixed-frequency DatetimeIndex.

    Raises:
        ValueError: If length or period is not positive or noise_level is negative.
    """
    if not isinstance(length, int) or length < 1:
        raise ValueError("length must be a positive integer.")
    if period < 1:
        raise ValueError("period must be positive.")
    if noise_level < 0:
        raise ValueError("noise_level cannot be negative.")

    t = np.arange(length, dtype=float)
    values = base_level + slope * t + amplitude * np.sin(2 * np.pi * t / period)
    if noise_level > 0:
        rng = np.random.default_rng(seed)
        values = values + rng.normal(0.0, noise_level, length)

    index = pd.date_range(start=start_date, periods=length, freq=freq)
    logger.debug(f"Generated synthetic series '{name}' with {length} observations starting {index[0]}")
    return pd.Series(values, index=index, name=name)
