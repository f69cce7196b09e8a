"""Module for visualizing time series, forecasts and model residuals.

This module provides the Visualizer class with methods to create and save plots of the raw
series, a series/ACF/PACF display for choosing differencing orders, forecasts with their
prediction intervals, and residual diagnostics of a fitted model.
"""

import logging
import os
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy import stats

from models.types import FittedModel, Forecast
from utils.autocorrelation import acf, default_max_lag, pacf

logger = logging.getLogger(__name__)


def _confidence_band(n_obs: int, confidence_level: float = 0.95) -> float:
    """Half-width of the white-noise band drawn on correlograms (two-sided normal quantile / sqrt(n))."""
    return float(stats.norm.ppf(0.5 + confidence_level / 2) / np.sqrt(n_obs))


def _output_dir(dataset_name: str, root: str) -> str:
    if not dataset_name:
        raise ValueError("dataset_name cannot be empty.")
    output_dir = os.path.join(root, dataset_name)
    os.makedirs(output_dir, exist_ok=True)
    return output_dir


def _plot_correlogram(ax, values: np.ndarray, band: float, title: str) -> None:
    lags = np.arange(1, len(values) + 1)
    ax.vlines(lags, 0, values, color="tab:blue")
    ax.axhline(0, color="black", linewidth=0.8)
    ax.axhline(band, color="tab:red", linestyle="--", linewidth=0.8)
    ax.axhline(-band, color="tab:red", linestyle="--", linewidth=0.8)
    ax.set_title(title)
    ax.set_xlabel("Lag")


def _save(output_path: str, description: str) -> str:
    try:
        plt.savefig(output_path)
        logger.info(f"Saved {description} to {output_path}")
        return output_path
    except OSError as e:
        logger.error(f"Failed to save {description}: {str(e)}", exc_info=True)
        raise RuntimeError(f"Failed to save {description}: {str(e)}")
    finally:
        plt.close()


class Visualizer:
    """Class for visualizing time series, forecasts and residual diagnostics."""

    @staticmethod
    def plot_series(
        dataset_name: str, series: pd.Series, ylabel: str = "CO2 Concentration (ppm)", output_root: str = "results/plots"
    ) -> str:
        """
        Plot the raw series.

        Args:
            dataset_name: Name of the dataset for organizing output files.
            series: Series with a datetime index.
            ylabel: Label of the y axis.
            output_root: Root directory of the plots. Defaults to 'results/plots'.

        Returns:
            Path of the saved plot.

        Raises:
            ValueError: If the series is empty or not indexed by dates.
            RuntimeError: If plot saving fails due to I/O errors.
        """
        if series.empty:
            raise ValueError("series cannot be empty.")
        if not isinstance(series.index, pd.DatetimeIndex):
            raise ValueError("series must have a datetime index.")
        output_dir = _output_dir(dataset_name, output_root)

        plt.figure(figsize=(10, 6))
        plt.plot(series.index, series.values, color="blue")
        plt.title(f"{dataset_name} - {series.name}")
        plt.xlabel("Year-Month")
        plt.ylabel(ylabel)
        plt.grid(True)
        return _save(os.path.join(output_dir, f"{series.name}_series.png"), "series plot")

    @staticmethod
    def plot_tsdisplay(
        dataset_name: str,
        series: pd.Series,
        label: str,
        max_lag: Optional[int] = None,
        seasonal_period: int = 12,
        output_root: str = "results/plots",
    ) -> str:
        """
        Plot a series above its sample ACF and PACF, as used to inspect differencing choices.

        Args:
            dataset_name: Name of the dataset for organizing output files.
            series: Series to display (raw or differenced).
            label: Short description used in the title and file name (e.g., 'diff12_diff1').
            max_lag: Number of lags to display. Defaults to max(10, 3 * seasonal_period).
            seasonal_period: Seasonal period used for the default lag count. Defaults to 12.
            output_root: Root directory of the plots. Defaults to 'results/plots'.

        Returns:
            Path of the saved plot.

        Raises:
            ValueError: If label is empty or the series is too short for the requested lags.
            RuntimeError: If plot saving fails due to I/O errors.
        """
        if not label:
            raise ValueError("label cannot be empty.")
        max_lag = max_lag or default_max_lag(len(series), seasonal_period)
        acf_values = acf(series, max_lag)
        pacf_values = pacf(series, max_lag)
        band = _confidence_band(len(series))
        output_dir = _output_dir(dataset_name, output_root)

        fig = plt.figure(figsize=(10, 8))
        top = fig.add_subplot(2, 1, 1)
        top.plot(series.index, series.values, color="tab:blue")
        top.set_title(f"{dataset_name} - {label}")
        top.grid(True)
        _plot_correlogram(fig.add_subplot(2, 2, 3), acf_values, band, "ACF")
        _plot_correlogram(fig.add_subplot(2, 2, 4), pacf_values, band, "PACF")
        fig.tight_layout()
        return _save(os.path.join(output_dir, f"{label}_tsdisplay.png"), "tsdisplay plot")

    @staticmethod
    def plot_forecast(
        dataset_name: str,
        model_name: str,
        forecast: Forecast,
        history: pd.Series,
        actual: Optional[pd.Series] = None,
        history_periods: Optional[int] = 120,
        output_root: str = "results/plots",
    ) -> str:
        """
        Plot the forecast with its prediction interval after the end of the history.

        Args:
            dataset_name: Name of the dataset for organizing output files.
            model_name: Name of the forecasting model.
            forecast: Forecast to plot.
            history: Observations the model was fitted on.
            actual: Optional observations over the forecast period.
            history_periods: Number of trailing history observations to show; None shows all.
            output_root: Root directory of the plots. Defaults to 'results/plots'.

        Returns:
            Path of the saved plot.

        Raises:
            ValueError: If the history is empty.
            RuntimeError: If plot saving fails due to I/O errors.
        """
        if history.empty:
            raise ValueError("history cannot be empty.")
        if not model_name:
            raise ValueError("model_name cannot be empty.")
        output_dir = _output_dir(dataset_name, output_root)
        shown = history if history_periods is None else history.iloc[-history_periods:]

        plt.figure(figsize=(10, 6))
        plt.plot(shown.index, shown.values, label="Observed", color="black")
        if actual is not None and not actual.empty:
            plt.plot(actual.index, actual.values, label="Actual", marker="o", markersize=3, color="tab:green")
        plt.plot(forecast.index, forecast.mean.values, label="Forecast", color="tab:blue")
        plt.fill_between(
            forecast.index,
            forecast.lower.values,
            forecast.upper.values,
            color="tab:blue",
            alpha=0.2,
            label=f"{forecast.confidence_level:.0%} interval",
        )
        plt.title(f"{dataset_name} - {model_name} (Horizon {len(forecast)})")
        plt.xlabel("Date")
        plt.ylabel(str(history.name))
        plt.legend()
        plt.grid(True)
        return _save(os.path.join(output_dir, f"{model_name}_h{len(forecast)}_forecast.png"), "forecast plot")

    @staticmethod
    def plot_residuals(
        dataset_name: str,
        model_name: str,
        fitted_model: FittedModel,
        max_lag: Optional[int] = None,
        output_root: str = "results/plots",
    ) -> str:
        """
        Plot residuals over time, their ACF, and their histogram.

        Args:
            dataset_name: Name of the dataset for organizing output files.
            model_name: Name of the forecasting model.
            fitted_model: Fitted model whose residuals are shown.
            max_lag: Number of ACF lags. Defaults to max(10, 3 * seasonal period).
            output_root: Root directory of the plots. Defaults to 'results/plots'.

        Returns:
            Path of the saved plot.

        Raises:
            RuntimeError: If plot saving fails due to I/O errors.
        """
        residuals = fitted_model.residuals
        max_lag = max_lag or default_max_lag(len(residuals), max(fitted_model.order.s, 1))
        acf_values = acf(residuals, max_lag)
        output_dir = _output_dir(dataset_name, output_root)

        fig = plt.figure(figsize=(10, 8))
        top = fig.add_subplot(2, 1, 1)
        top.plot(residuals.index, residuals.values, color="tab:blue")
        top.axhline(0, color="black", linewidth=0.8)
        top.set_title(f"{dataset_name} - {model_name} residuals - {fitted_model.order}")
        top.grid(True)
        _plot_correlogram(fig.add_subplot(2, 2, 3), acf_values, _confidence_band(len(residuals)), "ACF")
        hist = fig.add_subplot(2, 2, 4)
        hist.hist(residuals.values, bins=30, color="tab:blue", alpha=0.7)
        hist.set_title("Histogram")
        fig.tight_layout()
        return _save(os.path.join(output_dir, f"{model_name}_residuals.png"), "residual plot")
