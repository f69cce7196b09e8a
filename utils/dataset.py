"""Module for managing the monthly time series used by the forecasting toolkit.

This module provides a reader for the NOAA Mauna Loa monthly CO2 file and the
TimeSeriesDataset class, which loads a univariate series from that format or a generic CSV,
splits it into training and test periods, and saves forecasts and metrics.
"""

import logging
import os
from typing import Dict, Optional

import numpy as np
import pandas as pd

from models.types import Forecast
from utils.data_utils import validate_series

logger = logging.getLogger(__name__)

NOAA_COLUMNS = ["year", "month", "decimal_date", "average", "deseasonalized", "ndays", "sdev", "unc"]
REMOTE_PREFIXES = ("http://", "https://", "ftp://")


def load_noaa_monthly(path: str, column: str = "average") -> pd.Series:
    """
    Read a NOAA GML monthly mean file (e.g., co2_mm_mlo.txt) into a monthly series.

    The file is whitespace separated with '#' comment lines and the columns year, month,
    decimal date, monthly average, deseasonalized value, number of days, standard deviation
    of the days and uncertainty of the mean. Observations are indexed by the first day of
    their month.

    Args:
        path: Local path or URL of the file.
        column: Column to return. Defaults to 'average'.

    Returns:
        Series named after the column with a month-start DatetimeIndex.

    Raises:
        FileNotFoundError: If a local path does not exist.
        ValueError: If the column is unknown, the file is empty, or the column holds negative
            missing-value sentinels (e.g., -99.99).
    """
    if column not in NOAA_COLUMNS:
        raise ValueError(f"Unknown NOAA column '{column}'. Available: {NOAA_COLUMNS}")
    if not path.startswith(REMOTE_PREFIXES) and not os.path.exists(path):
        raise FileNotFoundError(f"Dataset file not found: {path}")

    df = pd.read_csv(path, sep=r"\s+", comment="#", header=None, names=NOAA_COLUMNS)
    if df.empty:
        raise ValueError(f"Dataset '{path}' is empty.")

    missing = df[column] < 0
    if missing.any():
        first = df.loc[missing, ["year", "month"]].iloc[0]
        raise ValueError(
            f"Column '{column}' has {int(missing.sum())} missing value(s) marked by negative sentinels "
            f"(first at {int(first['year'])}-{int(first['month']):02d})."
        )

    index = pd.to_datetime(pd.DataFrame({"year": df["year"], "month": df["month"], "day": 1}))
    series = pd.Series(df[column].to_numpy(dtype=float), index=pd.DatetimeIndex(index), name=column)
    logger.info(f"Loaded {len(series)} monthly observations from {path} ({series.index[0].date()} to {series.index[-1].date()})")
    return series


class TimeSeriesDataset:
    """Class for managing a univariate time series, including loading, splitting and saving results."""

    def __init__(
        self,
        dataset_name: str,
        config: Dict,
        data: Optional[pd.Series] = None,
        freq: Optional[str] = None,
    ) -> None:
        """
        Initialize the TimeSeriesDataset.

        Args:
            dataset_name: Name of the dataset, used in output file names.
            config: Dataset section of the configuration (path, format, column, freq, ...).
            data: Optional series to use instead of reading config['path'].
            freq: Optional frequency of the data (e.g., 'MS'). If None, uses config or infers it.

        Raises:
            ValueError: If dataset_name is empty, the config lacks a path, or the data is invalid.
            FileNotFoundError: If the file specified in config does not exist.
        """
        if not dataset_name:
            raise ValueError("dataset_name cannot be empty.")
        if data is None and "path" not in config:
            raise ValueError(f"Dataset '{dataset_name}' has no 'path' in its configuration.")
        if freq is not None and not isinstance(freq, str):
            raise ValueError("freq must be a string (e.g., 'MS').")

        self.name = dataset_name
        self.config = config
        self.path = config.get("path") if data is None else None
        self.format = config.get("format", "noaa")
        self.column = config.get("column", "average" if self.format == "noaa" else None)
        self.freq = freq if freq is not None else config.get("freq")
        raw = data if data is not None else self._load_data()
        self.series = validate_series(raw, freq=self.freq)
        self.freq = self.series.index.freqstr
        self.train_data: Optional[pd.Series] = None
        self.test_data: Optional[pd.Series] = None
        logger.info(f"TimeSeriesDataset '{self.name}' initialized with {len(self.series)} observations. Freq: {self.freq}")

    def _load_data(self) -> pd.Series:
        """
        Load the series from the file specified in the config.

        Returns:
            Series indexed by date.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the data is empty or the requested columns are missing.
            RuntimeError: If CSV parsing fails.
        """
        if self.format == "noaa":
            return load_noaa_monthly(self.path, column=self.column)

        if not self.path.startswith(REMOTE_PREFIXES) and not os.path.exists(self.path):
            raise FileNotFoundError(f"Dataset file not found: {self.path}")
        try:
            df = pd.read_csv(self.path)
        except pd.errors.ParserError as e:
            logger.error(f"Failed to parse CSV file {self.path}: {str(e)}")
            raise RuntimeError(f"Failed to parse CSV file: {str(e)}")
        if df.empty:
            raise ValueError(f"Dataset '{self.path}' is empty.")

        date_column = self.config.get("date_column", "date")
        if date_column not in df.columns:
            raise ValueError(f"Date column '{date_column}' not found in dataset.")
        if self.column is None:
            numeric = df.drop(columns=[date_column]).select_dtypes(include=np.number).columns.tolist()
            if not numeric:
                raise ValueError(f"Dataset '{self.path}' contains no numeric columns.")
            self.column = numeric[0]
            logger.info(f"No column configured. Using first numeric column: {self.column}")
        elif self.column not in df.columns:
            raise ValueError(f"Column '{self.column}' not found in dataset.")

        index = pd.DatetimeIndex(pd.to_datetime(df[date_column]))
        logger.info(f"Dataset '{self.path}' loaded with {len(df)} rows.")
        return pd.Series(df[self.column].to_numpy(dtype=float), index=index, name=self.column)

    def split_by_year(self, last_train_year: int) -> None:
        """
        Split into a training period up to and including last_train_year and a test period after it.

        Args:
            last_train_year: Last calendar year of the training period.

        Raises:
            ValueError: If either period would be empty.
        """
        if not isinstance(last_train_year, int):
            raise ValueError("last_train_year must be an integer.")
        in_train = self.series.index.year <= last_train_year
        if not in_train.any() or in_train.all():
            raise ValueError(
                f"Splitting at {last_train_year} leaves an empty period "
                f"(data spans {self.series.index[0].year}-{self.series.index[-1].year})."
            )
        self.train_data = self.series[in_train]
        self.test_data = self.series[~in_train]
        logger.info(
            f"Data split at year {last_train_year} into training set ({len(self.train_data)} rows) "
            f"and test set ({len(self.test_data)} rows)."
        )

    def split_data(self, test_steps: int) -> None:
        """
        Split into training and test sets, reserving the last test_steps observations for testing.

        Args:
            test_steps: Number of observations in the test set.

        Raises:
            ValueError: If test_steps is not positive or the dataset is too short.
        """
        if not isinstance(test_steps, int) or test_steps < 1:
            raise ValueError("test_steps must be a positive integer.")
        if len(self.series) <= test_steps:
            raise ValueError(f"Dataset is too short ({len(self.series)} rows) for {test_steps} test steps.")

        self.train_data = self.series.iloc[:-test_steps]
        self.test_data = self.series.iloc[-test_steps:]
        logger.info(
            f"Data split into training set ({len(self.train_data)} rows) and test set ({len(self.test_data)} rows)."
        )

    def get_train_data(self) -> pd.Series:
        if self.train_data is None:
            raise ValueError("Data has not been split yet. Call split_by_year() or split_data() first.")
        return self.train_data

    def get_test_data(self) -> pd.Series:
        if self.test_data is None:
            raise ValueError("Data has not been split yet. Call split_by_year() or split_data() first.")
        return self.test_data

    def save_forecast(
        self,
        forecast: Forecast,
        model_name: str,
        experiment_name: str,
        metrics: Optional[Dict[str, float]] = None,
        results_dir: str = "results",
    ) -> str:
        """
        Save a forecast (and optional metrics) to CSV files.

        Forecast rows that fall inside the test period also carry the actual observation.

        Args:
            forecast: Forecast to save.
            model_name: Name of the model (e.g., 'sarima').
            experiment_name: Name of the experiment.
            metrics: Optional dictionary of hold-out metrics.
            results_dir: Root output directory. Defaults to 'results'.

        Returns:
            Path of the forecast CSV file.

        Raises:
            ValueError: If model_name or experiment_name is empty.
            RuntimeError: If file saving fails due to I/O errors.
        """
        if not model_name or not experiment_name:
            raise ValueError("model_name and experiment_name cannot be empty.")

        frame = forecast.to_frame()
        frame.index.name = "date"
        if self.test_data is not None:
            frame["actual"] = self.test_data.reindex(frame.index)

        prefix = f"{self.name}_{experiment_name}_{model_name}"
        forecast_path = os.path.join(results_dir, "predictions", f"{prefix}_forecast.csv")
        try:
            os.makedirs(os.path.dirname(forecast_path), exist_ok=True)
            frame.to_csv(forecast_path)
            logger.info(f"Saved forecast to {forecast_path}")

            if metrics:
                metrics_path = os.path.join(results_dir, "metrics", f"{prefix}_metrics.csv")
                os.makedirs(os.path.dirname(metrics_path), exist_ok=True)
                row = {
                    "dataset": self.name,
                    "experiment": experiment_name,
                    "model": model_name,
                    "horizon": len(forecast),
                    "confidence_level": forecast.confidence_level,
                    **metrics,
                }
                pd.DataFrame([row]).to_csv(metrics_path, index=False)
                logger.info(f"Saved metrics to {metrics_path}")
        except OSError as e:
            logger.error(f"Failed to save results: {str(e)}")
            raise RuntimeError(f"Failed to save results: {str(e)}")
        return forecast_path
