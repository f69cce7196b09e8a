"""
Script for generating a synthetic monthly series with trend and seasonality.

The output CSV has a 'date' column and one value column and can be used as a 'csv' dataset
in config.yaml when the NOAA file is not available.
"""

import argparse
import logging
import os
from typing import List, Optional

import pandas as pd

from utils.data_utils import generate_synthetic_series
from utils.visualizer import Visualizer

logger = logging.getLogger(__name__)


def setup_logging(log_dir: str = "results/logs") -> None:
    """
    Configure logging to file and console.
    """
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "synthetic_data.log")),
            logging.StreamHandler()
        ]
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a synthetic monthly trend + seasonality series")
    parser.add_argument('--name', default='synthetic_co2', help="Dataset name, used for the file name")
    parser.add_argument('--length', type=int, default=780, help="Number of monthly observations")
    parser.add_argument('--start-date', default='1958-03-01', help="First month")
    parser.add_argument('--base-level', type=float, default=315.0)
    parser.add_argument('--slope', type=float, default=0.13, help="Trend per month")
    parser.add_argument('--amplitude', type=float, default=3.0, help="Amplitude of the seasonal cycle")
    parser.add_argument('--noise-level', type=float, default=0.3, help="Standard deviation of the noise")
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--output-dir', default='data')
    parser.add_argument('--no-plot', action='store_true', help="Skip writing the plot")
    return parser.parse_args(argv)


def generate_synthetic_dataset(args: argparse.Namespace) -> pd.DataFrame:
    """
    Generate the series and save it as CSV.

    Args:
        args: Parsed command-line arguments.

    Returns:
        DataFrame with 'date' and 'value' columns.
    """
    series = generate_synthetic_series(
        length=args.length,
        start_date=args.start_date,
        base_level=args.base_level,
        slope=args.slope,
        amplitude=args.amplitude,
        noise_level=args.noise_level,
        seed=args.seed,
        name="value",
    )
    df = series.rename_axis("date").reset_index()

    os.makedirs(args.output_dir, exist_ok=True)
    output_path = os.path.join(args.output_dir, f"{args.name}.csv")
    df.to_csv(output_path, index=False)
    logger.info(f"Saved synthetic dataset with {len(df)} rows to {output_path}")
    return df


def main(argv: Optional[List[str]] = None) -> pd.DataFrame:
    setup_logging()
    args = parse_arguments(argv)
    df = generate_synthetic_dataset(args)
    if not args.no_plot:
        Visualizer.plot_series(args.name, df.set_index("date")["value"], ylabel="Value")
    return df


if __name__ == "__main__":
    main()
