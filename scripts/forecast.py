"""
Module for fitting seasonal ARIMA models and forecasting monthly series.

This module runs the experiments of a configuration file: it loads and splits the dataset,
writes the series/ACF/PACF displays used to choose differencing orders, then for every
configured model fits it, checks its residuals with the Ljung-Box test, forecasts the
requested horizon, scores the forecast against the test period where they overlap, and
saves plots and CSV files.
"""

import argparse
import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np

# Explicitly import model files to ensure registration
import models.arima
import models.sarima
from models.base import TSForecaster
from models.errors import ForecastingError
from models.model_registry import create_model_from_config
from utils.config_utils import load_config
from utils.dataset import TimeSeriesDataset
from utils.dependencies import check_dependencies
from utils.metrics import calculate_metrics, interval_coverage
from utils.preprocessor import difference
from utils.visualizer import Visualizer

logger = logging.getLogger(__name__)


def setup_logging(log_dir: str = "results/logs") -> None:
    """
    Configure logging to file and console.

    Args:
        log_dir (str): Directory to store log files. Defaults to 'results/logs'.
    """
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "forecast.log")),
            logging.StreamHandler()
        ]
    )


def initialize_environment(config: Optional[Dict] = None) -> None:
    """
    Initialize the environment by setting up logging and the random seed.

    Args:
        config (Dict, optional): Configuration dictionary with an optional 'output' section.
    """
    output = config.get('output', {}) if config else {}
    setup_logging(output.get('log_dir', 'results/logs'))
    np.random.seed(42)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv (List[str], optional): Arguments to parse. Defaults to sys.argv.

    Returns:
        argparse.Namespace: Parsed arguments.
    """
    parser = argparse.ArgumentParser(description="Fit seasonal ARIMA models and forecast monthly series")
    parser.add_argument('--experiment', type=str, default=None, help="Name of the experiment to run from config.yaml. If None, runs all experiments.")
    parser.add_argument('--models', nargs='+', default=None, help="Restrict the run to these model names")
    parser.add_argument('--config-path', default='config.yaml', help="Path to the configuration file")
    parser.add_argument('--no-plots', action='store_true', help="Skip writing plots")
    return parser.parse_args(argv)


def load_and_prepare_dataset(config: Dict) -> TimeSeriesDataset:
    """
    Load the configured dataset and split it into training and test periods.

    Args:
        config (Dict): Validated configuration.

    Returns:
        TimeSeriesDataset: Dataset with train_data and test_data set.
    """
    dataset_config = config['dataset']
    dataset = TimeSeriesDataset(dataset_config['name'], dataset_config)
    if 'test_steps' in dataset_config:
        dataset.split_data(dataset_config['test_steps'])
    else:
        dataset.split_by_year(dataset_config.get('last_train_year', 2020))
    return dataset


def write_differencing_displays(dataset: TimeSeriesDataset, config: Dict, plot_root: str) -> List[str]:
    """
    Write series/ACF/PACF displays of the training data before and after differencing.

    The seasonal period is taken from the sarima block when present, otherwise 12.

    Args:
        dataset (TimeSeriesDataset): Split dataset.
        config (Dict): Validated configuration.
        plot_root (str): Root directory of the plots.

    Returns:
        List[str]: Paths of the saved plots.
    """
    period = config['models'].get('sarima', {}).get('seasonal_period', 12)
    max_lag = config.get('diagnostics', {}).get('max_lag')
    train = dataset.get_train_data()
    seasonal = difference(train, order=1, lag=period)
    both = difference(seasonal, order=1, lag=1)

    paths = [Visualizer.plot_series(dataset.name, dataset.series, output_root=plot_root)]
    for label, series in [("raw", train), (f"diff{period}", seasonal), (f"diff{period}_diff1", both)]:
        paths.append(
            Visualizer.plot_tsdisplay(
                dataset.name, series, label, max_lag=max_lag, seasonal_period=period, output_root=plot_root
            )
        )
    return paths


def run_model(
        model_name: str,
        dataset: TimeSeriesDataset,
        config: Dict,
        experiment_config: Dict,
        make_plots: bool = True,
) -> Dict[str, Any]:
    """
    Fit one model, check its residuals, forecast and save the results.

    Args:
        model_name (str): Name of the registered model.
        dataset (TimeSeriesDataset): Split dataset.
        config (Dict): Validated configuration.
        experiment_config (Dict): Experiment section (horizon, confidence_level, bias_adjust, fit_on).
        make_plots (bool): Whether to write plots. Defaults to True.

    Returns:
        Dict[str, Any]: The forecaster, its Ljung-Box result, the forecast, and hold-out metrics
        (empty if the forecast does not overlap the test period).
    """
    exp_name = experiment_config['name']
    horizon = experiment_config['horizon']
    confidence_level = experiment_config.get('confidence_level', 0.95)
    diagnostics = config.get('diagnostics', {})
    output = config.get('output', {})
    results_dir = output.get('results_dir', 'results')
    plot_root = os.path.join(results_dir, 'plots')

    history = dataset.series if experiment_config.get('fit_on', 'train') == 'full' else dataset.get_train_data()
    forecaster: TSForecaster = create_model_from_config(model_name, config, horizon)
    fitted = forecaster.fit(history)
    logger.info(f"[{model_name}] Fitted {fitted.order}: {fitted.summary()}")

    diagnostic = forecaster.diagnose(
        lag=diagnostics.get('ljung_box_lag'), significance=diagnostics.get('significance', 0.05)
    )
    result = forecaster.forecast(
        horizon, confidence_level=confidence_level, bias_adjust=experiment_config.get('bias_adjust', False)
    )

    metrics: Dict[str, float] = {}
    actual = dataset.test_data.reindex(result.index).dropna() if dataset.test_data is not None else None
    if actual is not None and not actual.empty and history.index[-1] < actual.index[0]:
        predicted = result.mean.loc[actual.index]
        metrics = calculate_metrics(
            actual.to_numpy(), predicted.to_numpy(), y_train=history.to_numpy(),
            seasonal_period=max(forecaster.seasonal_period, 1),
        )
        metrics['coverage'] = interval_coverage(
            actual.to_numpy(), result.lower.loc[actual.index].to_numpy(), result.upper.loc[actual.index].to_numpy()
        )
        logger.info(f"[{model_name}] Hold-out metrics over {len(actual)} steps: {metrics}")
    else:
        logger.info(f"[{model_name}] Forecast does not overlap the test period; skipping hold-out metrics.")
    metrics['ljung_box_p_value'] = diagnostic.p_value

    dataset.save_forecast(result, model_name, exp_name, metrics=metrics, results_dir=results_dir)
    if make_plots:
        label = f"{exp_name}_{model_name}"
        Visualizer.plot_forecast(dataset.name, label, result, history, actual=actual, output_root=plot_root)
        Visualizer.plot_residuals(dataset.name, label, fitted, max_lag=diagnostics.get('max_lag'), output_root=plot_root)

    return {'forecaster': forecaster, 'diagnostic': diagnostic, 'forecast': result, 'metrics': metrics}


def main(argv: Optional[List[str]] = None) -> Dict[str, Dict[str, Any]]:
    """
    Main function to run the forecasting pipeline.

    Parses arguments, loads configuration, prepares the dataset, and runs experiments.

    Returns:
        Dict[str, Dict[str, Any]]: Results keyed by '<experiment>/<model>'.
    """
    args = parse_arguments(argv)
    config = load_config(args.config_path)
    initialize_environment(config)

    experiments_to_run = config['experiments']
    if args.experiment:
        experiments_to_run = [exp for exp in experiments_to_run if exp['name'] == args.experiment]
        if not experiments_to_run:
            logger.error(f"Experiment '{args.experiment}' not found.")
            return {}

    dataset = load_and_prepare_dataset(config)
    plot_root = os.path.join(config.get('output', {}).get('results_dir', 'results'), 'plots')
    if not args.no_plots:
        write_differencing_displays(dataset, config, plot_root)

    results: Dict[str, Dict[str, Any]] = {}
    for experiment_config in experiments_to_run:
        exp_name = experiment_config['name']
        logger.info(f"================== Starting Experiment: {exp_name} ==================")
        logger.info(experiment_config['description'])

        models_to_run = experiment_config['models']
        if args.models:
            models_to_run = [name for name in models_to_run if name in args.models]
        check_dependencies(models_to_run)

        for model_name in models_to_run:
            try:
                results[f"{exp_name}/{model_name}"] = run_model(
                    model_name, dataset, config, experiment_config, make_plots=not args.no_plots
                )
            except ForecastingError as e:
                logger.error(f"Failed to process model {model_name} for experiment '{exp_name}': {e}", exc_info=True)
                continue
    return results


if __name__ == "__main__":
    main()
