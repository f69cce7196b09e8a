"""Module for loading and validating configuration files of the forecasting toolkit.

This module provides utilities to load YAML configuration files and validate the dataset,
model, experiment, diagnostics and output sections before any data is read or model fitted.
"""

import logging
import os
from typing import Dict

import yaml
from pandas.tseries.frequencies import to_offset
from schema import And, Optional as SchemaOptional, Or, Schema, SchemaError

logger = logging.getLogger(__name__)

# Model names for validation, aligned with model_registry.py
MODEL_NAMES = {"arima", "sarima"}

TRANSFORM_NAMES = {"none", "auto", "log"}

REMOTE_PREFIXES = ("http://", "https://", "ftp://")


class ConfigValidationError(Exception):
    """Compact, human-readable configuration validation error."""
    pass


def _compact_schema_error(err: Exception) -> str:
    """
    Turn a verbose SchemaError into a short, readable message.
    We try err.code first (often the clearest), then fallback to str(err).
    """
    msg = (getattr(err, "code", None) or str(err) or "").strip()
    # Collapse newlines/indents to one line for CLI readability
    return " ".join(msg.split())


def is_valid_freq(x: str) -> bool:
    try:
        return to_offset(x) is not None
    except ValueError:
        return False


def is_valid_source(x: str) -> bool:
    """Remote URLs are accepted as is; local paths must exist."""
    return x.startswith(REMOTE_PREFIXES) or os.path.exists(x)


non_negative_int = And(int, lambda x: x >= 0, error="Orders must be non-negative integers")

transform_schema = Or(
    None,
    And(str, lambda x: x in TRANSFORM_NAMES),
    And(Or(int, float), lambda x: not isinstance(x, bool)),
    error=f"`transform` must be one of {sorted(TRANSFORM_NAMES)} or a numeric Box-Cox lambda",
)

MODEL_SCHEMAS = {
    "arima": Schema({
        "p": non_negative_int,
        "d": non_negative_int,
        "q": non_negative_int,
        SchemaOptional("transform"): transform_schema,
        SchemaOptional("maxiter"): And(int, lambda x: x > 0),
    }),
    "sarima": Schema({
        "p": non_negative_int,
        "d": non_negative_int,
        "q": non_negative_int,
        "P": non_negative_int,
        "D": non_negative_int,
        "Q": non_negative_int,
        "seasonal_period": And(int, lambda x: x > 1, error="`seasonal_period` must be an integer greater than 1"),
        SchemaOptional("transform"): transform_schema,
        SchemaOptional("maxiter"): And(int, lambda x: x > 0),
    }),
}

dataset_schema = Schema({
    "name": And(str, len),
    "path": And(str, is_valid_source, error="Dataset file path does not exist"),
    SchemaOptional("format"): And(str, lambda x: x in ["noaa", "csv"]),
    SchemaOptional("column"): And(str, len),
    SchemaOptional("date_column"): And(str, len),
    SchemaOptional("freq"): And(str, is_valid_freq, error="Invalid frequency string"),
    SchemaOptional("last_train_year"): And(int, lambda x: x > 0),
    SchemaOptional("test_steps"): And(int, lambda x: x > 0),
})

experiment_schema = Schema({
    "name": And(str, len),
    "description": And(str, len),
    "models": And([And(str, lambda x: x in MODEL_NAMES)], len),
    "horizon": And(int, lambda n: n > 0),
    SchemaOptional("confidence_level"): And(float, lambda x: 0.0 < x < 1.0),
    SchemaOptional("bias_adjust"): bool,
    SchemaOptional("fit_on"): And(str, lambda x: x in ["train", "full"]),
})

config_schema = Schema({
    "dataset": dataset_schema,
    "models": {
        SchemaOptional("arima"): MODEL_SCHEMAS["arima"],
        SchemaOptional("sarima"): MODEL_SCHEMAS["sarima"],
    },
    "experiments": And([experiment_schema], len),
    SchemaOptional("diagnostics"): {
        SchemaOptional("max_lag"): And(int, lambda x: x > 0),
        SchemaOptional("ljung_box_lag"): And(int, lambda x: x > 0),
        SchemaOptional("significance"): And(float, lambda x: 0.0 < x < 1.0),
    },
    SchemaOptional("output"): {
        SchemaOptional("results_dir"): And(str, len),
        SchemaOptional("log_dir"): And(str, len),
    },
})


def validate_config(config: Dict) -> Dict:
    """
    Validate the configuration for the dataset, models and experiments.

    Args:
        config: Configuration dictionary loaded from YAML.

    Returns:
        Validated configuration dictionary.

    Raises:
        SchemaError: If the configuration does not match the schema or an experiment
            refers to a model without a parameter block.
    """
    try:
        validated_config = config_schema.validate(config)
        dataset = validated_config["dataset"]
        if "last_train_year" in dataset and "test_steps" in dataset:
            raise SchemaError("Specify at most one of `last_train_year` and `test_steps` in `dataset`.")
        configured_models = set(validated_config["models"])
        for experiment in validated_config["experiments"]:
            missing = set(experiment["models"]) - configured_models
            if missing:
                raise SchemaError(
                    f"Experiment '{experiment['name']}' uses model(s) {sorted(missing)} "
                    "without a parameter block in `models`."
                )
        logger.info("Configuration validation passed successfully")
        return validated_config
    except SchemaError as e:
        logger.error(f"Configuration validation failed: {_compact_schema_error(e)}")
        raise


def load_config(config_path: str = "config.yaml") -> Dict:
    """
    Load and validate a configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file. Defaults to 'config.yaml'.

    Returns:
        Validated configuration dictionary.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the configuration file is empty.
        ConfigValidationError: If the YAML is malformed or does not match the schema.
    """
    if not os.path.exists(config_path):
        logger.error(f"Configuration file not found: {config_path}")
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    try:
        with open(config_path, "r") as file:
            config = yaml.safe_load(file)
        if not config:
            logger.error("Configuration file is empty")
            raise ValueError("Configuration file is empty")
        return validate_config(config)
    except (yaml.YAMLError, SchemaError) as e:
        # Wrap with a short message (no stack trace) for the caller.
        raise ConfigValidationError(_compact_schema_error(e))


def get_model_config(model_name: str, config: Dict) -> Dict:
    """
    Return the parameter block of a model from a validated configuration.

    Args:
        model_name: Name of the model (e.g., 'sarima').
        config: Validated configuration dictionary.

    Returns:
        Copy of the model parameters.

    Raises:
        ValueError: If model_name is invalid or has no configuration.
    """
    if model_name not in MODEL_NAMES:
        raise ValueError(f"Invalid model name: {model_name}. Must be one of {sorted(MODEL_NAMES)}")
    model_config = config.get("models", {}).get(model_name)
    if not model_config:
        raise ValueError(f"No configuration found for model {model_name}.")
    return dict(model_config)
