"""Module for registering and instantiating forecasting models.

Forecasters register under the name used in the `models` section of config.yaml
('arima', 'sarima'). The driver builds them by that name from the validated configuration.
"""

import logging
from typing import Any, Callable, Dict, List, Type

from models.base import TSForecaster
from utils.config_utils import get_model_config

logger = logging.getLogger(__name__)

model_registry: Dict[str, Type[TSForecaster]] = {}
"""Global dictionary mapping model names to their respective classes."""


def register_model(name: str) -> Callable:
    """
    Decorator registering a forecaster class under `name` and setting its `model_name`.

    Args:
        name: Unique name for the model (e.g., 'sarima').

    Raises:
        ValueError: If name is empty or already registered.
        TypeError: If the decorated class is not a subclass of TSForecaster.
    """
    if not name:
        raise ValueError("Model name cannot be empty.")
    if name in model_registry:
        raise ValueError(f"Model '{name}' is already registered. Registered models: {list(model_registry)}")

    def decorator(model_class: Type) -> Type:
        if not isinstance(model_class, type) or not issubclass(model_class, TSForecaster):
            raise TypeError("Model class must be a subclass of TSForecaster.")
        model_class.model_name = name
        model_registry[name] = model_class
        logger.debug(f"Registered model '{name}' -> {model_class.__name__}")
        return model_class

    return decorator


def unregister_model(name: str) -> Type[TSForecaster]:
    """Remove a model from the registry and return its class."""
    if name not in model_registry:
        raise ValueError(f"Model '{name}' is not registered.")
    return model_registry.pop(name)


def get_model_class(name: str) -> Type[TSForecaster]:
    if not name:
        raise ValueError("Model name cannot be empty.")
    if name not in model_registry:
        raise ValueError(f"Model '{name}' is not registered. Available models: {list(model_registry)}")
    return model_registry[name]


def create_model(name: str, model_params: Dict[str, Any], forecast_steps: int) -> TSForecaster:
    """
    Create an instance of a registered forecasting model.

    Args:
        name: Name of the model to instantiate (e.g., 'sarima').
        model_params: Order and estimation settings passed to the constructor.
        forecast_steps: Default forecast horizon of the model.

    Returns:
        Unfitted forecaster.

    Raises:
        ValueError: If the model name is not registered or the parameters are invalid.
    """
    model_class = get_model_class(name)
    logger.info(f"Creating model '{name}' ({model_class.__name__}) with params: {model_params}")
    return model_class(model_params, forecast_steps)


def create_model_from_config(name: str, config: Dict[str, Any], forecast_steps: int) -> TSForecaster:
    """
    Create a registered model from its parameter block in a validated configuration.

    Args:
        name: Name of the model, also the key of its block in config['models'].
        config: Validated configuration.
        forecast_steps: Default forecast horizon of the model.

    Returns:
        Unfitted forecaster.

    Raises:
        ValueError: If the model is not registered or has no configuration block.
    """
    get_model_class(name)
    return create_model(name, get_model_config(name, config), forecast_steps)


def list_registered_models() -> List[str]:
    return list(model_registry)
