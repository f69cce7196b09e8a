"""Module for checking the libraries required by the forecasting toolkit.

Each registered model declares the libraries it needs together with a minimum version where
the estimation code relies on newer behavior (e.g., statsmodels' `acorr_ljungbox` DataFrame
output and `mle_retvals` on state-space results). Missing or outdated libraries are reported
in one ImportError with installation instructions.
"""

import importlib.metadata
import importlib.util
import logging
import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from models.model_registry import list_registered_models

logger = logging.getLogger(__name__)


class Dependency(NamedTuple):
    module: str
    distribution: str
    usage: str
    min_version: Optional[str] = None


_STATSMODELS = Dependency("statsmodels", "statsmodels", "SARIMAX estimation and Ljung-Box test", "0.13")
_CORE = [
    Dependency("numpy", "numpy", "numerical computations"),
    Dependency("pandas", "pandas", "time-indexed series handling"),
    Dependency("scipy", "scipy", "Box-Cox transform and normal quantiles"),
]

# Mapping of models to their required libraries
MODEL_DEPENDENCIES: Dict[str, List[Dependency]] = {
    "arima": [_STATSMODELS] + _CORE,
    "sarima": [_STATSMODELS] + _CORE,
}

# Optional dependencies for plotting and configuration files
OPTIONAL_DEPENDENCIES: List[Dependency] = [
    Dependency("matplotlib", "matplotlib", "plotting in Visualizer"),
    Dependency("yaml", "PyYAML", "reading config.yaml"),
]


def _version_tuple(version: str) -> Tuple[int, ...]:
    """Numeric release components of a version string ('1.14.0rc1' -> (1, 14, 0))."""
    parts = []
    for part in version.split("."):
        match = re.match(r"\d+", part)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)


def installed_version(dependency: Dependency) -> Optional[str]:
    """
    Return the installed version of a dependency, or None if it cannot be imported.

    Args:
        dependency: Library to look up.

    Returns:
        Version string, 'unknown' if the package is importable but has no metadata, or None.
    """
    if importlib.util.find_spec(dependency.module) is None:
        return None
    try:
        return importlib.metadata.version(dependency.distribution)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _install_command(dependency: Dependency, package_manager: str) -> str:
    requirement = dependency.distribution
    if dependency.min_version:
        requirement = f"'{requirement}>={dependency.min_version}'"
    return f"{package_manager} install {requirement}"


def check_dependencies(model_names: Optional[List[str]] = None, package_manager: str = "pip") -> Dict[str, str]:
    """
    Check that the libraries required by the given models are installed and recent enough.

    Args:
        model_names: Models to check. If None, checks all registered models and the optional
            dependencies. Defaults to None.
        package_manager: Package manager for installation instructions ('pip' or 'conda'). Defaults to 'pip'.

    Returns:
        Installed versions keyed by distribution name.

    Raises:
        ValueError: If model_names contains unregistered models or package_manager is invalid.
        ImportError: If required libraries are missing or older than their minimum version.
    """
    check_optional = model_names is None
    registered_models = list_registered_models()
    if model_names is None:
        model_names = registered_models
    else:
        invalid_models = [name for name in model_names if name not in registered_models]
        if invalid_models:
            raise ValueError(
                f"Invalid model names: {invalid_models}. Available models: {registered_models}"
            )

    if package_manager not in {"pip", "conda"}:
        raise ValueError("package_manager must be 'pip' or 'conda'.")

    to_check: Dict[str, Tuple[Dependency, str]] = {}
    for model_name in model_names:
        for dependency in MODEL_DEPENDENCIES.get(model_name, []):
            to_check.setdefault(dependency.module, (dependency, f"{dependency.usage} in {model_name}"))
    if check_optional:
        for dependency in OPTIONAL_DEPENDENCIES:
            to_check.setdefault(dependency.module, (dependency, dependency.usage))

    versions: Dict[str, str] = {}
    problems = []
    for dependency, usage in to_check.values():
        version = installed_version(dependency)
        if version is None:
            problems.append(f"- {dependency.distribution}: Used for {usage}. Install with: "
                            f"{_install_command(dependency, package_manager)}")
            continue
        versions[dependency.distribution] = version
        if (
            dependency.min_version
            and version != "unknown"
            and _version_tuple(version) < _version_tuple(dependency.min_version)
        ):
            problems.append(f"- {dependency.distribution}: Version {version} is older than the required "
                            f"{dependency.min_version} ({usage}). Upgrade with: "
                            f"{_install_command(dependency, package_manager)}")

    if problems:
        error_message = "Missing required libraries:\n" + "\n".join(problems) + "\n"
        logger.error(error_message)
        raise ImportError(error_message)

    logger.info(f"All required libraries for models {model_names} are installed: {versions}")
    return versions
