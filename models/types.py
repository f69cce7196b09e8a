"""Data containers shared by the seasonal ARIMA fitter, forecaster and diagnostics.

Time series themselves are plain pandas Series with a fixed-frequency DatetimeIndex
(see utils.data_utils.validate_series); the dataclasses below describe model orders,
fitted models, forecasts and test results.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.special import inv_boxcox

from models.errors import InvalidOrderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeasonalOrder:
    """ARIMA(p,d,q)(P,D,Q)[s] orders."""

    p: int
    d: int
    q: int
    P: int = 0
    D: int = 0
    Q: int = 0
    s: int = 0

    @classmethod
    def from_params(cls, model_params: Dict[str, Any], seasonal: bool = True) -> "SeasonalOrder":
        """
        Build an order from a model parameter dictionary.

        Args:
            model_params: Dictionary with keys p, d, q and, for seasonal models, P, D, Q, seasonal_period.
            seasonal: Whether to read the seasonal keys. Defaults to True.

        Returns:
            A validated SeasonalOrder.

        Raises:
            InvalidOrderError: If a required key is missing or an order is invalid.
        """
        required = ["p", "d", "q"] + (["P", "D", "Q", "seasonal_period"] if seasonal else [])
        missing = [key for key in required if key not in model_params]
        if missing:
            raise InvalidOrderError(f"Missing required parameter(s): {missing}")

        if seasonal:
            order = cls(
                p=model_params["p"], d=model_params["d"], q=model_params["q"],
                P=model_params["P"], D=model_params["D"], Q=model_params["Q"],
                s=model_params["seasonal_period"],
            )
        else:
            order = cls(p=model_params["p"], d=model_params["d"], q=model_params["q"])
        order.validate()
        return order

    def validate(self) -> None:
        """
        Check that all orders are non-negative integers and the seasonal period is usable.

        Raises:
            InvalidOrderError: If any order is negative or not an integer, or if a seasonal
                order is non-zero while s < 2.
        """
        for name in ("p", "d", "q", "P", "D", "Q", "s"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 0:
                raise InvalidOrderError(f"Order {name} must be a non-negative integer, got {value!r}.")
        if (self.P or self.D or self.Q) and self.s < 2:
            raise InvalidOrderError(
                f"Seasonal period s must be at least 2 when a seasonal order is non-zero, got s={self.s}."
            )

    @property
    def is_seasonal(self) -> bool:
        return bool(self.P or self.D or self.Q)

    @property
    def order(self) -> Tuple[int, int, int]:
        return self.p, self.d, self.q

    @property
    def seasonal_order(self) -> Tuple[int, int, int, int]:
        if not self.is_seasonal:
            return 0, 0, 0, 0
        return self.P, self.D, self.Q, self.s

    @property
    def arma_param_count(self) -> int:
        """Number of AR and MA coefficients (used as Ljung-Box degrees-of-freedom adjustment)."""
        return self.p + self.q + self.P + self.Q

    @property
    def differencing_loss(self) -> int:
        """Observations consumed by regular and seasonal differencing."""
        return self.d + self.D * (self.s if self.is_seasonal else 0)

    def __str__(self) -> str:
        text = f"ARIMA({self.p},{self.d},{self.q})"
        if self.is_seasonal:
            text += f"({self.P},{self.D},{self.Q})[{self.s}]"
        return text


@dataclass
class FittedModel:
    """Result of a seasonal ARIMA fit. Produced once by the fitter and not shared."""

    order: SeasonalOrder
    train_series: pd.Series
    params: pd.Series
    residuals: pd.Series
    sigma2: float
    llf: float
    aic: float
    aicc: float
    bic: float
    n_iter: int
    lmbda: Optional[float] = None
    # Divisor applied to the (transformed) series before estimation; `results` lives on that scale
    scale: float = 1.0
    results: Any = field(default=None, repr=False)

    @property
    def transformed(self) -> bool:
        return self.lmbda is not None

    @property
    def nobs(self) -> int:
        return len(self.train_series)

    @property
    def fitted_values(self) -> pd.Series:
        """One-step-ahead in-sample predictions on the original scale, aligned with the residuals."""
        if self.results is None:
            raise ValueError("Fitted model has no estimation results attached.")
        values = pd.Series(
            self.scale * np.asarray(self.results.fittedvalues, dtype=float), index=self.train_series.index
        ).iloc[self.order.differencing_loss:]
        if self.lmbda is not None:
            values = pd.Series(inv_boxcox(values.to_numpy(), self.lmbda), index=values.index)
        values.name = self.train_series.name
        return values

    def summary(self) -> Dict[str, Any]:
        """Compact description of the fit for logs and reports."""
        return {
            "order": str(self.order),
            "lambda": self.lmbda,
            "nobs": self.nobs,
            "sigma2": self.sigma2,
            "loglik": self.llf,
            "aic": self.aic,
            "aicc": self.aicc,
            "bic": self.bic,
            "params": self.params.to_dict(),
        }


@dataclass
class Forecast:
    """Point forecasts and prediction bounds for contiguous future periods."""

    frame: pd.DataFrame
    confidence_level: float

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def index(self) -> pd.DatetimeIndex:
        return self.frame.index

    @property
    def mean(self) -> pd.Series:
        return self.frame["mean"]

    @property
    def lower(self) -> pd.Series:
        return self.frame["lower"]

    @property
    def upper(self) -> pd.Series:
        return self.frame["upper"]

    @property
    def width(self) -> pd.Series:
        return self.frame["upper"] - self.frame["lower"]

    def to_frame(self) -> pd.DataFrame:
        return self.frame.copy()


@dataclass(frozen=True)
class DiagnosticResult:
    """Test statistic and p-value of a statistical test."""

    statistic: float
    p_value: float
    lag: int
    df: int
    test: str = "ljung_box"

    def is_white_noise(self, significance: float = 0.05) -> bool:
        """
        Interpret a Ljung-Box result: True when the white-noise null is not rejected.

        Args:
            significance: Test level. Defaults to 0.05.
        """
        if not 0.0 < significance < 1.0:
            raise ValueError("significance must be in (0, 1).")
        return bool(self.p_value > significance)
