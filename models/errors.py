"""Exceptions raised by the forecasting core.

Every error is raised at the point of the offending call and is never retried or
replaced by a silent fallback. The value-type errors also derive from ValueError
so callers that already guard against ValueError keep working.
"""


class ForecastingError(Exception):
    """Base class for all forecasting errors."""
    pass


class InsufficientDataError(ForecastingError, ValueError):
    """The series is too short for the requested operation."""
    pass


class InvalidLagError(ForecastingError, ValueError):
    """A lag is inconsistent with the series length or mathematically invalid."""
    pass


class InvalidOrderError(ForecastingError, ValueError):
    """A differencing or ARIMA order is invalid for the given series."""
    pass


class InvalidTransformError(ForecastingError, ValueError):
    """A variance-stabilizing transform cannot be applied to the data."""
    pass


class NonConvergenceError(ForecastingError, RuntimeError):
    """The likelihood optimizer did not reach a stable solution within its iteration cap."""
    pass


class BackTransformError(ForecastingError, ValueError):
    """A forecast or bound falls outside the domain of the inverse Box-Cox transform."""
    pass
