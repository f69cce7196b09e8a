import pytest
import numpy as np
from utils.metrics import calculate_metrics, interval_coverage

# -- Test Cases --

# 1. Standard test case with simple, predictable values
def test_calculate_metrics_standard_case():
    """Tests the basic metric calculations on typical data."""
    actual = np.array([1, 2, 3, 4, 5])
    predicted = np.array([1.5, 2.5, 3.5, 4.5, 5.5])

    # Errors are all 0.5, so MAE = RMSE = 0.5.
    # Naive error = mean(|2-1|, |3-2|, |4-3|, |5-4|) = 1.0, so MASE = 0.5.
    metrics = calculate_metrics(actual, predicted)

    assert set(metrics) == {'mae', 'rmse', 'smape', 'mase'}
    assert metrics['mae'] == pytest.approx(0.5)
    assert metrics['rmse'] == pytest.approx(0.5)
    assert metrics['mase'] == pytest.approx(0.5)
    assert 0 < metrics['smape'] < 100

# 2. Case where predictions are perfect
def test_calculate_metrics_perfect_prediction():
    actual = np.array([10, 20, 30, 40, 50])
    metrics = calculate_metrics(actual, actual.copy())

    assert metrics['mae'] == 0.0
    assert metrics['rmse'] == 0.0
    assert metrics['smape'] == 0.0
    assert metrics['mase'] == 0.0

# 3. MASE scaled by a seasonal naive forecast on the training data
def test_calculate_metrics_seasonal_mase_uses_training_data():
    """
    The training series rises by 2 every 12 months, so the seasonal naive MAE is 2.
    A forecast off by 1 everywhere has MASE 0.5.
    """
    train = np.concatenate([np.arange(12), np.arange(12) + 2.0, np.arange(12) + 4.0])
    actual = np.arange(12) + 6.0
    metrics = calculate_metrics(actual, actual + 1.0, y_train=train, seasonal_period=12)
    assert metrics['mae'] == pytest.approx(1.0)
    assert metrics['mase'] == pytest.approx(0.5)

# 4. Constant data falls back to epsilon as MASE scale
def test_calculate_metrics_constant_naive_error_warns(caplog):
    actual = np.zeros(4)
    metrics = calculate_metrics(actual, actual)
    assert metrics['mase'] == 0.0
    assert "Naive error is very small" in caplog.text

# 5. Invalid inputs
@pytest.mark.parametrize("y_true, y_pred, kwargs, error_msg", [
    (np.array([]), np.array([]), {}, "Input arrays cannot be empty"),
    (np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0]), {}, "Shape mismatch"),
    (np.array([1.0, np.nan, 3.0]), np.array([1.0, 2.0, 3.0]), {}, "y_true cannot contain NaN"),
    (np.array([1.0, 2.0, 3.0]), np.array([1.0, np.inf, 3.0]), {}, "y_pred cannot contain infinite"),
    (np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0]), {"seasonal_period": 3}, "MASE requires more than 3"),
    (np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0]), {"epsilon": 0.0}, "epsilon must be positive"),
])
def test_calculate_metrics_invalid_inputs(y_true, y_pred, kwargs, error_msg):
    with pytest.raises(ValueError, match=error_msg):
        calculate_metrics(y_true, y_pred, **kwargs)

# 6. Interval coverage
def test_interval_coverage_counts_inclusive_bounds():
    actual = np.array([1.0, 2.0, 3.0, 4.0])
    lower = np.array([0.0, 2.0, 3.5, 3.0])
    upper = np.array([2.0, 3.0, 4.0, 4.0])
    # Inside: 1.0, 2.0 (on the bound), 4.0 (on the bound); outside: 3.0
    assert interval_coverage(actual, lower, upper) == pytest.approx(0.75)

@pytest.mark.parametrize("lower, upper, error_msg", [
    (np.array([0.0, 1.0]), np.array([1.0, 2.0, 3.0]), "Shape mismatch"),
    (np.array([0.0, 3.0, 1.0]), np.array([1.0, 2.0, 3.0]), "lower bounds cannot exceed upper bounds"),
])
def test_interval_coverage_invalid_inputs(lower, upper, error_msg):
    with pytest.raises(ValueError, match=error_msg):
        interval_coverage(np.array([0.5, 1.5, 2.5]), lower, upper)
