from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from stockcast.services import algorithms
from stockcast.services.seasonality import detect_seasonality


WEEKLY_PATTERN = [10, 10, 10, 10, 10, 30, 30] * 4


def test_sma_feeds_predictions_back_into_window() -> None:
    forecast = algorithms.simple_moving_average(list(range(1, 11)), periods=3, window=3)

    assert forecast[0] == pytest.approx(9.0)
    assert forecast[1] == pytest.approx((9 + 10 + 9) / 3)
    assert forecast[2] == pytest.approx((10 + 9 + forecast[1]) / 3)


def test_sma_with_short_history_is_the_mean() -> None:
    assert algorithms.simple_moving_average([2, 4], periods=3, window=7) == pytest.approx([3.0, 3.0, 3.0])
    assert algorithms.simple_moving_average([], periods=2) == [0.0, 0.0]


def test_sma_constant_history() -> None:
    assert algorithms.simple_moving_average([10] * 30, periods=5, window=7) == pytest.approx([10.0] * 5)


def test_moving_average_step_rejects_bad_window() -> None:
    with pytest.raises(ValueError):
        algorithms.moving_average_step([1, 2, 3], 0)


def test_zero_periods_gives_empty_forecast() -> None:
    assert algorithms.simple_moving_average([1, 2, 3], periods=0) == []
    with pytest.raises(ValueError):
        algorithms.simple_moving_average([1, 2, 3], periods=-1)


def test_exponential_smoothing_level() -> None:
    assert algorithms.exponential_smoothing([10, 20], periods=2, alpha=0.5) == pytest.approx([15.0, 15.0])
    assert algorithms.exponential_smoothing([], periods=2) == [0.0, 0.0]


def test_double_exponential_smoothing_constant_and_single_point() -> None:
    assert algorithms.double_exponential_smoothing([5] * 10, periods=3) == pytest.approx([5.0] * 3)
    assert algorithms.double_exponential_smoothing([4], periods=2) == pytest.approx([4.0, 4.0])


def test_double_exponential_smoothing_follows_trend() -> None:
    forecast = algorithms.double_exponential_smoothing(list(range(0, 40, 2)), periods=3)
    assert forecast[0] < forecast[1] < forecast[2]


def test_linear_regression_perfect_trend() -> None:
    forecast, fit = algorithms.linear_regression([5, 10, 15, 20, 25], periods=2)

    assert forecast == pytest.approx([30.0, 35.0])
    assert fit == pytest.approx(1.0)


def test_linear_regression_clamps_at_zero() -> None:
    forecast, _ = algorithms.linear_regression([10, 8, 6, 4, 2], periods=3)
    assert forecast == [0.0, 0.0, 0.0]


def test_linear_regression_short_history_is_flat() -> None:
    forecast, fit = algorithms.linear_regression([7], periods=2)
    assert forecast == [7.0, 7.0]
    assert fit is None


def test_seasonal_decomposition_short_history_uses_holt() -> None:
    history = [3, 4, 5, 6, 7]
    forecast, seasonality = algorithms.seasonal_decomposition(history, periods=4)

    assert forecast == pytest.approx(algorithms.double_exponential_smoothing(history, 4))
    assert not seasonality.detected


def test_seasonal_decomposition_applies_factors() -> None:
    forecast, seasonality = algorithms.seasonal_decomposition(WEEKLY_PATTERN, periods=7, seasonal_period=7)
    trend = algorithms.double_exponential_smoothing(WEEKLY_PATTERN, 7)

    assert seasonality.detected and seasonality.period == 7
    for step, value in enumerate(forecast):
        assert value == pytest.approx(trend[step] * seasonality.factors[step])
    assert forecast[5] > forecast[0]


def test_seasonal_decomposition_detects_weekly_cycle() -> None:
    _, seasonality = algorithms.seasonal_decomposition(
        WEEKLY_PATTERN, periods=7, min_period=7, max_period=10
    )
    assert seasonality == detect_seasonality(WEEKLY_PATTERN, 7, 10)
    assert seasonality.period == 7
