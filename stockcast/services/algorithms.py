"""Point-forecast algorithms.

Every function takes a demand history (``DemandObservation`` objects or bare
quantities, oldest first) plus the number of future ``periods`` and returns
that many non-negative predictions.  Short histories degrade to simpler
methods instead of raising.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from ..models.schemas import SeasonalityInfo
from .seasonality import (
    DEFAULT_MAX_PERIOD,
    DEFAULT_MIN_PERIOD,
    SEASONALITY_STRENGTH_THRESHOLD,
    detect_seasonality,
    seasonal_factors,
)
from .statistics import History, quantities, r2 as r_squared

DEFAULT_SMA_WINDOW = 7
DEFAULT_ALPHA = 0.3
DEFAULT_BETA = 0.1
MIN_SEASONAL_HISTORY = 14


def check_periods(periods: int) -> int:
    periods = int(periods)
    if periods < 0:
        raise ValueError("periods must be a non-negative integer")
    return periods


def _flat(value: float, periods: int) -> List[float]:
    return [max(float(value), 0.0)] * periods


# ---------------------------------------------------------------------------
# Simple moving average


def moving_average_step(buffer: Sequence[float], window: int) -> float:
    """Average of the last ``window`` entries of ``buffer``."""

    if window <= 0:
        raise ValueError("window must be a positive integer")
    tail = np.asarray(buffer[-window:], dtype=float)
    if tail.size == 0:
        return 0.0
    return max(float(tail.mean()), 0.0)


def simple_moving_average(
    history: History, periods: int = 30, window: int = DEFAULT_SMA_WINDOW
) -> List[float]:
    """Rolling mean that feeds its own predictions back into the window.

    Once the forecast horizon passes the end of the history, step ``i``
    averages actual values together with the predictions made for the steps
    before it.  A history shorter than ``window`` yields its overall mean.
    """

    periods = check_periods(periods)
    if window <= 0:
        raise ValueError("window must be a positive integer")

    values = quantities(history)
    if values.size < window:
        average = float(values.mean()) if values.size else 0.0
        return _flat(average, periods)

    buffer: List[float] = [float(v) for v in values]
    forecast: List[float] = []
    for _ in range(periods):
        next_value = moving_average_step(buffer, window)
        forecast.append(next_value)
        buffer.append(next_value)
    return forecast


# ---------------------------------------------------------------------------
# Exponential smoothing


def exponential_smoothing(history: History, periods: int = 30, alpha: float = DEFAULT_ALPHA) -> List[float]:
    """Single exponential smoothing; the forecast is flat at the final level."""

    periods = check_periods(periods)
    values = quantities(history)
    if values.size == 0:
        return [0.0] * periods

    level = float(values[0])
    for value in values[1:]:
        level = alpha * float(value) + (1.0 - alpha) * level
    return _flat(level, periods)


def double_exponential_smoothing(
    history: History,
    periods: int = 30,
    alpha: float = DEFAULT_ALPHA,
    beta: float = DEFAULT_BETA,
) -> List[float]:
    """Holt's linear method: smoothed level plus smoothed trend."""

    periods = check_periods(periods)
    values = quantities(history)
    if values.size < 2:
        return exponential_smoothing(values, periods, alpha)

    level = float(values[0])
    trend = float(values[1] - values[0])
    for value in values[1:]:
        previous_level = level
        level = alpha * float(value) + (1.0 - alpha) * (level + trend)
        trend = beta * (level - previous_level) + (1.0 - beta) * trend

    return [max(0.0, level + step * trend) for step in range(1, periods + 1)]


# ---------------------------------------------------------------------------
# Linear regression


def linear_regression(history: History, periods: int = 30) -> tuple[List[float], Optional[float]]:
    """Least-squares line through (day index, quantity).

    Returns the forecast and the in-sample R².  With fewer than two points
    the forecast is flat and R² is ``None``.
    """

    periods = check_periods(periods)
    y = quantities(history)
    n = y.size
    if n < 2:
        return _flat(float(y.mean()) if n else 0.0, periods), None

    x = np.arange(n, dtype=float)
    sum_x = float(x.sum())
    sum_y = float(y.sum())
    sum_xy = float((x * y).sum())
    sum_x2 = float((x * x).sum())

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    fitted = slope * x + intercept
    fit_quality = r_squared(y, fitted)

    future_x = np.arange(n, n + periods, dtype=float)
    forecast = [max(0.0, float(v)) for v in slope * future_x + intercept]
    return forecast, fit_quality


# ---------------------------------------------------------------------------
# Seasonal decomposition


def seasonal_decomposition(
    history: History,
    periods: int = 30,
    seasonal_period: Optional[int] = None,
    *,
    min_period: int = DEFAULT_MIN_PERIOD,
    max_period: int = DEFAULT_MAX_PERIOD,
    strength_threshold: float = SEASONALITY_STRENGTH_THRESHOLD,
    min_history: int = MIN_SEASONAL_HISTORY,
    alpha: float = DEFAULT_ALPHA,
    beta: float = DEFAULT_BETA,
) -> tuple[List[float], SeasonalityInfo]:
    """Holt trend multiplied by per-position seasonal factors.

    Without enough history or without a detected cycle this is plain double
    exponential smoothing.  Passing ``seasonal_period`` skips detection.
    """

    periods = check_periods(periods)
    values = quantities(history)

    if values.size < min_history:
        return double_exponential_smoothing(values, periods, alpha, beta), SeasonalityInfo.none()

    if seasonal_period:
        seasonality = SeasonalityInfo(
            detected=True,
            period=int(seasonal_period),
            strength=1.0,
            factors=seasonal_factors(values, int(seasonal_period)),
        )
    else:
        seasonality = detect_seasonality(values, min_period, max_period, strength_threshold)

    trend_forecast = double_exponential_smoothing(values, periods, alpha, beta)
    if not seasonality.detected:
        return trend_forecast, seasonality

    forecast = [
        max(0.0, trend * seasonality.factors[step % seasonality.period])
        for step, trend in enumerate(trend_forecast)
    ]
    return forecast, seasonality
