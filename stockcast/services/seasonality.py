"""Autocorrelation based seasonality detection."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from ..models.schemas import SeasonalityInfo
from .statistics import History, quantities

LOGGER = logging.getLogger(__name__)

SEASONALITY_STRENGTH_THRESHOLD = 0.3
DEFAULT_MIN_PERIOD = 7
DEFAULT_MAX_PERIOD = 365


def seasonal_factors(values: Sequence[float], period: int) -> list[float]:
    """Average each position of the cycle and normalise the set to mean 1.0."""

    if period <= 0:
        raise ValueError("period must be a positive integer")
    arr = np.asarray(values, dtype=float)
    factors = np.ones(period, dtype=float)
    for position in range(period):
        bucket = arr[position::period]
        if bucket.size:
            factors[position] = float(bucket.mean())

    average = float(factors.mean())
    if average > 0:
        factors = factors / average
    return [float(f) for f in factors]


def detect_seasonality(
    history: History,
    min_period: int = DEFAULT_MIN_PERIOD,
    max_period: int = DEFAULT_MAX_PERIOD,
    strength_threshold: float = SEASONALITY_STRENGTH_THRESHOLD,
) -> SeasonalityInfo:
    """Scan candidate periods and report the strongest repeating cycle.

    For every period in ``[min_period, min(max_period, n // 2)]`` the mean of
    ``x[i] * x[i + period]`` is divided by the squared series mean.  The best
    candidate counts as seasonal only when that ratio exceeds
    ``strength_threshold``.
    """

    if min_period <= 0:
        raise ValueError("min_period must be a positive integer")

    values = quantities(history)
    n = values.size
    if n < min_period * 2:
        return SeasonalityInfo.none()

    series_mean = float(values.mean())
    if series_mean == 0.0:
        return SeasonalityInfo.none()

    best_period = 0
    best_strength = 0.0
    max_test_period = min(max_period, n // 2)

    for period in range(min_period, max_test_period + 1):
        if n // period < 2:
            continue
        autocorr = float(np.mean(values[:-period] * values[period:]))
        strength = abs(autocorr / (series_mean * series_mean))
        if strength > best_strength:
            best_strength = strength
            best_period = period

    if best_period == 0 or best_strength <= strength_threshold:
        LOGGER.debug("No seasonality detected (best strength=%.3f)", best_strength)
        return SeasonalityInfo(detected=False, period=0, strength=min(best_strength, 1.0), factors=[])

    LOGGER.debug("Seasonality detected period=%d strength=%.3f", best_period, best_strength)
    return SeasonalityInfo(
        detected=True,
        period=best_period,
        strength=min(best_strength, 1.0),
        factors=seasonal_factors(values, best_period),
    )
