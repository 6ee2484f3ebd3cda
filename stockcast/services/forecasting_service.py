"""stockcast/services/forecasting_service.py

Forecast orchestration: algorithm selection, confidence bands and accuracy.

``calculate_forecast`` is the entry point.  It dispatches to one of the point
algorithms in :mod:`.algorithms` or, for ``Algorithm.HYBRID``, scores every
algorithm on a chronological hold-out slice and re-runs the winner on the
full history.  ``ForecastingService`` binds the tuning thresholds read from
``configs/forecasting.yaml``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.config import ForecastTuning, load_forecast_tuning
from ..models.schemas import (
    Algorithm,
    AlgorithmComparison,
    ChartPoint,
    DemandObservation,
    ErrorMetrics,
    Forecast,
    ForecastSettings,
    SeasonalityInfo,
    Trend,
)
from . import algorithms, statistics
from .statistics import History, quantities

LOGGER = logging.getLogger(__name__)

CANDIDATE_ALGORITHMS: tuple[Algorithm, ...] = (
    Algorithm.SMA,
    Algorithm.EXPONENTIAL,
    Algorithm.LINEAR,
    Algorithm.SEASONAL,
)
UNKNOWN_ACCURACY = 0.5
TREND_WINDOW_DAYS = 7
TREND_CHANGE_PERCENT = 10.0


# ---------------------------------------------------------------------------
# Helpers


@dataclass(slots=True)
class _AlgorithmOutput:
    forecast: List[float]
    seasonality: Optional[SeasonalityInfo] = None
    fit_r2: Optional[float] = None


@dataclass(slots=True)
class HybridResult:
    forecast: List[float]
    best_algorithm: Algorithm
    comparisons: List[AlgorithmComparison] = field(default_factory=list)
    seasonality: Optional[SeasonalityInfo] = None


def run_algorithm(
    algorithm: Algorithm,
    values: np.ndarray,
    periods: int,
    settings: ForecastSettings,
    tuning: ForecastTuning,
) -> _AlgorithmOutput:
    """Run one point algorithm.  ``Algorithm.HYBRID`` is not a point algorithm."""

    if algorithm is Algorithm.SMA:
        return _AlgorithmOutput(algorithms.simple_moving_average(values, periods, settings.sma_window))
    if algorithm is Algorithm.EXPONENTIAL:
        return _AlgorithmOutput(
            algorithms.double_exponential_smoothing(
                values, periods, settings.smoothing_factor, tuning.holt_beta
            )
        )
    if algorithm is Algorithm.LINEAR:
        forecast, fit_r2 = algorithms.linear_regression(values, periods)
        return _AlgorithmOutput(forecast, fit_r2=fit_r2)
    if algorithm is Algorithm.SEASONAL:
        forecast, seasonality = algorithms.seasonal_decomposition(
            values,
            periods,
            min_period=settings.min_seasonal_period or tuning.min_seasonal_period,
            max_period=settings.max_seasonal_period or tuning.max_seasonal_period,
            strength_threshold=tuning.seasonality_threshold,
            min_history=tuning.min_seasonal_history,
            alpha=tuning.holt_alpha,
            beta=tuning.holt_beta,
        )
        return _AlgorithmOutput(forecast, seasonality=seasonality)
    if algorithm is Algorithm.HYBRID:
        raise ValueError("hybrid is a selection strategy, not a point algorithm")
    raise ValueError(f"Unknown forecasting algorithm '{algorithm}'")


def score(actual: Sequence[float], predicted: Sequence[float]) -> ErrorMetrics:
    """Compute every error metric for a validation slice."""

    return ErrorMetrics(
        mape=statistics.mape(actual, predicted),
        mae=statistics.mae(actual, predicted),
        rmse=statistics.rmse(actual, predicted),
        r2=statistics.r2(actual, predicted),
    )


def holdout_split(values: np.ndarray, ratio: float) -> tuple[np.ndarray, np.ndarray]:
    """Chronological train/validation split; order is never shuffled."""

    split_index = int(np.floor(values.size * ratio))
    return values[:split_index], values[split_index:]


def _mape_rank(comparison: AlgorithmComparison) -> float:
    return comparison.mape if comparison.mape is not None else float("inf")


# ---------------------------------------------------------------------------
# Hybrid selection


def hybrid_forecast(
    history: History,
    periods: int = 30,
    *,
    settings: ForecastSettings | None = None,
    tuning: ForecastTuning | None = None,
) -> HybridResult:
    """Pick the algorithm with the lowest validation MAPE and forecast with it.

    The history is split chronologically by ``tuning.holdout_ratio``.  Each
    candidate forecasts the validation slice from the training slice; the
    winner is then re-run on the full history.  Ties keep the earlier
    candidate and an unavailable MAPE ranks last.
    """

    periods = algorithms.check_periods(periods)
    settings = settings or ForecastSettings()
    tuning = tuning or ForecastTuning()
    values = quantities(history)

    if values.size < tuning.min_hybrid_history:
        LOGGER.info("History too short for model selection (%d points); using flat average", values.size)
        average = float(values.mean()) if values.size else 0.0
        return HybridResult(forecast=[max(average, 0.0)] * periods, best_algorithm=Algorithm.SMA)

    train, test = holdout_split(values, tuning.holdout_ratio)
    if train.size < tuning.min_train_points or test.size < tuning.min_validation_points:
        LOGGER.info("Not enough points to validate candidates; using Holt smoothing")
        output = run_algorithm(Algorithm.EXPONENTIAL, values, periods, settings, tuning)
        return HybridResult(forecast=output.forecast, best_algorithm=Algorithm.EXPONENTIAL)

    comparisons: List[AlgorithmComparison] = []
    for candidate in CANDIDATE_ALGORITHMS:
        output = run_algorithm(candidate, train, test.size, settings, tuning)
        metrics = score(test, output.forecast)
        comparisons.append(
            AlgorithmComparison(
                algorithm=candidate,
                mape=metrics.mape,
                mae=metrics.mae,
                rmse=metrics.rmse,
                r2=output.fit_r2 if candidate is Algorithm.LINEAR else metrics.r2,
            )
        )
        LOGGER.debug("Candidate %s validation mape=%s", candidate.value, metrics.mape)

    best = min(comparisons, key=_mape_rank)
    best.recommended = True

    output = run_algorithm(best.algorithm, values, periods, settings, tuning)
    return HybridResult(
        forecast=output.forecast,
        best_algorithm=best.algorithm,
        comparisons=comparisons,
        seasonality=output.seasonality,
    )


def compare_algorithms(
    history: History,
    *,
    settings: ForecastSettings | None = None,
    tuning: ForecastTuning | None = None,
) -> List[AlgorithmComparison]:
    """Return the hold-out comparison table; empty when history is too short."""

    return hybrid_forecast(history, 7, settings=settings, tuning=tuning).comparisons


# ---------------------------------------------------------------------------
# Orchestrator


def forecast_dates(history: History, periods: int, reference_date: date | None = None) -> List[date]:
    """Consecutive days starting the day after the last observation (or the reference day)."""

    if len(history) > 0 and isinstance(history[-1], DemandObservation):
        anchor = history[-1].date
    else:
        anchor = reference_date or date.today()
    index = pd.date_range(start=anchor + timedelta(days=1), periods=periods, freq="D")
    return [ts.date() for ts in index]


def calculate_forecast(
    product_id: str,
    history: History,
    settings: ForecastSettings | None = None,
    *,
    tuning: ForecastTuning | None = None,
    reference_date: date | None = None,
) -> Forecast:
    """Forecast ``settings.periods`` days of demand for ``product_id``."""

    settings = settings or ForecastSettings()
    tuning = tuning or ForecastTuning()
    values = quantities(history)
    periods = settings.periods
    if periods < 1:
        raise ValueError("periods must be a positive integer")

    LOGGER.info(
        "Forecasting product %s algorithm=%s periods=%s history=%d",
        product_id,
        settings.algorithm.value,
        periods,
        values.size,
    )

    dates = forecast_dates(history, periods, reference_date)
    metrics = ErrorMetrics()
    comparisons: List[AlgorithmComparison] = []

    if settings.algorithm is Algorithm.HYBRID:
        result = hybrid_forecast(values, periods, settings=settings, tuning=tuning)
        point_forecast = result.forecast
        algorithm_used = result.best_algorithm
        seasonality = result.seasonality
        comparisons = result.comparisons
        best = next((c for c in comparisons if c.recommended), None)
        if best is not None:
            metrics = ErrorMetrics(mape=best.mape, mae=best.mae, rmse=best.rmse, r2=best.r2)
        LOGGER.info("Hybrid selection for %s chose %s", product_id, algorithm_used.value)
    else:
        output = run_algorithm(settings.algorithm, values, periods, settings, tuning)
        point_forecast = output.forecast
        algorithm_used = settings.algorithm
        seasonality = output.seasonality
        metrics.r2 = output.fit_r2

    margin = statistics.z_score_for_confidence(settings.confidence_level) * statistics.standard_deviation(values)
    lower = [max(0.0, f - margin) for f in point_forecast]
    upper = [f + margin for f in point_forecast]

    if metrics.mape is None and values.size >= tuning.min_metrics_history:
        train, test = holdout_split(values, tuning.holdout_ratio)
        validation = run_algorithm(algorithm_used, train, test.size, settings, tuning)
        metrics.mape = statistics.mape(test, validation.forecast)
        metrics.mae = statistics.mae(test, validation.forecast)
        metrics.rmse = statistics.rmse(test, validation.forecast)

    if metrics.mape is not None:
        accuracy = max(0.0, 1.0 - metrics.mape / 100.0)
    else:
        accuracy = UNKNOWN_ACCURACY

    has_metrics = any(v is not None for v in metrics.model_dump().values())
    return Forecast(
        product_id=product_id,
        dates=dates,
        point_forecast=point_forecast,
        confidence_lower=lower,
        confidence_upper=upper,
        algorithm_used=algorithm_used,
        accuracy_score=accuracy,
        seasonality=seasonality,
        error_metrics=metrics if has_metrics else None,
        comparisons=comparisons,
    )


# ---------------------------------------------------------------------------
# Reporting helpers


def analyze_trend(history: History) -> Trend:
    """Compare the last week of demand with the week before it."""

    values = quantities(history)
    if values.size < 2:
        return Trend.STABLE

    recent = values[-TREND_WINDOW_DAYS:]
    previous = values[-2 * TREND_WINDOW_DAYS : -TREND_WINDOW_DAYS]
    if recent.size == 0 or previous.size == 0:
        return Trend.STABLE

    recent_avg = float(recent.mean())
    previous_avg = float(previous.mean())
    if previous_avg == 0.0:
        return Trend.UP if recent_avg > 0 else Trend.STABLE

    change_percent = (recent_avg - previous_avg) / previous_avg * 100.0
    if change_percent > TREND_CHANGE_PERCENT:
        return Trend.UP
    if change_percent < -TREND_CHANGE_PERCENT:
        return Trend.DOWN
    return Trend.STABLE


def forecast_chart_data(
    forecast: Forecast, history: Sequence[DemandObservation], days: int = 60
) -> List[ChartPoint]:
    """Merge the last ``days`` observations with the forecast, oldest first."""

    points = [ChartPoint(date=obs.date, actual=obs.quantity) for obs in history[-days:]] if days > 0 else []
    for day, point, lo, hi in zip(
        forecast.dates, forecast.point_forecast, forecast.confidence_lower, forecast.confidence_upper
    ):
        points.append(ChartPoint(date=day, forecast=point, lower=lo, upper=hi))
    return points


# ---------------------------------------------------------------------------
# Core service implementation


class ForecastingService:
    """Forecast products using the thresholds configured for this deployment."""

    def __init__(self, config_root: str = "configs") -> None:
        self.config_root = config_root
        self.tuning = ForecastTuning()
        self._load_configuration()

    # ------------------------------------------------------------------
    def _load_configuration(self) -> None:
        self.tuning = load_forecast_tuning(self.config_root)

    # ------------------------------------------------------------------
    def reload(self) -> None:
        """Re-read ``forecasting.yaml`` after it was edited."""
        self._load_configuration()

    # ------------------------------------------------------------------
    def forecast(
        self,
        product_id: str,
        history: Sequence[DemandObservation],
        settings: ForecastSettings | None = None,
        reference_date: date | None = None,
    ) -> Forecast:
        return calculate_forecast(
            product_id, history, settings, tuning=self.tuning, reference_date=reference_date
        )

    # ------------------------------------------------------------------
    def compare(
        self, history: Sequence[DemandObservation], settings: ForecastSettings | None = None
    ) -> List[AlgorithmComparison]:
        return compare_algorithms(history, settings=settings, tuning=self.tuning)
