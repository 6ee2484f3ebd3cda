"""Statistical primitives and forecast error metrics.

Error metrics return ``None`` when no meaningful value can be computed
(empty input, no non-zero actuals for MAPE, constant actuals for R²) so that
callers never mistake "unavailable" for a real score.  Inputs of different
lengths are a caller bug and raise ``ValueError``.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Union

import numpy as np

from ..models.schemas import DemandObservation

History = Sequence[Union[DemandObservation, float]]

CONFIDENCE_Z_SCORES: dict[float, float] = {
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}
DEFAULT_Z_SCORE = 1.96


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def _paired(actual: Sequence[float], predicted: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    a = _as_array(actual)
    p = _as_array(predicted)
    if a.shape != p.shape:
        raise ValueError(
            f"actual and predicted must have the same length (got {a.size} and {p.size})"
        )
    return a, p


def quantities(history: Iterable[Union[DemandObservation, float]]) -> np.ndarray:
    """Return demand quantities as a float array.

    ``history`` may hold ``DemandObservation`` objects or bare numbers.  Negative
    and non-finite quantities are rejected.
    """

    values = [
        obs.quantity if isinstance(obs, DemandObservation) else float(obs) for obs in history
    ]
    arr = np.asarray(values, dtype=float)
    if arr.size and not np.all(np.isfinite(arr)):
        raise ValueError("demand quantities must be finite numbers")
    if arr.size and float(arr.min()) < 0:
        raise ValueError("demand quantities cannot be negative")
    return arr


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence."""

    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation (ddof=0); 0 for an empty sequence."""

    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.std(ddof=0))


def mape(actual: Sequence[float], predicted: Sequence[float]) -> Optional[float]:
    """Mean absolute percentage error, in percent, over the non-zero actuals."""

    a, p = _paired(actual, predicted)
    mask = a != 0
    if not mask.any():
        return None
    return float(np.mean(np.abs((a[mask] - p[mask]) / a[mask])) * 100.0)


def mae(actual: Sequence[float], predicted: Sequence[float]) -> Optional[float]:
    a, p = _paired(actual, predicted)
    if a.size == 0:
        return None
    return float(np.mean(np.abs(a - p)))


def rmse(actual: Sequence[float], predicted: Sequence[float]) -> Optional[float]:
    a, p = _paired(actual, predicted)
    if a.size == 0:
        return None
    return float(np.sqrt(np.mean((a - p) ** 2)))


def r2(actual: Sequence[float], predicted: Sequence[float]) -> Optional[float]:
    """Coefficient of determination; ``None`` when the actual series is constant."""

    a, p = _paired(actual, predicted)
    if a.size == 0:
        return None
    total_ss = float(np.sum((a - a.mean()) ** 2))
    if total_ss == 0.0:
        return None
    residual_ss = float(np.sum((a - p) ** 2))
    return 1.0 - residual_ss / total_ss


def z_score_for_confidence(level: float) -> float:
    """Two-sided z-score for a confidence level; unknown levels use 95%."""

    for known, z_value in CONFIDENCE_Z_SCORES.items():
        if abs(float(level) - known) < 1e-9:
            return z_value
    return DEFAULT_Z_SCORE
