from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from stockcast.services.seasonality import detect_seasonality, seasonal_factors

WEEKLY_PATTERN = [10, 10, 10, 10, 10, 30, 30] * 4


def test_weekly_cycle_is_detected() -> None:
    info = detect_seasonality(WEEKLY_PATTERN, min_period=7, max_period=10)

    assert info.detected
    assert info.period == 7
    assert len(info.factors) == 7
    assert 0.3 < info.strength <= 1.0
    assert sum(info.factors) / len(info.factors) == pytest.approx(1.0, abs=1e-9)
    assert info.factors[5] == pytest.approx(30 / (110 / 7))
    assert info.factors[0] == pytest.approx(10 / (110 / 7))


def test_short_history_is_not_seasonal() -> None:
    info = detect_seasonality([1, 2, 3, 4, 5, 6, 7, 8], min_period=7)
    assert not info.detected
    assert info.period == 0
    assert info.factors == []


def test_all_zero_history_is_not_seasonal() -> None:
    assert not detect_seasonality([0.0] * 30).detected


def test_threshold_controls_detection() -> None:
    info = detect_seasonality(WEEKLY_PATTERN, min_period=7, max_period=10, strength_threshold=5.0)
    assert not info.detected
    assert info.period == 0


def test_seasonal_factors_normalised() -> None:
    factors = seasonal_factors([2, 4, 6, 2, 4, 6], 3)
    assert factors == pytest.approx([0.5, 1.0, 1.5])
    with pytest.raises(ValueError):
        seasonal_factors([1, 2], 0)
