"""Routes for demand forecasting."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Response, status

from ...core.config import get_settings
from ...core.observability import FORECAST_COUNTER
from ...models import schemas
from ...services.forecasting_service import ForecastingService, analyze_trend, forecast_chart_data

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_forecast_service = ForecastingService(config_root=get_settings().config_dir)


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


@router.post("/forecasts", response_model=schemas.ForecastResponse)
def create_forecast(body: schemas.ForecastRequest, response: Response) -> schemas.ForecastResponse:
    """Forecast demand for one product from the supplied history."""

    LOGGER.info(
        "Forecast request received for product_id=%s algorithm=%s periods=%s",
        body.product_id,
        body.settings.algorithm.value,
        body.settings.periods,
    )

    try:
        forecast = _forecast_service.forecast(
            body.product_id, body.history, body.settings, reference_date=body.reference_date
        )
    except ValueError as exc:
        LOGGER.warning("Forecasting rejected for product_id=%s: %s", body.product_id, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc
    except Exception as exc:  # pragma: no cover - unexpected failure path
        LOGGER.exception("Unexpected error while forecasting product_id=%s", body.product_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_payload("forecast_failed", "An unexpected error occurred while forecasting."),
        ) from exc

    FORECAST_COUNTER.labels(forecast.algorithm_used.value).inc()
    response.headers["x-algorithm-used"] = forecast.algorithm_used.value

    chart = forecast_chart_data(forecast, body.history, body.chart_days) if body.include_chart else None
    return schemas.ForecastResponse(forecast=forecast, trend=analyze_trend(body.history), chart=chart)


@router.post("/forecasts/compare", response_model=List[schemas.AlgorithmComparison])
def compare_forecasts(body: schemas.CompareRequest) -> List[schemas.AlgorithmComparison]:
    """Score every point algorithm on a hold-out slice of the history."""

    try:
        return _forecast_service.compare(body.history, body.settings)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc
