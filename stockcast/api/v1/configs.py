"""API endpoints for reading and updating the tuning YAML files."""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import Any, Dict, Optional

import yaml
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from ...core.config import (
    FORECASTING_FILE,
    REORDER_FILE,
    ForecastTuning,
    MinimumOrderPolicy,
    ReorderTuning,
    get_settings,
    load_yaml,
)
from . import forecasts, procure, reorder

router = APIRouter()

CONFIG_DIR = get_settings().config_dir


def _safe_write_yaml(path: str, payload: Dict[str, Any]) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".yaml", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)
        shutil.move(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


class ForecastingUpdate(BaseModel):
    seasonality_threshold: Optional[float] = Field(None, ge=0.0)
    min_seasonal_period: Optional[int] = Field(None, ge=1)
    max_seasonal_period: Optional[int] = Field(None, ge=1)
    min_seasonal_history: Optional[int] = Field(None, ge=2)
    holdout_ratio: Optional[float] = Field(None, gt=0.0, lt=1.0)
    min_hybrid_history: Optional[int] = Field(None, ge=2)
    min_train_points: Optional[int] = Field(None, ge=1)
    min_validation_points: Optional[int] = Field(None, ge=1)
    min_metrics_history: Optional[int] = Field(None, ge=2)
    holt_alpha: Optional[float] = Field(None, gt=0.0, le=1.0)
    holt_beta: Optional[float] = Field(None, ge=0.0, le=1.0)


class ReorderUpdate(BaseModel):
    high_priority_days: Optional[int] = Field(None, ge=0)
    medium_priority_days: Optional[int] = Field(None, ge=0)
    service_level: Optional[float] = Field(None, ge=0.5, le=0.999)
    max_stock_multiplier: Optional[float] = Field(None, gt=0.0)
    holding_cost_rate: Optional[float] = Field(None, gt=0.0, le=1.0)
    purchase_order_lead_time_days: Optional[int] = Field(None, ge=0)
    minimum_order_policy: Optional[MinimumOrderPolicy] = None


def _merge_updates(original: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    result = original.copy()
    result.update({k: v for k, v in updates.items() if v is not None})
    return result


def _read(filename: str) -> Dict[str, Any]:
    try:
        return load_yaml(os.path.join(CONFIG_DIR, filename))
    except (ValueError, yaml.YAMLError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "invalid_config", "message": f"{filename}: {exc}"},
        ) from exc


def _update(filename: str, body: BaseModel, model: type[BaseModel]) -> tuple[Dict[str, Any], Any]:
    current = _read(filename)
    updated = _merge_updates(current, body.model_dump(mode="json", exclude_none=True))

    try:
        tuning = model.model_validate(updated)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_config", "message": str(exc)},
        ) from exc

    if updated != current:
        try:
            _safe_write_yaml(os.path.join(CONFIG_DIR, filename), updated)
        except OSError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "write_failed", "message": str(exc)},
            ) from exc
    return updated, tuning


@router.get("/configs/forecasting")
def get_forecasting() -> Dict[str, Any]:
    return _read(FORECASTING_FILE)


@router.put("/configs/forecasting")
def put_forecasting(body: ForecastingUpdate) -> Dict[str, Any]:
    updated, tuning = _update(FORECASTING_FILE, body, ForecastTuning)
    forecasts._forecast_service.tuning = tuning
    return updated


@router.get("/configs/reorder")
def get_reorder() -> Dict[str, Any]:
    return _read(REORDER_FILE)


@router.put("/configs/reorder")
def put_reorder(body: ReorderUpdate) -> Dict[str, Any]:
    updated, tuning = _update(REORDER_FILE, body, ReorderTuning)
    reorder._reorder_service.tuning = tuning
    procure._procurement_service.tuning = tuning
    return updated
