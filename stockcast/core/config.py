"""
Application configuration utilities.

This module defines the ``Settings`` class used by the HTTP host for
environment variables, the tuning models that carry every forecasting and
reorder threshold, and helper functions to load the YAML files those tuning
values live in.
"""

from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FORECASTING_FILE = "forecasting.yaml"
REORDER_FILE = "reorder.yaml"


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="STOCKCAST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Directory holding forecasting.yaml / reorder.yaml
    config_dir: str = "configs"

    # Comma separated list; empty means "*"
    cors_origins: str = ""


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} must contain a mapping at the top level")
    return data


# ---------------------------------------------------------------------------
# Tuning


class MinimumOrderPolicy(str, Enum):
    """What to do with a supplier group that misses the supplier minimums."""

    DROP = "drop"
    TOP_UP = "top_up"


class ForecastTuning(BaseModel):
    """Thresholds used by the forecasting pipeline."""

    seasonality_threshold: float = Field(0.3, ge=0.0)
    min_seasonal_period: int = Field(7, ge=1)
    max_seasonal_period: int = Field(365, ge=1)
    min_seasonal_history: int = Field(14, ge=2)
    holdout_ratio: float = Field(0.8, gt=0.0, lt=1.0)
    min_hybrid_history: int = Field(7, ge=2)
    min_train_points: int = Field(5, ge=1)
    min_validation_points: int = Field(2, ge=1)
    min_metrics_history: int = Field(14, ge=2)
    holt_alpha: float = Field(0.3, gt=0.0, le=1.0)
    holt_beta: float = Field(0.1, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_period_bounds(self) -> "ForecastTuning":
        if self.min_seasonal_period > self.max_seasonal_period:
            raise ValueError("min_seasonal_period cannot exceed max_seasonal_period")
        return self


class ReorderTuning(BaseModel):
    """Thresholds used by the reorder calculator and purchasing helpers."""

    high_priority_days: int = Field(3, ge=0)
    medium_priority_days: int = Field(7, ge=0)
    service_level: float = Field(0.95, ge=0.5, le=0.999)
    max_stock_multiplier: float = Field(2.0, gt=0.0)
    holding_cost_rate: float = Field(0.25, gt=0.0, le=1.0)
    purchase_order_lead_time_days: int = Field(7, ge=0)
    minimum_order_policy: MinimumOrderPolicy = MinimumOrderPolicy.DROP

    @model_validator(mode="after")
    def _check_priority_days(self) -> "ReorderTuning":
        if self.high_priority_days > self.medium_priority_days:
            raise ValueError("high_priority_days cannot exceed medium_priority_days")
        return self


def load_forecast_tuning(config_root: str) -> ForecastTuning:
    """Read ``forecasting.yaml`` from ``config_root``; absent keys keep defaults."""

    return ForecastTuning.model_validate(load_yaml(os.path.join(config_root, FORECASTING_FILE)))


def load_reorder_tuning(config_root: str) -> ReorderTuning:
    """Read ``reorder.yaml`` from ``config_root``; absent keys keep defaults."""

    return ReorderTuning.model_validate(load_yaml(os.path.join(config_root, REORDER_FILE)))
