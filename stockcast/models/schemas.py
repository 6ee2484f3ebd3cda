"""stockcast/models/schemas.py

Pydantic models used throughout the library and the API.

These models serve as both input validators and result containers.  Using
typed models ensures that the forecasting core, the reorder helpers and the
HTTP layer agree on the structure of the data being exchanged.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

INFINITE = "infinite"


class Algorithm(str, Enum):
    """Forecasting algorithms understood by the orchestrator."""

    SMA = "sma"
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    SEASONAL = "seasonal"
    HYBRID = "hybrid"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


# ---------------------------------------------------------------------------
# Forecasting


class DemandObservation(BaseModel):
    """One recorded day of demand for a product."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    quantity: float = Field(..., ge=0, allow_inf_nan=False, description="Units demanded")
    revenue: float = Field(0.0, ge=0, allow_inf_nan=False, description="Revenue for the day")


class SeasonalityInfo(BaseModel):
    """Result of the autocorrelation based seasonality scan."""

    detected: bool = False
    period: int = Field(0, ge=0)
    strength: float = Field(0.0, ge=0.0, le=1.0)
    factors: List[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def _period_matches_detection(self) -> "SeasonalityInfo":
        if self.detected != (self.period > 0):
            raise ValueError("period must be positive exactly when seasonality is detected")
        if self.detected and len(self.factors) != self.period:
            raise ValueError("one seasonal factor is required per position in the cycle")
        return self

    @classmethod
    def none(cls) -> "SeasonalityInfo":
        return cls(detected=False, period=0, strength=0.0, factors=[])


class ErrorMetrics(BaseModel):
    """Forecast error metrics; ``None`` marks a metric that could not be computed."""

    mape: Optional[float] = None
    mae: Optional[float] = None
    rmse: Optional[float] = None
    r2: Optional[float] = None


class AlgorithmComparison(BaseModel):
    """Validation score of one algorithm on the hold-out slice."""

    algorithm: Algorithm
    mape: Optional[float] = None
    mae: Optional[float] = None
    rmse: Optional[float] = None
    r2: Optional[float] = None
    recommended: bool = False


class ForecastSettings(BaseModel):
    """Per-request forecasting options."""

    algorithm: Algorithm = Algorithm.HYBRID
    periods: int = Field(30, ge=1, description="Number of future days to forecast")
    confidence_level: float = Field(0.95, gt=0.0, lt=1.0)
    smoothing_factor: float = Field(0.3, gt=0.0, le=1.0)
    sma_window: int = Field(7, ge=1)
    min_seasonal_period: Optional[int] = Field(None, ge=1)
    max_seasonal_period: Optional[int] = Field(None, ge=1)


class Forecast(BaseModel):
    """A demand forecast for one product."""

    product_id: str
    dates: List[dt.date]
    point_forecast: List[float]
    confidence_lower: List[float]
    confidence_upper: List[float]
    algorithm_used: Algorithm
    accuracy_score: float = Field(..., ge=0.0, le=1.0)
    seasonality: Optional[SeasonalityInfo] = None
    error_metrics: Optional[ErrorMetrics] = None
    comparisons: List[AlgorithmComparison] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_bands(self) -> "Forecast":
        n = len(self.dates)
        if not (
            len(self.point_forecast) == len(self.confidence_lower) == len(self.confidence_upper) == n
        ):
            raise ValueError("dates, forecast and confidence bounds must have the same length")
        for lo, point, hi in zip(self.confidence_lower, self.point_forecast, self.confidence_upper):
            if lo < 0 or point < 0:
                raise ValueError("forecast quantities cannot be negative")
            if not lo <= point <= hi:
                raise ValueError("confidence bounds must enclose the point forecast")
        return self

    @property
    def frame(self) -> pd.DataFrame:
        """Return the forecast as a ``pd.DataFrame`` indexed by date."""
        return pd.DataFrame(
            {
                "forecast": self.point_forecast,
                "lower": self.confidence_lower,
                "upper": self.confidence_upper,
            },
            index=pd.DatetimeIndex(pd.to_datetime(self.dates), name="date"),
        )


class ChartPoint(BaseModel):
    """One row of the merged history + forecast series used for charting."""

    date: dt.date
    actual: Optional[float] = None
    forecast: Optional[float] = None
    lower: Optional[float] = None
    upper: Optional[float] = None


# ---------------------------------------------------------------------------
# Reorder


class ReorderRule(BaseModel):
    """Reorder configuration for a product/supplier pair."""

    product_id: str = Field(..., min_length=1)
    supplier_id: str = Field(..., min_length=1)
    product_name: Optional[str] = None
    supplier_name: Optional[str] = None
    reorder_point: float = Field(..., ge=0)
    reorder_quantity: float = Field(..., gt=0)
    minimum_stock: float = Field(0.0, ge=0)
    maximum_stock: float = Field(..., ge=0)
    lead_time: float = Field(0.0, ge=0, description="Supplier lead time in days")
    is_active: bool = True
    auto_generate: bool = False

    @model_validator(mode="after")
    def _check_levels(self) -> "ReorderRule":
        if self.minimum_stock > self.maximum_stock:
            raise ValueError("Minimum stock cannot exceed maximum stock")
        if self.reorder_point > self.maximum_stock:
            raise ValueError("Reorder point cannot exceed maximum stock")
        return self


class ReorderPlan(BaseModel):
    """Inventory levels derived from a product's demand history."""

    avg_daily_demand: float
    demand_std_dev: float
    lead_time: float
    service_level: float
    safety_stock: int
    reorder_point: int
    max_stock: int
    eoq: int
    reorder_quantity: float
    days_until_stockout: Union[int, Literal["infinite"]]


class DiscountTier(BaseModel):
    min_quantity: float = Field(..., ge=0)
    unit_cost: float = Field(..., ge=0)


class EOQOption(BaseModel):
    quantity: float
    total_cost: float
    unit_cost: float


class StockPosition(BaseModel):
    """Current stock of a product together with its reorder parameters."""

    product_id: str
    product_name: str = ""
    current_stock: float
    reorder_point: float = Field(..., ge=0)
    reorder_quantity: float = Field(..., gt=0)
    supplier_id: str
    supplier_name: str = ""
    unit_cost: float = Field(..., ge=0)
    avg_daily_demand: float = Field(..., ge=0)

    @classmethod
    def from_rule(
        cls,
        rule: ReorderRule,
        current_stock: float,
        unit_cost: float,
        avg_daily_demand: float,
    ) -> "StockPosition":
        return cls(
            product_id=rule.product_id,
            product_name=rule.product_name or "",
            current_stock=current_stock,
            reorder_point=rule.reorder_point,
            reorder_quantity=rule.reorder_quantity,
            supplier_id=rule.supplier_id,
            supplier_name=rule.supplier_name or "",
            unit_cost=unit_cost,
            avg_daily_demand=avg_daily_demand,
        )


class ReorderSuggestion(BaseModel):
    """A product at or below its reorder point, ranked by urgency."""

    product_id: str
    product_name: str = ""
    current_stock: float
    reorder_point: float
    suggested_quantity: float
    supplier_id: str
    supplier_name: str = ""
    estimated_cost: float
    priority: Priority
    days_until_stockout: Union[int, Literal["infinite"]]


# ---------------------------------------------------------------------------
# Purchasing


class PurchaseOrderItem(BaseModel):
    product_id: str
    quantity: float = Field(..., ge=0)
    unit_cost: float = Field(..., ge=0)
    total_cost: float = Field(..., ge=0)


class PurchaseOrderDraft(BaseModel):
    """A purchase order ready for review; never sent by this library."""

    supplier_id: str
    warehouse_id: str = ""
    items: List[PurchaseOrderItem]
    total_cost: float
    status: Literal["draft"] = "draft"
    order_date: dt.date
    expected_delivery_date: dt.date
    notes: Optional[str] = None


class SupplierMinimum(BaseModel):
    """Minimum order value and/or quantity a supplier accepts."""

    min_value: float = Field(0.0, ge=0)
    min_quantity: float = Field(0.0, ge=0)


class SupplierDelivery(BaseModel):
    expected_date: dt.date
    actual_date: dt.date
    quality_rating: Optional[float] = Field(None, ge=0, le=5)
    cost: float = Field(..., ge=0)


class SupplierPerformance(BaseModel):
    supplier_id: str
    on_time_delivery_rate: float
    average_days_late: float
    quality_score: float
    cost_score: float
    overall_score: float


# ---------------------------------------------------------------------------
# HTTP request and response bodies


class ForecastRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    history: List[DemandObservation] = Field(default_factory=list)
    settings: ForecastSettings = Field(default_factory=ForecastSettings)
    reference_date: Optional[dt.date] = None
    include_chart: bool = False
    chart_days: int = Field(60, ge=0)


class ForecastResponse(BaseModel):
    forecast: Forecast
    trend: Trend
    chart: Optional[List[ChartPoint]] = None


class CompareRequest(BaseModel):
    history: List[DemandObservation]
    settings: ForecastSettings = Field(default_factory=ForecastSettings)


class ReorderPlanRequest(BaseModel):
    history: List[DemandObservation]
    lead_time: float = Field(..., ge=0)
    current_stock: float = 0.0
    lead_time_variability: float = Field(0.0, ge=0)
    service_level: Optional[float] = Field(None, gt=0.0, lt=1.0)
    ordering_cost: float = Field(0.0, ge=0)
    unit_cost: float = Field(0.0, ge=0)


class EOQRequest(BaseModel):
    annual_demand: float = Field(..., ge=0)
    ordering_cost: float = Field(..., ge=0)
    holding_cost: float = Field(..., ge=0)
    unit_cost: float = Field(0.0, ge=0)
    discounts: List[DiscountTier] = Field(default_factory=list)


class RuleValidationResponse(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


class SuggestionRequest(BaseModel):
    positions: List[StockPosition]


class PurchaseOrderRequest(BaseModel):
    suggestions: List[ReorderSuggestion]
    product_costs: Dict[str, float] = Field(default_factory=dict)
    supplier_minimums: Dict[str, SupplierMinimum] = Field(default_factory=dict)
    warehouse_id: str = ""
    order_date: Optional[dt.date] = None


class SupplierPerformanceRequest(BaseModel):
    deliveries: List[SupplierDelivery] = Field(default_factory=list)
    benchmark_cost: float = Field(0.0, ge=0)
