"""Safety stock, reorder point and EOQ calculations."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Literal, Mapping, Optional, Sequence, Union

from ..core.config import ReorderTuning, load_reorder_tuning
from ..models.schemas import INFINITE, DiscountTier, EOQOption, ReorderPlan
from .statistics import History, quantities

LOGGER = logging.getLogger(__name__)

SERVICE_LEVEL_Z_SCORES: dict[float, float] = {
    0.50: 0.000,
    0.75: 0.674,
    0.80: 0.842,
    0.85: 1.036,
    0.90: 1.282,
    0.95: 1.645,
    0.97: 1.881,
    0.98: 2.054,
    0.99: 2.326,
    0.995: 2.576,
}
DEFAULT_SERVICE_LEVEL = 0.95
DEFAULT_MAX_STOCK_MULTIPLIER = 2.0
DEFAULT_HOLDING_COST_RATE = 0.25
DAYS_PER_YEAR = 365

StockoutDays = Union[int, Literal["infinite"]]


def _non_negative(**values: float) -> None:
    for name, value in values.items():
        if value is None or not math.isfinite(value) or value < 0:
            raise ValueError(f"{name} must be a non-negative number")


def _ceil_units(value: float, name: str) -> int:
    if not math.isfinite(value):
        raise ValueError(f"{name} is too large")
    return math.ceil(value)


# ---------------------------------------------------------------------------
def service_level_z_score(service_level: float) -> float:
    """Return the one-sided z-score of the closest tabulated service level."""

    closest = min(sorted(SERVICE_LEVEL_Z_SCORES), key=lambda level: abs(level - float(service_level)))
    return SERVICE_LEVEL_Z_SCORES[closest]


def safety_stock(
    avg_daily_demand: float,
    demand_std_dev: float,
    lead_time: float,
    lead_time_variability: float = 0.0,
    service_level: float = DEFAULT_SERVICE_LEVEL,
) -> int:
    """Units held to absorb demand (and optionally lead-time) variability.

    ``Z * sigma_d * sqrt(L)`` for a fixed lead time, or
    ``Z * sqrt(L * sigma_d^2 + d^2 * sigma_L^2)`` when the lead time varies.
    Always rounded up.
    """

    _non_negative(
        avg_daily_demand=avg_daily_demand,
        demand_std_dev=demand_std_dev,
        lead_time=lead_time,
        lead_time_variability=lead_time_variability,
    )
    z_value = service_level_z_score(service_level)

    if lead_time_variability > 0:
        variance = lead_time * demand_std_dev**2 + avg_daily_demand**2 * lead_time_variability**2
        return _ceil_units(z_value * math.sqrt(variance), "safety stock")

    return _ceil_units(z_value * demand_std_dev * math.sqrt(lead_time), "safety stock")


def reorder_point(avg_daily_demand: float, lead_time: float, safety_stock_units: float) -> int:
    """Lead-time demand plus safety stock, rounded up."""

    _non_negative(avg_daily_demand=avg_daily_demand, lead_time=lead_time, safety_stock=safety_stock_units)
    return _ceil_units(avg_daily_demand * lead_time + safety_stock_units, "reorder point")


def max_stock(
    avg_daily_demand: float,
    lead_time: float,
    safety_stock_units: float,
    multiplier: float = DEFAULT_MAX_STOCK_MULTIPLIER,
) -> int:
    _non_negative(avg_daily_demand=avg_daily_demand, lead_time=lead_time, safety_stock=safety_stock_units)
    return _ceil_units(avg_daily_demand * lead_time * multiplier + safety_stock_units, "max stock")


def economic_order_quantity(annual_demand: float, ordering_cost: float, holding_cost: float) -> int:
    """``ceil(sqrt(2DS/H))``; 0 when any input is non-positive."""

    if annual_demand <= 0 or ordering_cost <= 0 or holding_cost <= 0:
        return 0
    quantity = math.sqrt(2.0 * annual_demand * ordering_cost / holding_cost)
    return _ceil_units(quantity, "economic order quantity")


def _annual_cost(annual_demand: float, ordering_cost: float, holding_cost: float, quantity: float, unit_cost: float) -> float:
    return (
        annual_demand * unit_cost
        + (annual_demand / quantity) * ordering_cost
        + (quantity / 2.0) * holding_cost
    )


def eoq_with_quantity_discounts(
    annual_demand: float,
    ordering_cost: float,
    holding_cost: float,
    discounts: Iterable[DiscountTier],
    unit_cost: float = 0.0,
) -> EOQOption:
    """Choose between the plain EOQ and each discount tier by total annual cost.

    A tier is evaluated at ``max(tier.min_quantity, EOQ)``.
    """

    base_eoq = economic_order_quantity(annual_demand, ordering_cost, holding_cost)
    candidates: List[EOQOption] = []

    if base_eoq > 0:
        candidates.append(
            EOQOption(
                quantity=base_eoq,
                total_cost=_annual_cost(annual_demand, ordering_cost, holding_cost, base_eoq, unit_cost),
                unit_cost=unit_cost,
            )
        )

    for tier in sorted(discounts, key=lambda t: t.min_quantity):
        quantity = max(tier.min_quantity, base_eoq)
        if quantity <= 0:
            continue
        candidates.append(
            EOQOption(
                quantity=quantity,
                total_cost=_annual_cost(annual_demand, ordering_cost, holding_cost, quantity, tier.unit_cost),
                unit_cost=tier.unit_cost,
            )
        )

    if not candidates:
        return EOQOption(quantity=0, total_cost=0.0, unit_cost=unit_cost)
    return min(candidates, key=lambda option: option.total_cost)


def estimate_holding_cost(unit_cost: float, holding_cost_rate: float = DEFAULT_HOLDING_COST_RATE) -> float:
    """Annual holding cost per unit as a share of its cost."""
    return unit_cost * holding_cost_rate


def reorder_quantity(current_stock: float, max_stock_units: float, eoq: Optional[float] = None) -> float:
    """Units needed to refill to ``max_stock_units``, capped by a positive EOQ."""

    quantity_to_max = max(0.0, max_stock_units - current_stock)
    if eoq is not None and eoq > 0:
        return min(eoq, quantity_to_max)
    return quantity_to_max


def days_until_stockout(current_stock: float, avg_daily_demand: float) -> StockoutDays:
    """Whole days of cover left; ``"infinite"`` when nothing is being consumed."""

    if avg_daily_demand <= 0:
        return INFINITE
    if current_stock <= 0:
        return 0
    return math.floor(current_stock / avg_daily_demand)


# ---------------------------------------------------------------------------
# History based helpers


def average_daily_demand(history: History) -> float:
    values = quantities(history)
    return float(values.mean()) if values.size else 0.0


def demand_variability(history: History) -> float:
    """Population standard deviation of daily demand; 0 below two points."""

    values = quantities(history)
    if values.size < 2:
        return 0.0
    return float(values.std(ddof=0))


def reorder_point_from_history(
    history: History, lead_time: float, service_level: float = DEFAULT_SERVICE_LEVEL
) -> int:
    avg = average_daily_demand(history)
    ss = safety_stock(avg, demand_variability(history), lead_time, service_level=service_level)
    return reorder_point(avg, lead_time, ss)


def plan_reorder(
    history: History,
    lead_time: float,
    *,
    current_stock: float = 0.0,
    lead_time_variability: float = 0.0,
    service_level: float = DEFAULT_SERVICE_LEVEL,
    ordering_cost: float = 0.0,
    unit_cost: float = 0.0,
    holding_cost_rate: float = DEFAULT_HOLDING_COST_RATE,
    max_stock_multiplier: float = DEFAULT_MAX_STOCK_MULTIPLIER,
) -> ReorderPlan:
    """Derive every inventory level for one product from its demand history."""

    avg = average_daily_demand(history)
    std_dev = demand_variability(history)
    ss = safety_stock(avg, std_dev, lead_time, lead_time_variability, service_level)
    rop = reorder_point(avg, lead_time, ss)
    ceiling = max_stock(avg, lead_time, ss, max_stock_multiplier)
    eoq = economic_order_quantity(
        avg * DAYS_PER_YEAR, ordering_cost, estimate_holding_cost(unit_cost, holding_cost_rate)
    )
    quantity = reorder_quantity(current_stock, ceiling, eoq or None)

    LOGGER.info(
        "Reorder plan: mean=%.2f std=%.2f lead=%.1f ss=%d rop=%d max=%d eoq=%d qty=%.1f",
        avg,
        std_dev,
        lead_time,
        ss,
        rop,
        ceiling,
        eoq,
        quantity,
    )

    return ReorderPlan(
        avg_daily_demand=avg,
        demand_std_dev=std_dev,
        lead_time=lead_time,
        service_level=service_level,
        safety_stock=ss,
        reorder_point=rop,
        max_stock=ceiling,
        eoq=eoq,
        reorder_quantity=quantity,
        days_until_stockout=days_until_stockout(current_stock, avg),
    )


# ---------------------------------------------------------------------------
# Rule validation


def validate_reorder_rule(fields: Mapping[str, Any]) -> List[str]:
    """Check a full or partial reorder rule and return every problem found."""

    errors: List[str] = []

    def present(name: str) -> bool:
        return fields.get(name) is not None

    if not fields.get("product_id"):
        errors.append("Product ID is required")
    if not fields.get("supplier_id"):
        errors.append("Supplier ID is required")
    if present("reorder_point") and fields["reorder_point"] < 0:
        errors.append("Reorder point must be non-negative")
    if present("reorder_quantity") and fields["reorder_quantity"] <= 0:
        errors.append("Reorder quantity must be positive")
    if present("minimum_stock") and fields["minimum_stock"] < 0:
        errors.append("Minimum stock must be non-negative")
    if present("maximum_stock") and fields["maximum_stock"] < 0:
        errors.append("Maximum stock must be non-negative")
    if present("minimum_stock") and present("maximum_stock") and fields["minimum_stock"] > fields["maximum_stock"]:
        errors.append("Minimum stock cannot exceed maximum stock")
    if present("reorder_point") and present("maximum_stock") and fields["reorder_point"] > fields["maximum_stock"]:
        errors.append("Reorder point cannot exceed maximum stock")
    if present("lead_time") and fields["lead_time"] < 0:
        errors.append("Lead time must be non-negative")

    return errors


# ---------------------------------------------------------------------------
# Inventory metrics


def inventory_turnover(cost_of_goods_sold: float, average_inventory_value: float) -> float:
    if average_inventory_value == 0:
        return 0.0
    return cost_of_goods_sold / average_inventory_value


def days_inventory_on_hand(average_inventory: float, avg_daily_demand: float) -> Union[float, Literal["infinite"]]:
    if avg_daily_demand == 0:
        return INFINITE
    return average_inventory / avg_daily_demand


def fill_rate(demand_met: float, total_demand: float) -> float:
    """Share of demand served from stock; 1.0 when there was no demand."""
    if total_demand == 0:
        return 1.0
    return demand_met / total_demand


def stockout_frequency(stockout_days: float, total_days: float) -> float:
    if total_days == 0:
        return 0.0
    return stockout_days / total_days


# ---------------------------------------------------------------------------
class ReorderService:
    """Reorder planning bound to the thresholds in ``configs/reorder.yaml``."""

    def __init__(self, config_root: str = "configs") -> None:
        self.config_root = config_root
        self.tuning: ReorderTuning = load_reorder_tuning(self.config_root)

    def reload(self) -> None:
        """Re-read ``reorder.yaml`` after it was edited."""
        self.tuning = load_reorder_tuning(self.config_root)

    def plan(
        self,
        history: Sequence[Any],
        lead_time: float,
        *,
        current_stock: float = 0.0,
        lead_time_variability: float = 0.0,
        service_level: float | None = None,
        ordering_cost: float = 0.0,
        unit_cost: float = 0.0,
    ) -> ReorderPlan:
        return plan_reorder(
            history,
            lead_time,
            current_stock=current_stock,
            lead_time_variability=lead_time_variability,
            service_level=service_level if service_level is not None else self.tuning.service_level,
            ordering_cost=ordering_cost,
            unit_cost=unit_cost,
            holding_cost_rate=self.tuning.holding_cost_rate,
            max_stock_multiplier=self.tuning.max_stock_multiplier,
        )
