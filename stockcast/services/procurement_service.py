"""Consolidate reorder suggestions into draft purchase orders."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from ..core.config import MinimumOrderPolicy, ReorderTuning, load_reorder_tuning
from ..models.schemas import (
    PurchaseOrderDraft,
    PurchaseOrderItem,
    ReorderSuggestion,
    SupplierDelivery,
    SupplierMinimum,
    SupplierPerformance,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_LEAD_TIME_DAYS = 7
LATE_DAYS_CEILING = 7.0


@dataclass(slots=True)
class _Line:
    product_id: str
    quantity: float
    unit_cost: float


def _unit_cost(suggestion: ReorderSuggestion, product_costs: Mapping[str, float]) -> float:
    if suggestion.product_id in product_costs:
        return float(product_costs[suggestion.product_id])
    if suggestion.suggested_quantity > 0:
        return suggestion.estimated_cost / suggestion.suggested_quantity
    return 0.0


def _totals(lines: Sequence[_Line]) -> tuple[float, float]:
    value = sum(line.quantity * line.unit_cost for line in lines)
    quantity = sum(line.quantity for line in lines)
    return value, quantity


def _meets_minimum(lines: Sequence[_Line], minimum: SupplierMinimum) -> bool:
    value, quantity = _totals(lines)
    return value >= minimum.min_value and quantity >= minimum.min_quantity


def _top_up(lines: List[_Line], minimum: SupplierMinimum) -> bool:
    """Raise quantities until both minimums hold; ``False`` if that is impossible.

    Quantity shortfalls go to the first (most urgent) line, value shortfalls to
    the first line with a positive unit cost.
    """

    _, quantity = _totals(lines)
    if quantity < minimum.min_quantity:
        lines[0].quantity += minimum.min_quantity - quantity

    value, _ = _totals(lines)
    if value < minimum.min_value:
        priced = next((line for line in lines if line.unit_cost > 0), None)
        if priced is None:
            return False
        priced.quantity += math.ceil((minimum.min_value - value) / priced.unit_cost)

    return _meets_minimum(lines, minimum)


def generate_purchase_order(
    supplier_id: str,
    items: Iterable[Mapping[str, float]],
    *,
    warehouse_id: str = "",
    notes: Optional[str] = None,
    expected_delivery_days: int = DEFAULT_LEAD_TIME_DAYS,
    order_date: date | None = None,
) -> PurchaseOrderDraft:
    """Build a draft order from ``{"product_id", "quantity", "unit_cost"}`` items."""

    if expected_delivery_days < 0:
        raise ValueError("expected_delivery_days must be non-negative")

    order_items = [
        PurchaseOrderItem(
            product_id=str(item["product_id"]),
            quantity=float(item["quantity"]),
            unit_cost=float(item["unit_cost"]),
            total_cost=float(item["quantity"]) * float(item["unit_cost"]),
        )
        for item in items
    ]
    ordered_on = order_date or date.today()
    return PurchaseOrderDraft(
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        items=order_items,
        total_cost=sum(item.total_cost for item in order_items),
        order_date=ordered_on,
        expected_delivery_date=ordered_on + timedelta(days=expected_delivery_days),
        notes=notes,
    )


def consolidate_purchase_orders(
    suggestions: Iterable[ReorderSuggestion],
    product_costs: Mapping[str, float] | None = None,
    supplier_minimums: Mapping[str, SupplierMinimum] | None = None,
    *,
    policy: MinimumOrderPolicy = MinimumOrderPolicy.DROP,
    warehouse_id: str = "",
    lead_time_days: int = DEFAULT_LEAD_TIME_DAYS,
    order_date: date | None = None,
) -> List[PurchaseOrderDraft]:
    """Group suggestions by supplier and emit one draft order per supplier.

    Unit costs come from ``product_costs`` or, when absent, from the
    suggestion's estimated cost.  A group that misses its supplier minimum is
    dropped under ``MinimumOrderPolicy.DROP`` and raised to the minimum under
    ``MinimumOrderPolicy.TOP_UP``.
    """

    product_costs = product_costs or {}
    supplier_minimums = supplier_minimums or {}

    by_supplier: Dict[str, List[ReorderSuggestion]] = {}
    for suggestion in suggestions:
        by_supplier.setdefault(suggestion.supplier_id, []).append(suggestion)

    drafts: List[PurchaseOrderDraft] = []
    for supplier_id, group in by_supplier.items():
        lines = [
            _Line(s.product_id, float(s.suggested_quantity), _unit_cost(s, product_costs)) for s in group
        ]

        minimum = supplier_minimums.get(supplier_id)
        if minimum is not None and not _meets_minimum(lines, minimum):
            if policy is MinimumOrderPolicy.TOP_UP and _top_up(lines, minimum):
                LOGGER.info("Topped up order for supplier %s to meet its minimum", supplier_id)
            else:
                value, quantity = _totals(lines)
                LOGGER.warning(
                    "Dropping order for supplier %s: value=%.2f qty=%.1f below minimum value=%.2f qty=%.1f",
                    supplier_id,
                    value,
                    quantity,
                    minimum.min_value,
                    minimum.min_quantity,
                )
                continue

        drafts.append(
            generate_purchase_order(
                supplier_id,
                [
                    {"product_id": line.product_id, "quantity": line.quantity, "unit_cost": line.unit_cost}
                    for line in lines
                ],
                warehouse_id=warehouse_id,
                notes=f"Auto-generated from {len(group)} reorder suggestion(s)",
                expected_delivery_days=lead_time_days,
                order_date=order_date,
            )
        )

    return drafts


# ---------------------------------------------------------------------------
def supplier_performance(
    supplier_id: str, deliveries: Sequence[SupplierDelivery], benchmark_cost: float
) -> SupplierPerformance:
    """Score a supplier on punctuality, lateness, quality and price."""

    if not deliveries:
        return SupplierPerformance(
            supplier_id=supplier_id,
            on_time_delivery_rate=0.0,
            average_days_late=0.0,
            quality_score=0.0,
            cost_score=0.0,
            overall_score=0.0,
        )

    on_time_rate = float(np.mean([d.actual_date <= d.expected_date for d in deliveries]))
    average_late = float(np.mean([max(0, (d.actual_date - d.expected_date).days) for d in deliveries]))

    ratings = [d.quality_rating for d in deliveries if d.quality_rating is not None]
    quality = float(np.mean(ratings)) / 5.0 if ratings else 0.5

    average_cost = float(np.mean([d.cost for d in deliveries]))
    if benchmark_cost <= 0:
        cost_score = 0.5
    elif average_cost == 0:
        cost_score = 1.0
    else:
        cost_score = min(1.0, benchmark_cost / average_cost)

    overall = (
        on_time_rate * 0.4
        + (1.0 - min(1.0, average_late / LATE_DAYS_CEILING)) * 0.3
        + quality * 0.2
        + cost_score * 0.1
    )
    return SupplierPerformance(
        supplier_id=supplier_id,
        on_time_delivery_rate=on_time_rate,
        average_days_late=average_late,
        quality_score=quality,
        cost_score=cost_score,
        overall_score=overall,
    )


class ProcurementService:
    """Purchase-order consolidation using the policy in ``configs/reorder.yaml``."""

    def __init__(self, config_root: str = "configs") -> None:
        self.config_root = config_root
        self.tuning: ReorderTuning = load_reorder_tuning(self.config_root)

    def reload(self) -> None:
        """Re-read ``reorder.yaml`` after it was edited."""
        self.tuning = load_reorder_tuning(self.config_root)

    @property
    def policy(self) -> MinimumOrderPolicy:
        return self.tuning.minimum_order_policy

    @property
    def lead_time_days(self) -> int:
        return self.tuning.purchase_order_lead_time_days

    def consolidate(
        self,
        suggestions: Iterable[ReorderSuggestion],
        product_costs: Mapping[str, float] | None = None,
        supplier_minimums: Mapping[str, SupplierMinimum] | None = None,
        warehouse_id: str = "",
        order_date: date | None = None,
    ) -> List[PurchaseOrderDraft]:
        drafts = consolidate_purchase_orders(
            suggestions,
            product_costs,
            supplier_minimums,
            policy=self.policy,
            warehouse_id=warehouse_id,
            lead_time_days=self.lead_time_days,
            order_date=order_date,
        )
        LOGGER.info("Consolidated suggestions into %d draft purchase order(s)", len(drafts))
        return drafts
