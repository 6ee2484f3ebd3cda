"""Turn current stock positions into ranked reorder suggestions."""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List

from ..models.schemas import INFINITE, Priority, ReorderSuggestion, StockPosition
from .reorder_service import StockoutDays, days_until_stockout

LOGGER = logging.getLogger(__name__)

HIGH_PRIORITY_DAYS = 3
MEDIUM_PRIORITY_DAYS = 7


def priority_for(
    days: StockoutDays,
    high_days: int = HIGH_PRIORITY_DAYS,
    medium_days: int = MEDIUM_PRIORITY_DAYS,
) -> Priority:
    if days == INFINITE:
        return Priority.LOW
    if days <= high_days:
        return Priority.HIGH
    if days <= medium_days:
        return Priority.MEDIUM
    return Priority.LOW


def _urgency_key(suggestion: ReorderSuggestion) -> tuple[int, float]:
    days = suggestion.days_until_stockout
    return suggestion.priority.rank, math.inf if days == INFINITE else float(days)


def generate_reorder_suggestions(
    positions: Iterable[StockPosition],
    high_days: int = HIGH_PRIORITY_DAYS,
    medium_days: int = MEDIUM_PRIORITY_DAYS,
) -> List[ReorderSuggestion]:
    """Suggest orders for every product at or below its reorder point.

    Products above their reorder point are left out.  The result is sorted by
    priority, then by fewest days until stockout.
    """

    suggestions: List[ReorderSuggestion] = []
    for position in positions:
        if position.current_stock > position.reorder_point:
            continue

        days = days_until_stockout(position.current_stock, position.avg_daily_demand)
        suggestions.append(
            ReorderSuggestion(
                product_id=position.product_id,
                product_name=position.product_name,
                current_stock=position.current_stock,
                reorder_point=position.reorder_point,
                suggested_quantity=position.reorder_quantity,
                supplier_id=position.supplier_id,
                supplier_name=position.supplier_name,
                estimated_cost=position.reorder_quantity * position.unit_cost,
                priority=priority_for(days, high_days, medium_days),
                days_until_stockout=days,
            )
        )

    suggestions.sort(key=_urgency_key)
    LOGGER.info("Generated %d reorder suggestion(s)", len(suggestions))
    return suggestions


def stock_alerts(positions: Iterable[StockPosition]) -> Dict[str, List[StockPosition]]:
    """Split positions into ``low`` (at/below reorder point) and ``critical`` (out of stock)."""

    items = list(positions)
    return {
        "low": [p for p in items if p.current_stock <= p.reorder_point],
        "critical": [p for p in items if p.current_stock <= 0],
    }
