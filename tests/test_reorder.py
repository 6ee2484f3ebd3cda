from __future__ import annotations

from pathlib import Path
import sys

import pytest
import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from stockcast.models.schemas import DiscountTier, ReorderRule
from stockcast.services.reorder_service import (
    ReorderService,
    days_inventory_on_hand,
    days_until_stockout,
    demand_variability,
    economic_order_quantity,
    eoq_with_quantity_discounts,
    estimate_holding_cost,
    fill_rate,
    inventory_turnover,
    max_stock,
    plan_reorder,
    reorder_point,
    reorder_point_from_history,
    reorder_quantity,
    safety_stock,
    service_level_z_score,
    stockout_frequency,
    validate_reorder_rule,
)


def test_safety_stock_fixed_lead_time() -> None:
    assert safety_stock(avg_daily_demand=10, demand_std_dev=2, lead_time=4, service_level=0.95) == 7


def test_safety_stock_variable_lead_time() -> None:
    # 1.645 * sqrt(4 * 9 + 100 * 1) = 19.18
    assert safety_stock(10, 3, 4, lead_time_variability=1, service_level=0.95) == 20


def test_service_level_snaps_to_nearest_table_entry() -> None:
    assert service_level_z_score(0.951) == pytest.approx(1.645)
    assert service_level_z_score(0.99) == pytest.approx(2.326)
    assert service_level_z_score(0.2) == pytest.approx(0.0)


def test_safety_stock_rejects_negative_inputs() -> None:
    with pytest.raises(ValueError):
        safety_stock(-1, 2, 4)
    with pytest.raises(ValueError):
        safety_stock(1, 2, float("nan"))


def test_reorder_point_and_max_stock() -> None:
    assert reorder_point(10, 4, 10) == 50
    assert reorder_point(2.5, 3, 0) == 8
    assert max_stock(10, 4, 10) == 90
    assert max_stock(10, 4, 10, multiplier=3) == 130


@pytest.mark.parametrize("lead_time", [0, 1, 2, 5, 10, 30])
def test_reorder_point_monotone_in_lead_time(lead_time: int) -> None:
    def rop(days: float) -> int:
        ss = safety_stock(12, 4, days, service_level=0.95)
        return reorder_point(12, days, ss)

    assert rop(lead_time + 1) >= rop(lead_time)


def test_eoq() -> None:
    assert economic_order_quantity(1000, 50, 2) == 224
    assert economic_order_quantity(2000, 100, 2) > economic_order_quantity(1000, 50, 2)


@pytest.mark.parametrize(
    ("demand", "ordering", "holding"),
    [(0, 50, 2), (1000, 0, 2), (1000, 50, 0), (-5, 50, 2), (1000, -1, 2), (1000, 50, -2)],
)
def test_eoq_is_zero_for_non_positive_inputs(demand, ordering, holding) -> None:
    assert economic_order_quantity(demand, ordering, holding) == 0


def test_eoq_with_discount_tier() -> None:
    option = eoq_with_quantity_discounts(
        1000, 50, 2, [DiscountTier(min_quantity=500, unit_cost=9.0)], unit_cost=10.0
    )
    assert option.quantity == 500
    assert option.unit_cost == 9.0
    assert option.total_cost == pytest.approx(9000 + 100 + 500)


def test_eoq_without_discounts_is_plain_eoq() -> None:
    option = eoq_with_quantity_discounts(1000, 50, 2, [], unit_cost=10.0)
    assert option.quantity == 224
    assert option.unit_cost == 10.0

    empty = eoq_with_quantity_discounts(0, 50, 2, [])
    assert empty.quantity == 0
    assert empty.total_cost == 0.0


def test_reorder_quantity() -> None:
    assert reorder_quantity(30, 100) == 70
    assert reorder_quantity(30, 100, eoq=50) == 50
    assert reorder_quantity(120, 100, eoq=50) == 0
    assert reorder_quantity(30, 100, eoq=0) == 70


def test_days_until_stockout() -> None:
    assert days_until_stockout(5, 2) == 2
    assert days_until_stockout(25, 10) == 2
    assert days_until_stockout(10, 0) == "infinite"
    assert days_until_stockout(0, 5) == 0
    assert days_until_stockout(-3, 5) == 0


def test_history_helpers() -> None:
    history = [8, 12] * 5
    assert demand_variability(history) == pytest.approx(2.0)
    assert demand_variability([5]) == 0.0
    # ss = ceil(1.645 * 2 * 2) = 7, rop = 10 * 4 + 7
    assert reorder_point_from_history(history, 4) == 47


def test_plan_reorder() -> None:
    plan = plan_reorder(
        [8, 12] * 5,
        4,
        current_stock=30,
        ordering_cost=50,
        unit_cost=8,
        holding_cost_rate=0.25,
    )

    assert plan.avg_daily_demand == pytest.approx(10.0)
    assert plan.safety_stock == 7
    assert plan.reorder_point == 47
    assert plan.max_stock == 87
    # holding cost 2 per unit-year, annual demand 3650
    assert plan.eoq == economic_order_quantity(3650, 50, estimate_holding_cost(8, 0.25))
    assert plan.reorder_quantity == min(plan.eoq, 87 - 30)
    assert plan.days_until_stockout == 3


def test_validate_reorder_rule() -> None:
    assert validate_reorder_rule(
        {
            "product_id": "P1",
            "supplier_id": "S1",
            "reorder_point": 10,
            "reorder_quantity": 5,
            "minimum_stock": 2,
            "maximum_stock": 50,
            "lead_time": 3,
        }
    ) == []

    errors = validate_reorder_rule(
        {"reorder_point": 60, "reorder_quantity": 0, "minimum_stock": 80, "maximum_stock": 50, "lead_time": -1}
    )
    assert "Product ID is required" in errors
    assert "Supplier ID is required" in errors
    assert "Reorder quantity must be positive" in errors
    assert "Minimum stock cannot exceed maximum stock" in errors
    assert "Reorder point cannot exceed maximum stock" in errors
    assert "Lead time must be non-negative" in errors


def test_reorder_rule_model_validation() -> None:
    with pytest.raises(ValueError):
        ReorderRule(product_id="P1", supplier_id="S1", reorder_point=60, reorder_quantity=5, maximum_stock=50)


def test_inventory_metrics_zero_denominators() -> None:
    assert inventory_turnover(1000, 0) == 0.0
    assert inventory_turnover(1000, 250) == pytest.approx(4.0)
    assert days_inventory_on_hand(100, 0) == "infinite"
    assert days_inventory_on_hand(100, 4) == pytest.approx(25.0)
    assert fill_rate(0, 0) == 1.0
    assert fill_rate(45, 50) == pytest.approx(0.9)
    assert stockout_frequency(3, 0) == 0.0
    assert stockout_frequency(3, 30) == pytest.approx(0.1)


def test_service_uses_configured_service_level(tmp_path: Path) -> None:
    (tmp_path / "reorder.yaml").write_text(yaml.safe_dump({"service_level": 0.99, "max_stock_multiplier": 3.0}))
    service = ReorderService(config_root=str(tmp_path))

    plan = service.plan([8, 12] * 5, 4)
    assert plan.service_level == 0.99
    # ceil(2.326 * 2 * 2) = 10
    assert plan.safety_stock == 10
    assert plan.max_stock == 130

    override = service.plan([8, 12] * 5, 4, service_level=0.95)
    assert override.safety_stock == 7


def test_overflowing_levels_are_rejected() -> None:
    with pytest.raises(ValueError, match="too large"):
        economic_order_quantity(1e308, 1e308, 1)
    with pytest.raises(ValueError, match="too large"):
        reorder_point(5, 1e308, 0)
    with pytest.raises(ValueError, match="too large"):
        max_stock(1e200, 1e200, 0)
    with pytest.raises(ValueError, match="too large"):
        plan_reorder([5], 1e308)
