from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
import sys

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from stockcast.main import app

client = TestClient(app)


def _history_payload(values) -> list[dict]:
    start = date(2024, 1, 1)
    return [
        {"date": (start + timedelta(days=offset)).isoformat(), "quantity": value}
        for offset, value in enumerate(values)
    ]


def test_plan_endpoint() -> None:
    response = client.post(
        "/api/v1/reorder/plan",
        json={
            "history": _history_payload([8, 12] * 5),
            "lead_time": 4,
            "current_stock": 30,
            "service_level": 0.95,
            "ordering_cost": 50,
            "unit_cost": 8,
        },
    )

    assert response.status_code == 200
    plan = response.json()
    assert plan["safety_stock"] == 7
    assert plan["reorder_point"] == 47
    assert plan["days_until_stockout"] == 3


def test_plan_endpoint_reports_infinite_cover() -> None:
    response = client.post(
        "/api/v1/reorder/plan",
        json={"history": _history_payload([0] * 5), "lead_time": 4, "current_stock": 10},
    )
    assert response.status_code == 200
    assert response.json()["days_until_stockout"] == "infinite"


def test_plan_endpoint_rejects_negative_lead_time() -> None:
    response = client.post("/api/v1/reorder/plan", json={"history": [], "lead_time": -1})
    assert response.status_code == 422


def test_eoq_endpoint() -> None:
    response = client.post(
        "/api/v1/reorder/eoq",
        json={
            "annual_demand": 1000,
            "ordering_cost": 50,
            "holding_cost": 2,
            "unit_cost": 10,
            "discounts": [{"min_quantity": 500, "unit_cost": 9}],
        },
    )

    assert response.status_code == 200
    assert response.json()["quantity"] == 500

    plain = client.post(
        "/api/v1/reorder/eoq", json={"annual_demand": 1000, "ordering_cost": 50, "holding_cost": 2}
    )
    assert plain.json()["quantity"] == 224


def test_rule_validation_endpoint() -> None:
    ok = client.post(
        "/api/v1/reorder/rules/validate",
        json={"product_id": "P1", "supplier_id": "S1", "reorder_point": 5, "maximum_stock": 20},
    )
    assert ok.json() == {"valid": True, "errors": []}

    bad = client.post("/api/v1/reorder/rules/validate", json={"reorder_point": 30, "maximum_stock": 20})
    body = bad.json()
    assert body["valid"] is False
    assert "Reorder point cannot exceed maximum stock" in body["errors"]

    wrong_type = client.post(
        "/api/v1/reorder/rules/validate",
        json={"product_id": "P1", "supplier_id": "S1", "lead_time": "soon"},
    )
    assert wrong_type.status_code == 400


def test_suggestions_endpoint() -> None:
    position = {
        "product_id": "P1",
        "current_stock": 5,
        "reorder_point": 20,
        "reorder_quantity": 40,
        "supplier_id": "S1",
        "unit_cost": 2.5,
        "avg_daily_demand": 2,
    }
    response = client.post(
        "/api/v1/reorder/suggestions",
        json={"positions": [position, {**position, "product_id": "P2", "current_stock": 50}]},
    )

    assert response.status_code == 200
    [suggestion] = response.json()
    assert suggestion["product_id"] == "P1"
    assert suggestion["priority"] == "high"
    assert suggestion["days_until_stockout"] == 2


def test_eoq_endpoint_rejects_overflowing_inputs() -> None:
    response = client.post(
        "/api/v1/reorder/eoq",
        json={"annual_demand": 1e308, "ordering_cost": 1e308, "holding_cost": 1},
    )
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_request"


def test_plan_endpoint_rejects_overflowing_lead_time() -> None:
    response = client.post(
        "/api/v1/reorder/plan",
        json={"history": _history_payload([5]), "lead_time": 1e308},
    )
    assert response.status_code == 400
    assert "too large" in response.json()["detail"]["message"]
