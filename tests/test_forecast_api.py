r"""tests/test_forecast_api.py"""

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
import sys

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from stockcast.api.v1 import forecasts
from stockcast.main import app

client = TestClient(app)

START = date(2024, 1, 1)


def _history_payload(values) -> list[dict]:
    return [
        {"date": (START + timedelta(days=offset)).isoformat(), "quantity": value}
        for offset, value in enumerate(values)
    ]


def _ramp(n: int = 20) -> list[float]:
    return [2.0 * i + 10.0 + (1.0 if i % 2 == 0 else -1.0) for i in range(n)]


def test_health() -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_forecast_endpoint_returns_forecast_and_trend() -> None:
    response = client.post(
        "/api/v1/forecasts",
        json={
            "product_id": "SKU-1",
            "history": _history_payload([10] * 30),
            "settings": {"algorithm": "sma", "periods": 5},
        },
        headers={"x-product-id": "SKU-1"},
    )

    assert response.status_code == 200
    payload = response.json()
    forecast = payload["forecast"]
    assert forecast["product_id"] == "SKU-1"
    assert forecast["point_forecast"] == [10.0] * 5
    assert forecast["dates"][0] == "2024-01-31"
    assert forecast["algorithm_used"] == "sma"
    assert payload["trend"] == "stable"
    assert payload["chart"] is None
    assert response.headers["x-algorithm-used"] == "sma"
    assert response.headers["x-request-id"]


def test_forecast_endpoint_hybrid_with_chart() -> None:
    response = client.post(
        "/api/v1/forecasts",
        json={
            "product_id": "SKU-2",
            "history": _history_payload(_ramp()),
            "settings": {"periods": 7},
            "include_chart": True,
            "chart_days": 10,
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["forecast"]["algorithm_used"] == "linear"
    assert len(payload["forecast"]["comparisons"]) == 4
    assert payload["trend"] == "up"
    assert len(payload["chart"]) == 17
    assert payload["chart"][0]["actual"] is not None
    assert payload["chart"][-1]["forecast"] is not None


def test_forecast_endpoint_rejects_negative_quantity() -> None:
    response = client.post(
        "/api/v1/forecasts",
        json={"product_id": "SKU-3", "history": [{"date": "2024-01-01", "quantity": -1}]},
    )
    assert response.status_code == 422


def test_forecast_endpoint_maps_value_error(monkeypatch) -> None:
    def _raise(*args, **kwargs):
        raise ValueError("bad history")

    monkeypatch.setattr(forecasts._forecast_service, "forecast", _raise)
    response = client.post("/api/v1/forecasts", json={"product_id": "SKU-4", "history": []})

    assert response.status_code == 400
    assert response.json()["detail"] == {"error": "invalid_request", "message": "bad history"}


def test_compare_endpoint() -> None:
    response = client.post("/api/v1/forecasts/compare", json={"history": _history_payload(_ramp())})

    assert response.status_code == 200
    rows = response.json()
    assert [row["algorithm"] for row in rows] == ["sma", "exponential", "linear", "seasonal"]
    assert [row["recommended"] for row in rows].count(True) == 1


def test_metrics_exposes_forecast_counter() -> None:
    client.post(
        "/api/v1/forecasts",
        json={"product_id": "SKU-5", "history": _history_payload([3] * 10), "settings": {"algorithm": "sma"}},
    )
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "stockcast_forecasts_total" in response.text
    assert "stockcast_http_requests_total" in response.text
