r"""stockcast/core/observability.py

Request logging and Prometheus metrics for the HTTP host."""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

LOGGER = logging.getLogger(__name__)

_REQUEST_COUNTER = Counter(
    "stockcast_http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
_LATENCY_HISTOGRAM = Histogram(
    "stockcast_http_request_latency_seconds", "Request latency", ["method", "path"]
)
FORECAST_COUNTER = Counter(
    "stockcast_forecasts_total", "Forecasts produced, by algorithm used", ["algorithm"]
)


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Middleware recording Prometheus metrics and one JSON log line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("request-id")
            or str(uuid.uuid4())
        )
        product_id = request.headers.get("x-product-id")

        start_perf = time.perf_counter()
        start_wall = time.time()

        def _finalize(response: Response) -> Response:
            latency = time.perf_counter() - start_perf
            status_code = getattr(response, "status_code", 500)

            _REQUEST_COUNTER.labels(method, path, str(status_code)).inc()
            _LATENCY_HISTOGRAM.labels(method, path).observe(latency)

            log_payload = {
                "timestamp": datetime.fromtimestamp(start_wall, tz=timezone.utc).isoformat(),
                "path": path,
                "method": method,
                "status": status_code,
                "latency_ms": int(latency * 1000),
                "request_id": request_id,
                "client_ip": client_ip,
                "product_id": product_id,
                "algorithm_used": response.headers.get("x-algorithm-used"),
            }
            LOGGER.info(json.dumps(log_payload))
            response.headers["x-request-id"] = request_id
            return response

        try:
            response = await call_next(request)
        except Exception:
            # Record the failed request, then propagate.
            _finalize(PlainTextResponse("Internal Server Error", status_code=500))
            raise

        return _finalize(response)


def metrics_endpoint() -> Response:
    """Return Prometheus metrics payload."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
