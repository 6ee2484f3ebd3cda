r"""stockcast/main.py

Main entrypoint for the FastAPI application.

The API exposes the forecasting core (per-product demand forecasts and
algorithm comparisons), the reorder calculator, reorder suggestions and
purchase-order drafting.  A health endpoint is also provided for
readiness/liveness checks.  Configuration is read from environment
variables (prefix ``STOCKCAST_``) and YAML files in `configs/`.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

# Load .env from repo root before settings are first read
BASE_DIR = Path(__file__).resolve().parents[1]
load_dotenv(BASE_DIR / ".env")

from .api.v1 import configs, forecasts, health, procure, reorder  # noqa: E402
from .core.config import get_settings  # noqa: E402
from .core.observability import RequestMetricsMiddleware, metrics_endpoint  # noqa: E402

settings = get_settings()

logging.getLogger(__name__).info("Tuning configuration directory: %s", settings.config_dir)

app = FastAPI(title="Stockcast API", version="0.1.0")

origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestMetricsMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")
app.include_router(reorder.router, prefix="/api/v1")
app.include_router(procure.router, prefix="/api/v1")
app.include_router(configs.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("stockcast.main:app", host=settings.api_host, port=settings.api_port)
