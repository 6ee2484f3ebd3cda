r"""stockcast/api/v1/health.py

Health check endpoint.

Orchestrators and load balancers can call `/api/v1/health` to verify that
the service is running.  The configuration directory is reported so a misconfigured
deployment is visible without reading the YAML files.
"""

from fastapi import APIRouter

from ...core.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Return a basic health indicator."""
    return {"status": "ok", "config_dir": get_settings().config_dir}
