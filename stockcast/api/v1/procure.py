r"""stockcast/api/v1/procure.py

Routes for purchase-order drafting and supplier scoring."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from ...core.config import get_settings
from ...models import schemas
from ...services.procurement_service import ProcurementService, supplier_performance

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_procurement_service = ProcurementService(config_root=get_settings().config_dir)


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


@router.post("/procure/purchase-orders", response_model=List[schemas.PurchaseOrderDraft])
def purchase_orders(body: schemas.PurchaseOrderRequest) -> List[schemas.PurchaseOrderDraft]:
    """Consolidate reorder suggestions into one draft order per supplier."""

    LOGGER.info(
        "Purchase order request with %d suggestion(s), policy=%s",
        len(body.suggestions),
        _procurement_service.policy.value,
    )
    try:
        return _procurement_service.consolidate(
            body.suggestions,
            body.product_costs,
            body.supplier_minimums,
            warehouse_id=body.warehouse_id,
            order_date=body.order_date,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc


@router.post(
    "/procure/suppliers/{supplier_id}/performance", response_model=schemas.SupplierPerformance
)
def performance(supplier_id: str, body: schemas.SupplierPerformanceRequest) -> schemas.SupplierPerformance:
    return supplier_performance(supplier_id, body.deliveries, body.benchmark_cost)
