r"""stockcast/api/v1/reorder.py

Routes for reorder planning: inventory levels, EOQ, rule checks and
suggestions."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, status

from ...core.config import get_settings
from ...models import schemas
from ...services.reorder_service import ReorderService, eoq_with_quantity_discounts, validate_reorder_rule
from ...services.suggestion_service import generate_reorder_suggestions

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_reorder_service = ReorderService(config_root=get_settings().config_dir)


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


@router.post("/reorder/plan", response_model=schemas.ReorderPlan)
def plan(body: schemas.ReorderPlanRequest) -> schemas.ReorderPlan:
    """Derive safety stock, reorder point, max stock and EOQ from demand history."""

    try:
        return _reorder_service.plan(
            body.history,
            body.lead_time,
            current_stock=body.current_stock,
            lead_time_variability=body.lead_time_variability,
            service_level=body.service_level,
            ordering_cost=body.ordering_cost,
            unit_cost=body.unit_cost,
        )
    except ValueError as exc:
        LOGGER.warning("Reorder plan rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc


@router.post("/reorder/eoq", response_model=schemas.EOQOption)
def eoq(body: schemas.EOQRequest) -> schemas.EOQOption:
    try:
        return eoq_with_quantity_discounts(
            body.annual_demand,
            body.ordering_cost,
            body.holding_cost,
            body.discounts,
            unit_cost=body.unit_cost,
        )
    except ValueError as exc:
        LOGGER.warning("EOQ request rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc


@router.post("/reorder/rules/validate", response_model=schemas.RuleValidationResponse)
def validate_rule(body: Dict[str, Any]) -> schemas.RuleValidationResponse:
    """Check a full or partial reorder rule without storing it."""

    try:
        errors = validate_reorder_rule(body)
    except TypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", "Numeric rule fields must be numbers."),
        ) from exc
    return schemas.RuleValidationResponse(valid=not errors, errors=errors)


@router.post("/reorder/suggestions", response_model=List[schemas.ReorderSuggestion])
def suggestions(body: schemas.SuggestionRequest) -> List[schemas.ReorderSuggestion]:
    """Rank products at or below their reorder point by urgency."""

    tuning = _reorder_service.tuning
    return generate_reorder_suggestions(
        body.positions,
        high_days=tuning.high_priority_days,
        medium_days=tuning.medium_priority_days,
    )
