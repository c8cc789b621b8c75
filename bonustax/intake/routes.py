"""
Intake HTTP routes: POST /api/deductions

Aggregates structured special additional deduction inputs so a client can show
the itemised total before submitting a full calculation.
"""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from bonustax.evaluator.deductions import aggregate_special_deductions
from bonustax.intake.schemas import (
    DeductionInputs,
    ErrorBody,
    ErrorDetail,
    ErrorResponse,
)
from bonustax.intake.validator import validate_deduction_inputs

router = APIRouter(prefix="/api", tags=["intake"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_validation_error_response(violations_json: str, message: str) -> JSONResponse:
    """
    Parse the JSON-encoded violations list from the validator and return the
    standard 422 error envelope.

    Falls back to a single field-less detail if the message is not valid JSON
    (e.g. a plain ValueError from elsewhere).
    """
    try:
        violations: list[dict] = json.loads(violations_json)
    except (json.JSONDecodeError, ValueError):
        violations = [{"field": None, "issue": violations_json}]
    details = [ErrorDetail(field=v.get("field"), issue=v["issue"]) for v in violations]
    body = ErrorResponse(
        error=ErrorBody(
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )
    )
    return JSONResponse(status_code=422, content=body.model_dump())


# ---------------------------------------------------------------------------
# POST /api/deductions
# ---------------------------------------------------------------------------

@router.post("/deductions")
async def calculate_deductions(inputs: DeductionInputs) -> JSONResponse:
    """
    Return the annual special additional deduction total and its breakdown.

    Returns:
      200: DeductionResult
      422: VALIDATION_ERROR with every rule violation
    """
    try:
        validate_deduction_inputs(inputs)
    except ValueError as exc:
        return make_validation_error_response(str(exc), "Deduction validation failed")

    result = aggregate_special_deductions(inputs)
    logger.info(
        "Special deductions aggregated total=%s categories=%s",
        result.total,
        [item.category for item in result.breakdown],
    )
    return JSONResponse(status_code=200, content=result.model_dump())
