"""
Evaluator HTTP routes: POST /api/calculate,
                        GET /api/brackets

POST /api/calculate runs the full deterministic evaluation: both pure treatments,
the split search and the recommendation. No state is kept between requests.
"""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from bonustax.config import settings
from bonustax.evaluator.optimizer import select_search_step
from bonustax.evaluator.tax_engine import bracket_tables, evaluate_bonus
from bonustax.intake.routes import make_validation_error_response
from bonustax.intake.schemas import BonusTaxRequest
from bonustax.intake.validator import validate_business_rules

router = APIRouter(prefix="/api", tags=["evaluator"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# POST /api/calculate
# ---------------------------------------------------------------------------

@router.post("/calculate")
async def calculate(request_body: BonusTaxRequest) -> JSONResponse:
    """
    Evaluate a salary + annual bonus and recommend the lowest-tax bonus treatment.

    Grid step: request.search_step if supplied (refused when it exceeds
    settings.max_grid_points), otherwise the configured step, coarser for bonuses above
    settings.coarse_search_threshold and raised as needed to stay within max_grid_points.

    Returns:
      200: TaxResult
      422: VALIDATION_ERROR (schema or business rule)
    """
    try:
        validate_business_rules(request_body, max_grid_points=settings.max_grid_points)
    except ValueError as exc:
        return make_validation_error_response(str(exc), "Request validation failed")

    step = request_body.search_step or select_search_step(
        request_body.bonus,
        base_step=settings.search_step,
        coarse_step=settings.coarse_search_step,
        coarse_threshold=settings.coarse_search_threshold,
        max_grid_points=settings.max_grid_points,
    )
    # CPU-bound grid search runs off the event loop
    result = await asyncio.to_thread(evaluate_bonus, request_body, search_step=step)

    logger.info(
        "Bonus evaluated salary=%s bonus=%s step=%s scenarios=%d recommended=%r total_tax=%s",
        request_body.annual_salary,
        request_body.bonus,
        step,
        len(result.scenarios),
        result.recommended.label,
        result.recommended.total_tax,
    )

    return JSONResponse(status_code=200, content=result.model_dump())


# ---------------------------------------------------------------------------
# GET /api/brackets
# ---------------------------------------------------------------------------

@router.get("/brackets")
async def get_brackets() -> JSONResponse:
    """Both rate tables and the basic deduction. The open-ended upper bound is null."""
    return JSONResponse(status_code=200, content=bracket_tables().model_dump(mode="json"))
