"""
schemas.py: Intake Pydantic v2 data contracts.

Defines:
  - ElderlyCareInput, HousingRentInput, ContinuingEducationInput
  - DeductionInputs   (the six special additional deduction categories)
  - BonusTaxRequest   (the central request contract: the evaluator consumes this)
  - ErrorDetail, ErrorBody, ErrorResponse  (cross-cutting error envelope)

NORMALISATION:
  Money and count fields never reject user entry. Blank text, None, non-numeric
  text, NaN/infinite and negative values all become 0 before field validation runs,
  so the evaluator only ever sees finite non-negative numbers.
  housing_rent.tier_index is the one exception: it is kept as given and the
  aggregator falls back to the lowest tier when it is out of range.

All monetary fields are in CNY. Salary/bonus/insurance fields are ANNUAL.
elderly_care.personal_share is MONTHLY: the aggregator multiplies ×12.
"""
from __future__ import annotations

import math
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


# ---------------------------------------------------------------------------
# Normalisers: shared by every money/count field
# ---------------------------------------------------------------------------

def coerce_amount(value: Any) -> float:
    """Blank, non-numeric, non-finite or negative entries count as 0."""
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def coerce_count(value: Any) -> int:
    """Same rules as coerce_amount, truncated to a whole number."""
    return int(coerce_amount(value))


Amount = Annotated[float, BeforeValidator(coerce_amount)]
Count = Annotated[int, BeforeValidator(coerce_count)]


# ---------------------------------------------------------------------------
# Special additional deduction inputs
# ---------------------------------------------------------------------------

class ElderlyCareInput(BaseModel):
    """
    Elder-care claim.

    is_only_child=True → fixed 3,000/month regardless of personal_share.
    is_only_child=False → personal_share/month (siblings split 3,000; each share ≤ 1,500).
    """
    model_config = ConfigDict(extra="forbid")

    is_only_child: bool = False
    siblings_count: Count = Field(default=0, description="Informational only.")
    personal_share: Amount = Field(
        default=0,
        description="Monthly share of the 3,000 elder-care allowance. Capped at 1,500 by the validator.",
    )


class HousingRentInput(BaseModel):
    """Rent claim. tier_index: 0 = 1,500/month, 1 = 1,100/month, 2 = 800/month."""
    model_config = ConfigDict(extra="forbid")

    has_rent: bool = False
    tier_index: int = 0


class ContinuingEducationInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    degree: bool = False
    degree_months: Count = Field(
        default=12,
        description="Months of degree education this year. Aggregator caps at 48.",
    )
    certificate: bool = False


class DeductionInputs(BaseModel):
    """
    Structured per-category inputs for the special additional deduction.

    Every category is off by default, so DeductionInputs() aggregates to 0.
    housing_loan and housing_rent.has_rent are mutually exclusive; if both are set
    neither contributes (the validator reports the conflict at the HTTP edge).
    """
    model_config = ConfigDict(extra="forbid")

    child_education: Count = Field(default=0, description="Number of children in education.")
    infant_care: Count = Field(default=0, description="Number of children under 3.")
    elderly_care: ElderlyCareInput = Field(default_factory=ElderlyCareInput)
    housing_loan: bool = False
    housing_rent: HousingRentInput = Field(default_factory=HousingRentInput)
    continuing_education: ContinuingEducationInput = Field(default_factory=ContinuingEducationInput)
    serious_illness: Amount = Field(
        default=0,
        description="Out-of-pocket serious illness spend for the year. Aggregator caps at 80,000.",
    )


# ---------------------------------------------------------------------------
# BonusTaxRequest: central request contract
# ---------------------------------------------------------------------------

class BonusTaxRequest(BaseModel):
    """
    Annual salary + one-off annual bonus, with everything deductible from them.

    special_additional is a flat annual amount; special_deductions is the structured
    alternative that the aggregator turns into that amount. Supply at most one.
    search_step overrides the configured grid increment for this request only; it must be
    finite, and the validator refuses steps that would exceed settings.max_grid_points.
    """
    model_config = ConfigDict(extra="forbid")

    annual_salary: Amount = Field(default=0, description="Annual salary excluding the bonus.")
    bonus: Amount = Field(default=0, description="One-off annual bonus.")
    social_insurance: Amount = Field(
        default=0,
        description="Annual employee social insurance and housing fund contributions.",
    )
    special_additional: Amount = Field(default=0, description="Flat annual special additional deduction.")
    other_deductions: Amount = Field(default=0, description="Other statutory deductions, annual.")

    special_deductions: Optional[DeductionInputs] = None
    search_step: Optional[Annotated[float, Field(gt=0, allow_inf_nan=False)]] = None


# ---------------------------------------------------------------------------
# Error response models: used by main.py exception handlers (cross-cutting)
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single field-level validation or business-rule error."""
    model_config = ConfigDict(extra="forbid")

    field: Optional[str] = None   # Dot-notation field path, e.g. "elderly_care.personal_share"
    issue: str                     # Human-readable description of the problem


class ErrorBody(BaseModel):
    """Error envelope body."""
    model_config = ConfigDict(extra="forbid")

    code: str                                      # VALIDATION_ERROR, NOT_FOUND, etc.
    message: str                                   # High-level error description
    details: List[ErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response format for all endpoints.

    Structure: {"error": {"code": "...", "message": "...", "details": [...]}}
    """
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


__all__ = [
    "coerce_amount",
    "coerce_count",
    "Amount",
    "Count",
    "ElderlyCareInput",
    "HousingRentInput",
    "ContinuingEducationInput",
    "DeductionInputs",
    "BonusTaxRequest",
    "ErrorDetail",
    "ErrorBody",
    "ErrorResponse",
]
