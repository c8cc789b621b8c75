"""
schemas.py: Evaluator Pydantic v2 data contracts.

Defines:
  - TaxBracket          (one row of a progressive schedule)
  - TaxComputation      (common result shape of every tax-mode calculator)
  - DeductionItem, DeductionResult  (special additional deduction breakdown)
  - DeductionParams     (everything subtracted from income under combined taxation)
  - AllocationScenario  (one way of splitting the bonus between the two modes)
  - TaxResult           (full evaluation: main evaluator output)
  - BracketTables       (GET /api/brackets payload)

All result models are frozen: computed values are never mutated after the fact.
"""
from __future__ import annotations

import math
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer


DeductionCategory = Literal[
    "child_education",
    "infant_care",
    "elderly_care",
    "housing_loan",
    "housing_rent",
    "continuing_education_degree",
    "continuing_education_certificate",
    "serious_illness",
]


# ---------------------------------------------------------------------------
# TaxBracket: one row of a progressive schedule
# ---------------------------------------------------------------------------

class TaxBracket(BaseModel):
    """
    upper_bound is inclusive; the final row of every table uses float("inf").
    JSON output renders the open-ended bound as null.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    upper_bound: float
    rate: float = Field(ge=0, le=1)
    quick_deduction: float

    @field_serializer("upper_bound", when_used="json")
    def serialize_upper_bound(self, value: float) -> Optional[float]:
        return None if math.isinf(value) else value


# ---------------------------------------------------------------------------
# TaxComputation: result of one tax-mode calculator
# ---------------------------------------------------------------------------

class TaxComputation(BaseModel):
    """
    tax = max(0, taxable_base × rate − quick_deduction), rounded to 2 decimals.

    For separate (bonus-only) taxation the bracket is chosen by monthly_equivalent
    (bonus / 12) but the rate is applied to taxable_base, the full bonus.
    monthly_equivalent is None for the annual-schedule calculators.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    tax: float = Field(ge=0)
    rate: float
    quick_deduction: float
    taxable_base: float
    monthly_equivalent: Optional[float] = None


# ---------------------------------------------------------------------------
# Special additional deduction result
# ---------------------------------------------------------------------------

class DeductionItem(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    category: DeductionCategory
    name: str            # e.g. "Child education (2 children)"
    amount: float        # Annual amount, already capped


class DeductionResult(BaseModel):
    """
    total = sum of breakdown amounts.
    breakdown lists only non-zero categories, in evaluation order:
    child education, infant care, elderly care, housing, continuing education, serious illness.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    total: float
    breakdown: List[DeductionItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# DeductionParams: inputs to the annual-schedule calculators
# ---------------------------------------------------------------------------

class DeductionParams(BaseModel):
    """Annual amounts subtracted from salary (+ merged bonus) before the annual table applies."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    basic_deduction: float = 60_000
    social_insurance: float = 0
    special_additional: float = 0
    other_deductions: float = 0

    @computed_field
    @property
    def total(self) -> float:
        return (
            self.basic_deduction
            + self.social_insurance
            + self.special_additional
            + self.other_deductions
        )


# ---------------------------------------------------------------------------
# AllocationScenario: one candidate split of the bonus
# ---------------------------------------------------------------------------

class AllocationScenario(BaseModel):
    """
    separate_amount + combined_amount == total bonus.

    total_tax   = separate_tax + combined_tax, except the all-separate baseline where
                  combined_tax is 0 and salary_tax is added instead (salary is still taxed).
    salary_tax  = tax on salary alone under the annual schedule (informational).
    savings     = worse baseline total_tax − this total_tax.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    separate_amount: float
    combined_amount: float
    separate_tax: float
    combined_tax: float
    total_tax: float
    salary_tax: float
    savings: float
    label: str


# ---------------------------------------------------------------------------
# TaxResult: full evaluation output (public API of the evaluator)
# ---------------------------------------------------------------------------

class TaxResult(BaseModel):
    """
    Output of evaluate_bonus().

    separate / salary_only / separate_total_tax describe "bonus taxed alone".
    combined describes "bonus merged into annual income".
    scenarios is sorted ascending by total_tax; recommended is scenarios[0].
    net_income is the post-tax cash income under the recommended scenario.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    deductions: DeductionParams
    special_deduction_detail: Optional[DeductionResult] = None

    separate: TaxComputation
    salary_only: TaxComputation
    separate_total_tax: float
    combined: TaxComputation

    scenarios: List[AllocationScenario]
    recommended: AllocationScenario
    net_income: float
    search_step: float
    rationale: str


class BracketTables(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    monthly: List[TaxBracket]
    annual: List[TaxBracket]
    basic_deduction: float


__all__ = [
    "DeductionCategory",
    "TaxBracket",
    "TaxComputation",
    "DeductionItem",
    "DeductionResult",
    "DeductionParams",
    "AllocationScenario",
    "TaxResult",
    "BracketTables",
]
