"""
Intake business-rule validator.

Validates requests AFTER Pydantic structural validation (and input normalisation)
has already run. Collects all violations in a single pass and raises ValueError
with a JSON-encoded list of {field, issue} dicts so the route (or the global
ValueError handler) can build the standard error envelope.

Rules enforced:
  1. annual_salary or bonus must be > 0: nothing to calculate otherwise
  2. elderly_care.personal_share <= 1,500/month when not an only child
  3. housing_loan and housing_rent.has_rent are mutually exclusive
  4. special_additional and special_deductions cannot both be supplied
  5. a requested search_step must not produce more than max_grid_points split candidates

The deduction aggregator itself never validates; it degrades gracefully instead.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from bonustax.intake.schemas import BonusTaxRequest, DeductionInputs

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Limits: redeclared here (not imported from evaluator.deductions) to keep
# validator.py self-contained
# ---------------------------------------------------------------------------
_ELDERLY_SHARE_MAX_MONTHLY = 1_500


def _deduction_violations(inputs: DeductionInputs, prefix: str = "") -> list[dict[str, Any]]:
    violations: list[dict[str, Any]] = []

    elderly = inputs.elderly_care
    if not elderly.is_only_child and elderly.personal_share > _ELDERLY_SHARE_MAX_MONTHLY:
        violations.append({
            "field": f"{prefix}elderly_care.personal_share",
            "issue": (
                f"Personal elder-care share ¥{elderly.personal_share:,.0f}/month exceeds "
                f"the ¥{_ELDERLY_SHARE_MAX_MONTHLY:,}/month limit for non-only children"
            ),
        })

    if inputs.housing_loan and inputs.housing_rent.has_rent:
        violations.append({
            "field": f"{prefix}housing_rent.has_rent",
            "issue": "Housing loan interest and housing rent cannot both be claimed; choose one",
        })

    return violations


def _raise_if_any(violations: list[dict[str, Any]]) -> None:
    if violations:
        logger.info(
            "Business-rule validation failed: %d violation(s) fields=%s",
            len(violations),
            [v["field"] for v in violations],
        )
        raise ValueError(json.dumps(violations))


def validate_deduction_inputs(inputs: DeductionInputs) -> None:
    """
    Validate special deduction inputs on their own (POST /api/deductions).

    Raises:
        ValueError: JSON string containing a list of {"field", "issue"} dicts.
    """
    _raise_if_any(_deduction_violations(inputs))


def validate_business_rules(request: BonusTaxRequest, max_grid_points: Optional[int] = None) -> None:
    """
    Validate a calculation request against every business rule.

    Collects every violation before raising, so callers receive all errors in
    one response rather than discovering them one at a time.

    Args:
        request: A structurally-valid BonusTaxRequest (Pydantic already ran).
        max_grid_points: Limit for rule 5. None disables the check.

    Raises:
        ValueError: If any business rule is violated. The message is a JSON string
            containing a list of {"field": str, "issue": str} dicts.
    """
    violations: list[dict[str, Any]] = []

    # Rule 1: something to tax
    if request.annual_salary <= 0 and request.bonus <= 0:
        violations.append({
            "field": None,
            "issue": "Enter an annual salary or a bonus amount greater than 0",
        })

    # Rule 4: one source for the special additional deduction
    if request.special_deductions is not None and request.special_additional > 0:
        violations.append({
            "field": "special_additional",
            "issue": "Supply either special_additional or special_deductions, not both",
        })

    # Rules 2-3: structured deduction inputs
    if request.special_deductions is not None:
        violations.extend(_deduction_violations(request.special_deductions, prefix="special_deductions."))

    # Rule 5: bounded split search
    if request.search_step is not None and max_grid_points is not None:
        grid_points = request.bonus // request.search_step + 1
        if grid_points > max_grid_points:
            violations.append({
                "field": "search_step",
                "issue": (
                    f"search_step {request.search_step:g} gives {grid_points:,.0f} split candidates "
                    f"for this bonus; the limit is {max_grid_points:,}"
                ),
            })

    _raise_if_any(violations)
