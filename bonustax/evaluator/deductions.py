"""
Special Additional Deduction aggregator.

Turns DeductionInputs into an annual total plus an itemised breakdown.
Pure function, never raises. Inputs are taken as given: range checks (e.g. the
1,500/month elder-care share limit) belong to intake/validator.py.

Monthly allowances per category (annualised ×12 unless noted):
  Child education       2,000 per child
  Infant care (<3 yrs)  2,000 per infant
  Elderly care          3,000 if only child; otherwise the personal share
  Housing loan          1,000            ─┐ mutually exclusive:
  Housing rent          1,500/1,100/800  ─┘ claiming both yields neither
  Continuing education  400 per degree month (max 48 months); certificate 3,600 flat/year
  Serious illness       actual spend, capped at 80,000/year
"""
from __future__ import annotations

from bonustax.evaluator.schemas import DeductionItem, DeductionResult
from bonustax.intake.schemas import DeductionInputs

# ===========================================================================
# CATEGORY CONSTANTS
# ===========================================================================

CHILD_EDUCATION_MONTHLY = 2_000
INFANT_CARE_MONTHLY = 2_000
ELDERLY_CARE_ONLY_CHILD_MONTHLY = 3_000
HOUSING_LOAN_MONTHLY = 1_000

# (label, monthly amount): indexed by HousingRentInput.tier_index
HOUSING_RENT_TIERS: list[tuple[str, float]] = [
    ("municipality / provincial capital / separately planned city", 1_500),
    ("city district population over 1 million", 1_100),
    ("city district population 1 million or less", 800),
]

DEGREE_EDUCATION_MONTHLY = 400
DEGREE_EDUCATION_MAX_MONTHS = 48
CERTIFICATE_EDUCATION_YEARLY = 3_600
SERIOUS_ILLNESS_CAP = 80_000

_MONTHS = 12


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def rent_tier(tier_index: int) -> tuple[str, float]:
    """Tier for an index; anything out of range falls back to the lowest tier."""
    if 0 <= tier_index < len(HOUSING_RENT_TIERS):
        return HOUSING_RENT_TIERS[tier_index]
    return HOUSING_RENT_TIERS[-1]


def aggregate_special_deductions(inputs: DeductionInputs) -> DeductionResult:
    """
    Annual special additional deduction for the given category inputs.

    Breakdown keeps evaluation order and omits categories that contribute nothing.
    """
    items: list[DeductionItem] = []

    # 1. Child education
    if inputs.child_education > 0:
        items.append(DeductionItem(
            category="child_education",
            name=f"Child education ({_plural(inputs.child_education, 'child', 'children')})",
            amount=inputs.child_education * CHILD_EDUCATION_MONTHLY * _MONTHS,
        ))

    # 2. Infant care
    if inputs.infant_care > 0:
        items.append(DeductionItem(
            category="infant_care",
            name=f"Infant care under 3 ({_plural(inputs.infant_care, 'infant', 'infants')})",
            amount=inputs.infant_care * INFANT_CARE_MONTHLY * _MONTHS,
        ))

    # 3. Elderly care: only child takes the fixed amount, personal_share ignored
    elderly = inputs.elderly_care
    if elderly.is_only_child:
        items.append(DeductionItem(
            category="elderly_care",
            name="Elderly care (only child)",
            amount=ELDERLY_CARE_ONLY_CHILD_MONTHLY * _MONTHS,
        ))
    elif elderly.personal_share > 0:
        items.append(DeductionItem(
            category="elderly_care",
            name=f"Elderly care (shared, {elderly.personal_share:,.0f}/month)",
            amount=elderly.personal_share * _MONTHS,
        ))

    # 4. Housing: loan XOR rent
    has_rent = inputs.housing_rent.has_rent
    if inputs.housing_loan and not has_rent:
        items.append(DeductionItem(
            category="housing_loan",
            name="Housing loan interest",
            amount=HOUSING_LOAN_MONTHLY * _MONTHS,
        ))
    if has_rent and not inputs.housing_loan:
        label, monthly = rent_tier(inputs.housing_rent.tier_index)
        items.append(DeductionItem(
            category="housing_rent",
            name=f"Housing rent ({label})",
            amount=monthly * _MONTHS,
        ))

    # 5. Continuing education: degree and certificate are independent
    education = inputs.continuing_education
    months = min(education.degree_months, DEGREE_EDUCATION_MAX_MONTHS)
    if education.degree and months > 0:
        items.append(DeductionItem(
            category="continuing_education_degree",
            name=f"Continuing education - degree ({months} months)",
            amount=DEGREE_EDUCATION_MONTHLY * months,
        ))
    if education.certificate:
        items.append(DeductionItem(
            category="continuing_education_certificate",
            name="Continuing education - professional certificate",
            amount=CERTIFICATE_EDUCATION_YEARLY,
        ))

    # 6. Serious illness
    if inputs.serious_illness > 0:
        items.append(DeductionItem(
            category="serious_illness",
            name="Serious illness medical expenses",
            amount=min(inputs.serious_illness, SERIOUS_ILLNESS_CAP),
        ))

    return DeductionResult(total=sum(item.amount for item in items), breakdown=items)
