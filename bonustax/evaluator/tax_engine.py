"""
Tax Engine: China individual income tax on salary + one-off annual bonus.
Pure Python, deterministic. Same input → same output.

Policy basis: MOF/STA Announcement 2023 No. 30 (bonus may be taxed separately
until 31 Dec 2027). Two ways to tax the annual bonus:
  Separate: bonus / 12 picks a row of the MONTHLY table, that row's rate and quick
            deduction then apply to the FULL bonus. This creates "cliffs", e.g. a
            36,001 bonus pays 2,310.10 more tax than a 36,000 bonus. Intentional.
  Combined: bonus is added to salary and taxed with the ANNUAL table after deductions.

Advisory only. Not a substitute for the tax authority's own computation.
"""
from __future__ import annotations

from typing import Optional, Sequence

from bonustax.evaluator.deductions import aggregate_special_deductions
from bonustax.evaluator.schemas import (
    BracketTables,
    DeductionParams,
    DeductionResult,
    TaxBracket,
    TaxComputation,
    TaxResult,
)
from bonustax.intake.schemas import BonusTaxRequest

# ===========================================================================
# DEDUCTION CONSTANTS
# ===========================================================================

BASIC_DEDUCTION = 60_000          # 5,000/month × 12
MONTHS_PER_YEAR = 12

# ===========================================================================
# RATE TABLES: ascending, final row open-ended
# ===========================================================================

# Monthly-equivalent schedule: used for separate bonus taxation
MONTHLY_TAX_TABLE: list[TaxBracket] = [
    TaxBracket(upper_bound=3_000,        rate=0.03, quick_deduction=0),
    TaxBracket(upper_bound=12_000,       rate=0.10, quick_deduction=210),
    TaxBracket(upper_bound=25_000,       rate=0.20, quick_deduction=1_410),
    TaxBracket(upper_bound=35_000,       rate=0.25, quick_deduction=2_660),
    TaxBracket(upper_bound=55_000,       rate=0.30, quick_deduction=4_410),
    TaxBracket(upper_bound=80_000,       rate=0.35, quick_deduction=7_160),
    TaxBracket(upper_bound=float("inf"), rate=0.45, quick_deduction=15_160),
]

# Annual comprehensive-income schedule: used for salary and merged bonus
ANNUAL_TAX_TABLE: list[TaxBracket] = [
    TaxBracket(upper_bound=36_000,       rate=0.03, quick_deduction=0),
    TaxBracket(upper_bound=144_000,      rate=0.10, quick_deduction=2_520),
    TaxBracket(upper_bound=300_000,      rate=0.20, quick_deduction=16_920),
    TaxBracket(upper_bound=420_000,      rate=0.25, quick_deduction=31_920),
    TaxBracket(upper_bound=660_000,      rate=0.30, quick_deduction=52_920),
    TaxBracket(upper_bound=960_000,      rate=0.35, quick_deduction=85_920),
    TaxBracket(upper_bound=float("inf"), rate=0.45, quick_deduction=181_920),
]


# ===========================================================================
# BRACKET RESOLVER
# ===========================================================================

def resolve_bracket(amount: float, table: Sequence[TaxBracket]) -> TaxBracket:
    """
    Return the first bracket whose upper_bound >= amount.
    Falls back to the last bracket if nothing matches (cannot happen with an
    open-ended final row, kept so the function is total).
    """
    for bracket in table:
        if amount <= bracket.upper_bound:
            return bracket
    return table[-1]


def monthly_bracket_info(monthly_amount: float) -> TaxBracket:
    """Bracket of the monthly-equivalent table for a monthly amount."""
    return resolve_bracket(monthly_amount, MONTHLY_TAX_TABLE)


def annual_bracket_info(annual_amount: float) -> TaxBracket:
    """Bracket of the annual table for an annual taxable amount."""
    return resolve_bracket(annual_amount, ANNUAL_TAX_TABLE)


def bracket_tables() -> BracketTables:
    return BracketTables(
        monthly=MONTHLY_TAX_TABLE,
        annual=ANNUAL_TAX_TABLE,
        basic_deduction=BASIC_DEDUCTION,
    )


# ===========================================================================
# INTERNAL HELPERS (pure functions: no side effects, no I/O)
# ===========================================================================

def _apply_bracket(taxable_base: float, bracket: TaxBracket) -> float:
    """base × rate − quick deduction, floored at 0 and rounded to cents."""
    return round(max(0.0, taxable_base * bracket.rate - bracket.quick_deduction), 2)


def _annual_computation(income: float, deductions: DeductionParams) -> TaxComputation:
    taxable_base = max(0.0, income - deductions.total)
    bracket = annual_bracket_info(taxable_base)
    return TaxComputation(
        tax=_apply_bracket(taxable_base, bracket),
        rate=bracket.rate,
        quick_deduction=bracket.quick_deduction,
        taxable_base=taxable_base,
    )


# ===========================================================================
# TAX MODE CALCULATORS
# ===========================================================================

def calculate_separate_tax(bonus: float) -> TaxComputation:
    """
    Bonus taxed on its own.

    Rate row is chosen by bonus / 12 on the monthly table; rate and quick deduction
    are applied to the whole bonus. A non-positive bonus yields a zero computation.
    """
    if bonus <= 0:
        return TaxComputation(tax=0, rate=0, quick_deduction=0, taxable_base=0, monthly_equivalent=0)

    monthly_equivalent = bonus / MONTHS_PER_YEAR
    bracket = monthly_bracket_info(monthly_equivalent)
    return TaxComputation(
        tax=_apply_bracket(bonus, bracket),
        rate=bracket.rate,
        quick_deduction=bracket.quick_deduction,
        taxable_base=bonus,
        monthly_equivalent=monthly_equivalent,
    )


def calculate_combined_tax(
    annual_salary: float,
    bonus: float,
    deductions: DeductionParams,
) -> TaxComputation:
    """
    Bonus merged into annual comprehensive income.

    taxable = max(0, salary + bonus − (basic + social insurance + special additional + other))
    """
    return _annual_computation(annual_salary + bonus, deductions)


def calculate_salary_only_tax(annual_salary: float, deductions: DeductionParams) -> TaxComputation:
    """Annual-schedule tax on salary alone: the salary leg of separate taxation."""
    return _annual_computation(annual_salary, deductions)


# ===========================================================================
# NET INCOME
# ===========================================================================

def calculate_net_income(
    annual_salary: float,
    bonus: float,
    total_tax: float,
    social_insurance: float,
) -> float:
    """
    Post-tax cash income.
    Special additional deductions are NOT subtracted: they only reduce taxable income.
    """
    return annual_salary + bonus - total_tax - social_insurance


# ===========================================================================
# EVALUATE: public API
# ===========================================================================

def resolve_deduction_params(
    request: BonusTaxRequest,
) -> tuple[DeductionParams, Optional[DeductionResult]]:
    """
    Build the annual deduction set for a request.
    Structured special_deductions (when supplied) replace the flat special_additional amount.
    """
    detail: Optional[DeductionResult] = None
    special_additional = request.special_additional
    if request.special_deductions is not None:
        detail = aggregate_special_deductions(request.special_deductions)
        special_additional = detail.total

    params = DeductionParams(
        basic_deduction=BASIC_DEDUCTION,
        social_insurance=request.social_insurance,
        special_additional=special_additional,
        other_deductions=request.other_deductions,
    )
    return params, detail


def evaluate_bonus(request: BonusTaxRequest, search_step: Optional[float] = None) -> TaxResult:
    """
    Full evaluation of one salary + bonus request.

    Computes both pure treatments, searches the split between them, recommends the
    lowest-tax scenario (a tie between the two pure treatments goes to all-separate)
    and explains the choice in 2-3 sentences.

    search_step defaults to the request's own search_step, then DEFAULT_SEARCH_STEP.

    Uses a local import of optimizer to avoid circular import at module level
    (optimizer.py imports the calculators from this module).
    """
    from bonustax.evaluator.optimizer import DEFAULT_SEARCH_STEP, find_optimal_allocation

    step = search_step or request.search_step or DEFAULT_SEARCH_STEP
    deductions, detail = resolve_deduction_params(request)

    # Step 1: Bonus taxed alone, salary taxed on the annual table
    separate = calculate_separate_tax(request.bonus)
    salary_only = calculate_salary_only_tax(request.annual_salary, deductions)
    separate_total_tax = round(separate.tax + salary_only.tax, 2)

    # Step 2: Bonus merged into annual income
    combined = calculate_combined_tax(request.annual_salary, request.bonus, deductions)

    # Step 3: Split search
    scenarios = find_optimal_allocation(request.bonus, request.annual_salary, deductions, step=step)
    recommended = scenarios[0]

    net_income = round(
        calculate_net_income(
            request.annual_salary, request.bonus, recommended.total_tax, request.social_insurance
        ),
        2,
    )

    # Step 4: Rationale
    if recommended.separate_amount > 0 and recommended.combined_amount > 0:
        rationale = (
            f"Splitting the bonus saves ¥{recommended.savings:,.2f} over the worse single treatment. "
            f"Tax {recommended.separate_amount:,.0f} separately and merge {recommended.combined_amount:,.0f} "
            f"into annual income for a total tax of ¥{recommended.total_tax:,.2f}. "
            f"All separate: ¥{separate_total_tax:,.2f}; all combined: ¥{combined.tax:,.2f}."
        )
    elif separate_total_tax == combined.tax:
        rationale = (
            f"Both treatments result in the same tax (¥{combined.tax:,.2f}) "
            "and no split of the bonus does better."
        )
    elif recommended.combined_amount == 0:
        rationale = (
            f"Taxing the whole bonus separately saves ¥{recommended.savings:,.2f}. "
            f"All separate: ¥{separate_total_tax:,.2f} vs all combined: ¥{combined.tax:,.2f}."
        )
    else:
        rationale = (
            f"Merging the whole bonus into annual income saves ¥{recommended.savings:,.2f}. "
            f"All combined: ¥{combined.tax:,.2f} vs all separate: ¥{separate_total_tax:,.2f}. "
            f"Merged, the bonus is taxed at a {combined.rate:.0%} marginal annual rate; on its own "
            f"it would be taxed at {separate.rate:.0%} of the full amount."
        )

    return TaxResult(
        deductions=deductions,
        special_deduction_detail=detail,
        separate=separate,
        salary_only=salary_only,
        separate_total_tax=separate_total_tax,
        combined=combined,
        scenarios=scenarios,
        recommended=recommended,
        net_income=net_income,
        search_step=step,
        rationale=rationale,
    )
