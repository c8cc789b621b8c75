"""
Bonus Allocation Optimizer
Finds the split of the annual bonus between separate and combined taxation that
minimises total tax. Pure functions. No I/O.

Called by evaluate_bonus() in tax_engine.py via local import to avoid circular import.
(optimizer.py imports the calculators from tax_engine, so tax_engine must NOT import this at module level.)

Scenarios produced:
  A. All separate : separate_tax(bonus) + salary_only_tax(salary)
  B. All combined : combined_tax(salary, bonus)
  C. Split        : best grid point, kept only if strictly cheaper than A and B
                     and both parts are non-zero
Grid: separate_amount = 0, step, 2·step, … ≤ bonus. The first minimum wins ties.
"""
from __future__ import annotations

import math
from typing import Optional

from bonustax.evaluator.schemas import AllocationScenario, DeductionParams
from bonustax.evaluator.tax_engine import (
    calculate_combined_tax,
    calculate_salary_only_tax,
    calculate_separate_tax,
)

DEFAULT_SEARCH_STEP = 100.0

LABEL_ALL_SEPARATE = "All separate"
LABEL_ALL_COMBINED = "All combined"


def grid_point_count(total_bonus: float, step: float) -> int:
    """Number of split candidates the grid search evaluates: floor(bonus / step) + 1."""
    return int(total_bonus // step) + 1


def select_search_step(
    total_bonus: float,
    base_step: float,
    coarse_step: float,
    coarse_threshold: float,
    max_grid_points: Optional[int] = None,
) -> float:
    """
    Coarse step for bonuses above the threshold, base step otherwise.

    With max_grid_points set, the step is raised to the smallest whole number that
    keeps the grid within that many points.
    """
    step = coarse_step if total_bonus > coarse_threshold else base_step
    if max_grid_points is not None and grid_point_count(total_bonus, step) > max_grid_points:
        step = float(math.ceil(total_bonus / max(max_grid_points - 1, 1)))
    return step


def _split_total(
    separate_amount: float,
    combined_amount: float,
    annual_salary: float,
    deductions: DeductionParams,
) -> tuple[float, float, float]:
    """(separate_tax, combined_tax, total_tax) for one candidate split."""
    separate_tax = calculate_separate_tax(separate_amount).tax
    combined_tax = calculate_combined_tax(annual_salary, combined_amount, deductions).tax
    return separate_tax, combined_tax, round(separate_tax + combined_tax, 2)


def find_optimal_allocation(
    total_bonus: float,
    annual_salary: float,
    deductions: DeductionParams,
    step: float = DEFAULT_SEARCH_STEP,
) -> list[AllocationScenario]:
    """
    Build the two baselines, grid-search the split, and return every scenario
    sorted ascending by total_tax (recommended first).

    savings is measured against the worse of the two baselines.

    Raises:
        ValueError: if step is not positive.
    """
    if step <= 0:
        raise ValueError(f"search step must be positive, got {step}")

    salary_tax = calculate_salary_only_tax(annual_salary, deductions).tax

    # --- A: all separate ---
    all_separate_tax = calculate_separate_tax(total_bonus).tax
    total_a = round(all_separate_tax + salary_tax, 2)

    # --- B: all combined ---
    all_combined_tax = calculate_combined_tax(annual_salary, total_bonus, deductions).tax
    total_b = all_combined_tax

    # --- Grid search: strict '<' keeps the smallest separate_amount on ties ---
    best: tuple[float, float, float, float, float] | None = None
    for i in range(grid_point_count(total_bonus, step)):
        separate_amount = min(i * step, total_bonus)
        combined_amount = total_bonus - separate_amount
        separate_tax, combined_tax, total_tax = _split_total(
            separate_amount, combined_amount, annual_salary, deductions
        )
        if best is None or total_tax < best[4]:
            best = (separate_amount, combined_amount, separate_tax, combined_tax, total_tax)

    worst = max(total_a, total_b)

    scenarios = [
        AllocationScenario(
            separate_amount=total_bonus,
            combined_amount=0,
            separate_tax=all_separate_tax,
            combined_tax=0,
            total_tax=total_a,
            salary_tax=salary_tax,
            savings=round(worst - total_a, 2),
            label=LABEL_ALL_SEPARATE,
        ),
        AllocationScenario(
            separate_amount=0,
            combined_amount=total_bonus,
            separate_tax=0,
            combined_tax=all_combined_tax,
            total_tax=total_b,
            salary_tax=salary_tax,
            savings=round(worst - total_b, 2),
            label=LABEL_ALL_COMBINED,
        ),
    ]

    if best is not None:
        separate_amount, combined_amount, separate_tax, combined_tax, total_tax = best
        genuine_split = separate_amount > 0 and combined_amount > 0
        if genuine_split and total_tax < total_a and total_tax < total_b:
            scenarios.append(AllocationScenario(
                separate_amount=separate_amount,
                combined_amount=combined_amount,
                separate_tax=separate_tax,
                combined_tax=combined_tax,
                total_tax=total_tax,
                salary_tax=salary_tax,
                savings=round(worst - total_tax, 2),
                label=f"Split: {separate_amount:,.0f} separate + {combined_amount:,.0f} combined",
            ))

    # Stable sort: on equal totals all-separate stays ahead of all-combined
    return sorted(scenarios, key=lambda s: s.total_tax)
