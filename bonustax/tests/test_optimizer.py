"""
Allocation optimizer tests.

Groups:
  1. Reference case (bonus 100000, no salary, no extra deductions)
  2. Structural invariants: split conservation, ordering, savings, salary_tax
  3. Grid behaviour: tie-breaking, step size, degenerate splits
  4. Search-step selection
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from bonustax.evaluator.optimizer import (
    LABEL_ALL_COMBINED,
    LABEL_ALL_SEPARATE,
    find_optimal_allocation,
    grid_point_count,
    select_search_step,
)
from bonustax.evaluator.schemas import DeductionParams
from bonustax.evaluator.tax_engine import calculate_salary_only_tax

NO_EXTRA = DeductionParams()


def _by_label(scenarios, label):
    return next(s for s in scenarios if s.label == label)


# ===========================================================================
# TEST GROUP 1: Reference case
# ===========================================================================

def test_reference_case_returns_both_baselines_and_split() -> None:
    """
    ALL SEPARATE: 100000/12 → 10%: 10000 − 210 = 9790
    ALL COMBINED: 100000 − 60000 = 40000 → 10%: 4000 − 2520 = 1480
    SPLIT: 4000 separate (120) + 96000 combined (taxable 36000 → 1080) = 1200
    """
    scenarios = find_optimal_allocation(100_000, 0, NO_EXTRA)
    assert len(scenarios) == 3

    all_separate = _by_label(scenarios, LABEL_ALL_SEPARATE)
    all_combined = _by_label(scenarios, LABEL_ALL_COMBINED)
    best = scenarios[0]

    assert all_separate.total_tax == pytest.approx(9_790, abs=0.01)
    assert all_combined.total_tax == pytest.approx(1_480, abs=0.01)

    assert best.separate_amount == 4_000
    assert best.combined_amount == 96_000
    assert best.separate_tax == pytest.approx(120, abs=0.01)
    assert best.combined_tax == pytest.approx(1_080, abs=0.01)
    assert best.total_tax == pytest.approx(1_200, abs=0.01)
    assert best.label == "Split: 4,000 separate + 96,000 combined"
    assert best.total_tax <= all_separate.total_tax
    assert best.total_tax <= all_combined.total_tax


def test_reference_case_savings_against_worse_baseline() -> None:
    scenarios = find_optimal_allocation(100_000, 0, NO_EXTRA)
    assert [s.savings for s in scenarios] == pytest.approx([8_590, 8_310, 0], abs=0.01)


# ===========================================================================
# TEST GROUP 2: Structural invariants
# ===========================================================================

_CASES = [
    (100_000, 0, NO_EXTRA),
    (50_000, 200_000, DeductionParams(social_insurance=24_000, special_additional=24_000)),
    (200_000, 600_000, DeductionParams(social_insurance=36_000, special_additional=72_000)),
    (36_000, 1_000_000, NO_EXTRA),
    (123_456.78, 150_000, DeductionParams(other_deductions=3_000)),
    (0, 80_000, NO_EXTRA),
]


@pytest.mark.parametrize("total_bonus, salary, deductions", _CASES)
def test_split_conservation(total_bonus: float, salary: float, deductions: DeductionParams) -> None:
    for scenario in find_optimal_allocation(total_bonus, salary, deductions):
        assert scenario.separate_amount + scenario.combined_amount == total_bonus


@pytest.mark.parametrize("total_bonus, salary, deductions", _CASES)
def test_sorted_ascending_minimum_first(total_bonus: float, salary: float, deductions: DeductionParams) -> None:
    scenarios = find_optimal_allocation(total_bonus, salary, deductions)
    totals = [s.total_tax for s in scenarios]
    assert totals == sorted(totals)
    assert all(scenarios[0].total_tax <= t for t in totals)


@pytest.mark.parametrize("total_bonus, salary, deductions", _CASES)
def test_worse_baseline_has_zero_savings(total_bonus: float, salary: float, deductions: DeductionParams) -> None:
    scenarios = find_optimal_allocation(total_bonus, salary, deductions)
    baselines = [_by_label(scenarios, LABEL_ALL_SEPARATE), _by_label(scenarios, LABEL_ALL_COMBINED)]
    worse = max(baselines, key=lambda s: s.total_tax)
    assert worse.savings == 0
    assert all(s.savings >= 0 for s in scenarios)


@pytest.mark.parametrize("total_bonus, salary, deductions", _CASES)
def test_salary_tax_is_salary_only_tax(total_bonus: float, salary: float, deductions: DeductionParams) -> None:
    expected = calculate_salary_only_tax(salary, deductions).tax
    for scenario in find_optimal_allocation(total_bonus, salary, deductions):
        assert scenario.salary_tax == expected


def test_all_separate_total_includes_salary_tax() -> None:
    """Salary 200000 (tax 6680) + separate bonus 50000 (tax 4790) = 11470."""
    deductions = DeductionParams(social_insurance=24_000, special_additional=24_000)
    scenarios = find_optimal_allocation(50_000, 200_000, deductions)
    all_separate = _by_label(scenarios, LABEL_ALL_SEPARATE)
    assert all_separate.salary_tax == pytest.approx(6_680, abs=0.01)
    assert all_separate.separate_tax == pytest.approx(4_790, abs=0.01)
    assert all_separate.combined_tax == 0
    assert all_separate.total_tax == pytest.approx(11_470, abs=0.01)


def test_scenarios_are_immutable() -> None:
    scenario = find_optimal_allocation(100_000, 0, NO_EXTRA)[0]
    with pytest.raises(ValidationError):
        scenario.total_tax = 0


def test_optimizer_is_deterministic() -> None:
    deductions = DeductionParams(social_insurance=24_000)
    assert find_optimal_allocation(88_800, 240_000, deductions) == find_optimal_allocation(
        88_800, 240_000, deductions
    )


# ===========================================================================
# TEST GROUP 3: Grid behaviour
# ===========================================================================

def test_ties_keep_smallest_separate_amount() -> None:
    """Total tax is flat at 1200 for every separate amount in [4000, 36000]: 4000 wins."""
    best = find_optimal_allocation(100_000, 0, NO_EXTRA, step=100)[0]
    assert best.separate_amount == 4_000


def test_coarser_step_finds_first_reachable_minimum() -> None:
    """With step 3000 the grid skips 4000; the first flat-region point is 6000."""
    best = find_optimal_allocation(100_000, 0, NO_EXTRA, step=3_000)[0]
    assert best.separate_amount == 6_000
    assert best.total_tax == pytest.approx(1_200, abs=0.01)


def test_step_1000_matches_step_100_on_round_optimum() -> None:
    fine = find_optimal_allocation(100_000, 0, NO_EXTRA, step=100)[0]
    coarse = find_optimal_allocation(100_000, 0, NO_EXTRA, step=1_000)[0]
    assert fine == coarse


def test_degenerate_optimum_is_not_added_as_split() -> None:
    """High salary: the best grid point puts the whole bonus in separate, so no third scenario."""
    scenarios = find_optimal_allocation(36_000, 1_000_000, NO_EXTRA)
    assert [s.label for s in scenarios] == [LABEL_ALL_SEPARATE, LABEL_ALL_COMBINED]


def test_zero_bonus_gives_two_equal_baselines() -> None:
    scenarios = find_optimal_allocation(0, 80_000, NO_EXTRA)
    assert len(scenarios) == 2
    assert scenarios[0].total_tax == scenarios[1].total_tax
    assert scenarios[0].label == LABEL_ALL_SEPARATE
    assert all(s.savings == 0 for s in scenarios)


@pytest.mark.parametrize("step", [0, -100])
def test_non_positive_step_rejected(step: float) -> None:
    with pytest.raises(ValueError, match="search step must be positive"):
        find_optimal_allocation(100_000, 0, NO_EXTRA, step=step)


# ===========================================================================
# TEST GROUP 4: Search-step selection
# ===========================================================================

@pytest.mark.parametrize(
    "total_bonus, expected",
    [
        (0, 100),
        (100_000, 100),
        (10_000_000, 100),        # threshold itself still uses the fine step
        (10_000_001, 1_000),
    ],
)
def test_select_search_step(total_bonus: float, expected: float) -> None:
    step = select_search_step(
        total_bonus, base_step=100, coarse_step=1_000, coarse_threshold=10_000_000
    )
    assert step == expected


@pytest.mark.parametrize(
    "total_bonus, step, expected",
    [(0, 100, 1), (100_000, 100, 1_001), (100_050, 100, 1_001), (100_000, 3_000, 34)],
)
def test_grid_point_count(total_bonus: float, step: float, expected: int) -> None:
    assert grid_point_count(total_bonus, step) == expected


def test_select_search_step_raised_to_grid_limit() -> None:
    """A huge bonus would need 10^9 points at the coarse step; the step grows instead."""
    step = select_search_step(
        1_000_000_000_000,
        base_step=100,
        coarse_step=1_000,
        coarse_threshold=10_000_000,
        max_grid_points=200_000,
    )
    assert step > 1_000
    assert step == int(step)
    assert grid_point_count(1_000_000_000_000, step) <= 200_000


def test_select_search_step_within_grid_limit_unchanged() -> None:
    step = select_search_step(
        100_000, base_step=100, coarse_step=1_000, coarse_threshold=10_000_000, max_grid_points=200_000
    )
    assert step == 100
