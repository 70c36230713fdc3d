from decimal import Decimal

import pytest

from app.services import budget_metrics as metrics
from app.services.budget_metrics import (
    AllocationStatus,
    BudgetCategory,
    CostCategory,
    DistributionComplexity,
    DistributionProgress,
    DistributionSize,
    PlanningStatus,
    QuantityScale,
)


def test_laptops_twelve_at_thousand_against_eleven_thousand():
    assert metrics.total_cost(Decimal("1000"), Decimal("12")) == Decimal("12000")
    assert metrics.variance(Decimal("1000"), Decimal("12"), Decimal("11000")) == Decimal("1000")
    assert metrics.budget_category(Decimal("1000"), Decimal("12"), Decimal("11000")) is BudgetCategory.WELL_BUDGETED
    utilization = metrics.utilization(Decimal("1000"), Decimal("12"), Decimal("11000"))
    assert utilization.quantize(Decimal("0.01")) == Decimal("1.09")


def test_ratios_are_not_applicable_without_allocation():
    assert metrics.utilization(Decimal("10"), Decimal("3"), Decimal("0")) is None
    assert metrics.utilization_percentage(Decimal("10"), Decimal("3"), Decimal("0")) is None
    assert metrics.planning_status(Decimal("10"), Decimal("3"), Decimal("0")) is PlanningStatus.NOT_PLANNED
    assert metrics.variance_exceeds_warning(Decimal("10"), Decimal("3"), Decimal("0")) is False


def test_total_cost_is_exact_for_decimal_inputs():
    # 0.1 * 3 en float donnerait 0.30000000000000004
    assert metrics.total_cost(Decimal("0.10"), Decimal("3")) == Decimal("0.30")
    assert metrics.total_cost(0.1, 3) == Decimal("0.3")


@pytest.mark.parametrize(
    ("allocated", "expected"),
    [
        ("1000", BudgetCategory.WELL_BUDGETED),
        ("1100", BudgetCategory.WELL_BUDGETED),  # ecart 100 pour une tolerance de 110
        ("909", BudgetCategory.OVER_BUDGET),
        ("1200", BudgetCategory.UNDER_BUDGET),
    ],
)
def test_budget_category_tolerance(allocated, expected):
    assert metrics.budget_category(Decimal("100"), Decimal("10"), Decimal(allocated)) is expected


def test_budget_category_boundary_is_inclusive():
    # cout 1100, alloue 1000 : |ecart| = 100 = 10 % de l'alloue
    assert metrics.budget_category(Decimal("110"), Decimal("10"), Decimal("1000")) is BudgetCategory.WELL_BUDGETED
    assert metrics.budget_category(Decimal("110.01"), Decimal("10"), Decimal("1000")) is BudgetCategory.OVER_BUDGET


def test_budget_category_with_nothing_allocated():
    assert metrics.budget_category(Decimal("0"), Decimal("5"), Decimal("0")) is BudgetCategory.WELL_BUDGETED
    assert metrics.budget_category(Decimal("1"), Decimal("5"), Decimal("0")) is BudgetCategory.OVER_BUDGET


@pytest.mark.parametrize(
    ("unit_cost", "expected"),
    [
        ("100", CostCategory.LOW),
        ("100.01", CostCategory.MEDIUM),
        ("1000", CostCategory.MEDIUM),
        ("10000", CostCategory.HIGH),
        ("10000.01", CostCategory.VERY_HIGH),
    ],
)
def test_cost_category_breakpoints(unit_cost, expected):
    assert metrics.cost_category(Decimal(unit_cost)) is expected


@pytest.mark.parametrize(
    ("quantity", "expected"),
    [("10", QuantityScale.SMALL), ("11", QuantityScale.MEDIUM), ("1000", QuantityScale.LARGE), ("1001", QuantityScale.VERY_LARGE)],
)
def test_quantity_scale_breakpoints(quantity, expected):
    assert metrics.quantity_scale(Decimal(quantity)) is expected


def test_planning_status_bands():
    assert metrics.planning_status(Decimal("50"), Decimal("1"), Decimal("100")) is PlanningStatus.UNDER_PLANNED
    assert metrics.planning_status(Decimal("100"), Decimal("1"), Decimal("100")) is PlanningStatus.WELL_PLANNED
    assert metrics.planning_status(Decimal("120"), Decimal("1"), Decimal("100")) is PlanningStatus.OVER_PLANNED
    assert (
        metrics.planning_status(Decimal("121"), Decimal("1"), Decimal("100"))
        is PlanningStatus.SIGNIFICANTLY_OVER_PLANNED
    )


def test_variance_warning_above_half_of_allocation():
    assert metrics.variance_exceeds_warning(Decimal("150"), Decimal("1"), Decimal("100")) is False
    assert metrics.variance_exceeds_warning(Decimal("151"), Decimal("1"), Decimal("100")) is True


def test_distribution_complexity():
    assert metrics.distribution_complexity(0) is DistributionComplexity.NO_DISTRIBUTION
    assert metrics.distribution_complexity(1) is DistributionComplexity.SIMPLE
    assert metrics.distribution_complexity(5) is DistributionComplexity.MODERATE
    assert metrics.distribution_complexity(10) is DistributionComplexity.COMPLEX
    assert metrics.distribution_complexity(11) is DistributionComplexity.VERY_COMPLEX


def test_distribution_cost_uses_unit_cost():
    assert metrics.distribution_cost(Decimal("4"), Decimal("1000")) == Decimal("4000")


def test_percentage_of_plan_without_planned_quantity():
    assert metrics.percentage_of_plan(Decimal("5"), Decimal("0")) is None
    assert metrics.percentage_of_plan(Decimal("5"), Decimal("10")) == Decimal("50")


def test_allocation_status_and_progress():
    assert metrics.allocation_status(Decimal("10"), Decimal("10")) is AllocationStatus.COMPLETE
    assert metrics.allocation_status(Decimal("4"), Decimal("10")) is AllocationStatus.PARTIAL
    assert metrics.allocation_status(Decimal("12"), Decimal("10")) is AllocationStatus.OVER_ALLOCATED

    assert metrics.distribution_progress(Decimal("0"), Decimal("10")) is DistributionProgress.UNDISTRIBUTED
    assert metrics.distribution_progress(Decimal("3"), Decimal("10")) is DistributionProgress.PARTIAL
    assert metrics.distribution_progress(Decimal("10"), Decimal("10")) is DistributionProgress.COMPLETE
    assert metrics.distribution_progress(Decimal("12"), Decimal("10")) is DistributionProgress.OVER_DISTRIBUTED
    assert metrics.distribution_progress(Decimal("0"), Decimal("0")) is DistributionProgress.COMPLETE


def test_distribution_size():
    assert metrics.distribution_size(Decimal("1")) is DistributionSize.UNIT
    assert metrics.distribution_size(Decimal("10")) is DistributionSize.SMALL
    assert metrics.distribution_size(Decimal("50")) is DistributionSize.MEDIUM
    assert metrics.distribution_size(Decimal("100")) is DistributionSize.LARGE
    assert metrics.distribution_size(Decimal("101")) is DistributionSize.BULK


def test_reductions_on_empty_input():
    assert metrics.dsum([]) == Decimal("0")
    assert metrics.daverage([]) == Decimal("0")
    assert metrics.dmax([]) == Decimal("0")
    assert metrics.dmin([]) == Decimal("0")
    assert metrics.daverage([Decimal("1"), Decimal("2")]) == Decimal("1.5")
