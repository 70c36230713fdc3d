"""Derived financial state of planned items and distributions.

Pure functions over the stored numeric fields. Nothing here is persisted: every
read recomputes from ``unit_cost``, ``planned_quantity``, ``allocated_amount`` and
the distribution quantities, with Decimal arithmetic so repeated reads agree.

Ratios that would divide by zero return ``None`` ("not applicable").
"""

from __future__ import annotations

import enum
from decimal import Decimal
from typing import Iterable

ZERO = Decimal("0")
HUNDRED = Decimal("100")
WELL_BUDGETED_TOLERANCE = Decimal("0.10")
VARIANCE_WARNING_RATIO = Decimal("0.50")


class BudgetCategory(enum.Enum):
    OVER_BUDGET = "OVER_BUDGET"
    UNDER_BUDGET = "UNDER_BUDGET"
    WELL_BUDGETED = "WELL_BUDGETED"


class CostCategory(enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


class QuantityScale(enum.Enum):
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    VERY_LARGE = "VERY_LARGE"


class PlanningStatus(enum.Enum):
    NOT_PLANNED = "NOT_PLANNED"
    UNDER_PLANNED = "UNDER_PLANNED"
    WELL_PLANNED = "WELL_PLANNED"
    OVER_PLANNED = "OVER_PLANNED"
    SIGNIFICANTLY_OVER_PLANNED = "SIGNIFICANTLY_OVER_PLANNED"


class DistributionComplexity(enum.Enum):
    NO_DISTRIBUTION = "NO_DISTRIBUTION"
    SIMPLE = "SIMPLE"
    MODERATE = "MODERATE"
    COMPLEX = "COMPLEX"
    VERY_COMPLEX = "VERY_COMPLEX"


class AllocationStatus(enum.Enum):
    """Position of one distribution against the planned quantity of its item."""

    COMPLETE = "COMPLETE"
    PARTIAL = "PARTIAL"
    OVER_ALLOCATED = "OVER_ALLOCATED"


class DistributionProgress(enum.Enum):
    """Position of all distributions of a planned item against its planned quantity."""

    UNDISTRIBUTED = "UNDISTRIBUTED"
    PARTIAL = "PARTIAL"
    COMPLETE = "COMPLETE"
    OVER_DISTRIBUTED = "OVER_DISTRIBUTED"


class DistributionSize(enum.Enum):
    UNIT = "UNIT"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    BULK = "BULK"


def as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # float -> str pour eviter 0.1 == 0.1000000000000000055...
    return Decimal(str(value))


# --- planned item ---------------------------------------------------------


def total_cost(unit_cost, planned_quantity) -> Decimal:
    return as_decimal(unit_cost) * as_decimal(planned_quantity)


def variance(unit_cost, planned_quantity, allocated_amount) -> Decimal:
    """Positive when the planned cost exceeds the allocation."""
    return total_cost(unit_cost, planned_quantity) - as_decimal(allocated_amount)


def utilization(unit_cost, planned_quantity, allocated_amount) -> Decimal | None:
    allocated = as_decimal(allocated_amount)
    if allocated == ZERO:
        return None
    return total_cost(unit_cost, planned_quantity) / allocated


def utilization_percentage(unit_cost, planned_quantity, allocated_amount) -> Decimal | None:
    ratio = utilization(unit_cost, planned_quantity, allocated_amount)
    if ratio is None:
        return None
    return ratio * HUNDRED


def budget_category(unit_cost, planned_quantity, allocated_amount) -> BudgetCategory:
    allocated = as_decimal(allocated_amount)
    diff = variance(unit_cost, planned_quantity, allocated)
    if abs(diff) <= WELL_BUDGETED_TOLERANCE * allocated:
        return BudgetCategory.WELL_BUDGETED
    if diff > ZERO:
        return BudgetCategory.OVER_BUDGET
    return BudgetCategory.UNDER_BUDGET


def cost_category(unit_cost) -> CostCategory:
    value = as_decimal(unit_cost)
    if value <= 100:
        return CostCategory.LOW
    if value <= 1000:
        return CostCategory.MEDIUM
    if value <= 10000:
        return CostCategory.HIGH
    return CostCategory.VERY_HIGH


def quantity_scale(planned_quantity) -> QuantityScale:
    value = as_decimal(planned_quantity)
    if value <= 10:
        return QuantityScale.SMALL
    if value <= 100:
        return QuantityScale.MEDIUM
    if value <= 1000:
        return QuantityScale.LARGE
    return QuantityScale.VERY_LARGE


def planning_status(unit_cost, planned_quantity, allocated_amount) -> PlanningStatus:
    pct = utilization_percentage(unit_cost, planned_quantity, allocated_amount)
    if pct is None or pct == ZERO:
        return PlanningStatus.NOT_PLANNED
    if pct <= 50:
        return PlanningStatus.UNDER_PLANNED
    if pct <= 100:
        return PlanningStatus.WELL_PLANNED
    if pct <= 120:
        return PlanningStatus.OVER_PLANNED
    return PlanningStatus.SIGNIFICANTLY_OVER_PLANNED


def variance_exceeds_warning(unit_cost, planned_quantity, allocated_amount) -> bool:
    allocated = as_decimal(allocated_amount)
    if allocated == ZERO:
        return False
    return abs(variance(unit_cost, planned_quantity, allocated)) > VARIANCE_WARNING_RATIO * allocated


def distribution_complexity(distribution_count: int) -> DistributionComplexity:
    if distribution_count <= 0:
        return DistributionComplexity.NO_DISTRIBUTION
    if distribution_count == 1:
        return DistributionComplexity.SIMPLE
    if distribution_count <= 5:
        return DistributionComplexity.MODERATE
    if distribution_count <= 10:
        return DistributionComplexity.COMPLEX
    return DistributionComplexity.VERY_COMPLEX


# --- distribution ---------------------------------------------------------


def distribution_cost(quantity, unit_cost) -> Decimal:
    """Cost follows the unit cost of the planned item, never its allocated amount."""
    return as_decimal(quantity) * as_decimal(unit_cost)


def percentage_of_plan(quantity, planned_quantity) -> Decimal | None:
    planned = as_decimal(planned_quantity)
    if planned == ZERO:
        return None
    return as_decimal(quantity) / planned * HUNDRED


def allocation_status(quantity, planned_quantity) -> AllocationStatus:
    qty = as_decimal(quantity)
    planned = as_decimal(planned_quantity)
    if qty == planned:
        return AllocationStatus.COMPLETE
    if qty < planned:
        return AllocationStatus.PARTIAL
    return AllocationStatus.OVER_ALLOCATED


def distribution_progress(distributed, planned_quantity) -> DistributionProgress:
    done = as_decimal(distributed)
    planned = as_decimal(planned_quantity)
    if done > planned:
        return DistributionProgress.OVER_DISTRIBUTED
    if done == ZERO and planned > ZERO:
        return DistributionProgress.UNDISTRIBUTED
    if done == planned:
        return DistributionProgress.COMPLETE
    return DistributionProgress.PARTIAL


def distribution_size(quantity) -> DistributionSize:
    value = as_decimal(quantity)
    if value <= 1:
        return DistributionSize.UNIT
    if value <= 10:
        return DistributionSize.SMALL
    if value <= 50:
        return DistributionSize.MEDIUM
    if value <= 100:
        return DistributionSize.LARGE
    return DistributionSize.BULK


# --- reductions -----------------------------------------------------------


def dsum(values: Iterable) -> Decimal:
    total = ZERO
    for value in values:
        total += as_decimal(value)
    return total


def daverage(values: Iterable) -> Decimal:
    items = [as_decimal(v) for v in values]
    if not items:
        return ZERO
    return dsum(items) / len(items)


def dmax(values: Iterable) -> Decimal:
    items = [as_decimal(v) for v in values]
    return max(items) if items else ZERO


def dmin(values: Iterable) -> Decimal:
    items = [as_decimal(v) for v in values]
    return min(items) if items else ZERO
