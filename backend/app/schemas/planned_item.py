from __future__ import annotations

from decimal import Decimal

from pydantic import field_serializer

from app.schemas.base import DecimalBaseModel, quantized_str


class PlannedItemCreate(DecimalBaseModel):
    designation: str | None = None
    unit_cost: Decimal = Decimal("0")
    planned_quantity: Decimal = Decimal("0")
    allocated_amount: Decimal = Decimal("0")
    item_id: int | None = None
    item_status_id: int | None = None
    financial_operation_id: int | None = None
    budget_modification_id: int | None = None


class PlannedItemUpdate(DecimalBaseModel):
    designation: str | None = None
    unit_cost: Decimal | None = None
    planned_quantity: Decimal | None = None
    allocated_amount: Decimal | None = None
    item_id: int | None = None
    item_status_id: int | None = None
    financial_operation_id: int | None = None
    budget_modification_id: int | None = None


class PlannedItemFilters(DecimalBaseModel):
    search: str | None = None
    item_id: int | None = None
    item_status_id: int | None = None
    financial_operation_id: int | None = None
    budget_modification_id: int | None = None
    rubric_id: int | None = None
    domain_id: int | None = None
    budget_type_id: int | None = None
    has_distributions: bool | None = None
    has_budget_modification: bool | None = None
    min_unit_cost: Decimal | None = None
    max_unit_cost: Decimal | None = None
    min_quantity: Decimal | None = None
    max_quantity: Decimal | None = None
    min_allocated: Decimal | None = None
    max_allocated: Decimal | None = None
    budget_category: str | None = None
    cost_category: str | None = None


class PlannedItemOut(DecimalBaseModel):
    id: int
    designation: str
    unit_cost: Decimal
    planned_quantity: Decimal
    allocated_amount: Decimal
    item_id: int
    item_status_id: int
    financial_operation_id: int
    budget_modification_id: int | None = None

    total_cost: Decimal
    variance: Decimal
    utilization: Decimal | None = None
    utilization_percentage: Decimal | None = None
    budget_category: str
    cost_category: str
    quantity_scale: str
    planning_status: str

    distribution_count: int = 0
    distributed_quantity: Decimal = Decimal("0")
    remaining_quantity: Decimal = Decimal("0")
    distribution_complexity: str

    @field_serializer(
        "unit_cost",
        "planned_quantity",
        "allocated_amount",
        "total_cost",
        "variance",
        "distributed_quantity",
        "remaining_quantity",
        mode="plain",
    )
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)

    @field_serializer("utilization", "utilization_percentage", mode="plain")
    def _serialize_ratio(self, value: Decimal | None) -> str | None:
        return quantized_str(value, 4)


class PlannedItemStatistics(DecimalBaseModel):
    count: int = 0
    total_allocated: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    total_variance: Decimal = Decimal("0")
    average_unit_cost: Decimal = Decimal("0")
    max_unit_cost: Decimal = Decimal("0")
    average_planned_quantity: Decimal = Decimal("0")
    max_planned_quantity: Decimal = Decimal("0")
    average_allocated_amount: Decimal = Decimal("0")
    max_allocated_amount: Decimal = Decimal("0")
    over_budget_count: int = 0
    under_budget_count: int = 0
    well_budgeted_count: int = 0
    with_distributions_count: int = 0
    without_distributions_count: int = 0
    average_distributions_per_item: Decimal = Decimal("0")
    max_distributions_per_item: int = 0

    @field_serializer(
        "total_allocated",
        "total_cost",
        "total_variance",
        "average_unit_cost",
        "max_unit_cost",
        "average_planned_quantity",
        "max_planned_quantity",
        "average_allocated_amount",
        "max_allocated_amount",
        "average_distributions_per_item",
        mode="plain",
    )
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)
