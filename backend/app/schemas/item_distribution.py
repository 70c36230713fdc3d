from __future__ import annotations

from decimal import Decimal

from pydantic import field_serializer

from app.schemas.base import DecimalBaseModel, quantized_str


class ItemDistributionCreate(DecimalBaseModel):
    planned_item_id: int | None = None
    structure_id: int | None = None
    quantity: Decimal = Decimal("0")


class ItemDistributionUpdate(DecimalBaseModel):
    structure_id: int | None = None
    quantity: Decimal | None = None


class ItemDistributionFilters(DecimalBaseModel):
    planned_item_id: int | None = None
    structure_id: int | None = None
    ancestor_structure_id: int | None = None
    item_id: int | None = None
    rubric_id: int | None = None
    domain_id: int | None = None
    financial_operation_id: int | None = None
    budget_type_id: int | None = None
    item_status_id: int | None = None
    min_quantity: Decimal | None = None
    max_quantity: Decimal | None = None
    min_total_cost: Decimal | None = None
    max_total_cost: Decimal | None = None
    allocation_status: str | None = None
    has_budget_modification: bool | None = None
    requires_coordination: bool | None = None


class ItemDistributionOut(DecimalBaseModel):
    id: int
    planned_item_id: int
    structure_id: int
    quantity: Decimal
    planned_quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    percentage_of_plan: Decimal | None = None
    allocation_status: str
    size_category: str
    requires_coordination: bool = False

    @field_serializer("quantity", "planned_quantity", "unit_cost", "total_cost", mode="plain")
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)

    @field_serializer("percentage_of_plan", mode="plain")
    def _serialize_pct(self, value: Decimal | None) -> str | None:
        return quantized_str(value, 2)


class CoordinationEntry(DecimalBaseModel):
    planned_item_id: int
    designation: str
    distribution_count: int
    structure_ids: list[int]
    requires_coordination: bool


class OverDistributionEntry(DecimalBaseModel):
    planned_item_id: int
    designation: str
    planned_quantity: Decimal
    distributed_quantity: Decimal
    excess_quantity: Decimal
    distribution_count: int

    @field_serializer("planned_quantity", "distributed_quantity", "excess_quantity", mode="plain")
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)


class StructureDistributionSummary(DecimalBaseModel):
    structure_id: int
    distribution_count: int
    total_quantity: Decimal
    total_cost: Decimal

    @field_serializer("total_quantity", "total_cost", mode="plain")
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)


class PlannedItemDistributionSummary(DecimalBaseModel):
    planned_item_id: int
    planned_quantity: Decimal
    distributed_quantity: Decimal
    remaining_quantity: Decimal
    distribution_count: int
    percentage_distributed: Decimal | None = None
    status: str

    @field_serializer("planned_quantity", "distributed_quantity", "remaining_quantity", mode="plain")
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)

    @field_serializer("percentage_distributed", mode="plain")
    def _serialize_pct(self, value: Decimal | None) -> str | None:
        return quantized_str(value, 2)


class DistributionStatistics(DecimalBaseModel):
    count: int = 0
    total_quantity: Decimal = Decimal("0")
    average_quantity: Decimal = Decimal("0")
    max_quantity: Decimal = Decimal("0")
    min_quantity: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    requiring_coordination_count: int = 0
    over_distributed_items_count: int = 0

    @field_serializer(
        "total_quantity", "average_quantity", "max_quantity", "min_quantity", "total_cost", mode="plain"
    )
    def _serialize_decimal(self, value: Decimal) -> str:
        return str(value)
