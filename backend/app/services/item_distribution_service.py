"""Distribution allocator.

An ItemDistribution assigns part of a planned item's quantity to one structure.
Several rows for the same (planned item, structure) pair are allowed, and by
default a write is never rejected because the distributed total exceeds the planned
quantity: over-distribution is reported on read (``over_distribution_report``).
Setting ``ENFORCE_DISTRIBUTION_CEILING`` turns the ceiling into a write-time check.

Each allocation is its own transaction. Rebalancing several structures is a
sequence of independent writes, so readers can observe it half applied.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ValidationError
from app.models.catalog import Item, Rubric
from app.models.financial_operation import FinancialOperation
from app.models.item_distribution import ItemDistribution
from app.models.planned_item import PlannedItem
from app.models.structure import Structure
from app.schemas.item_distribution import (
    CoordinationEntry,
    DistributionStatistics,
    ItemDistributionCreate,
    ItemDistributionFilters,
    ItemDistributionOut,
    ItemDistributionUpdate,
    OverDistributionEntry,
    PlannedItemDistributionSummary,
    StructureDistributionSummary,
)
from app.services import budget_metrics as metrics
from app.services.persistence import (
    QUANTITY_PRECISION,
    check_fits_column,
    clamp_limit,
    commit_or_translate,
    count_of,
    get_or_not_found,
    parse_order,
    resolve_reference,
    row_exists,
)
from app.services.reference_service import subtree_ids_query

logger = logging.getLogger("budget_plan_api.distributions")

LARGE_QUANTITY_WARNING = Decimal("1000000")


def _checked_quantity(value) -> Decimal:
    if value is None:
        raise ValidationError("La quantite est obligatoire")
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError("Quantite invalide") from exc
    if not quantity.is_finite():
        raise ValidationError("Quantite invalide")
    if quantity < 0:
        raise ValidationError("La quantite ne peut pas etre negative")
    check_fits_column("quantite", quantity, QUANTITY_PRECISION)
    if quantity > LARGE_QUANTITY_WARNING:
        logger.warning("unusually large distribution quantity=%s", quantity)
    return quantity


async def distributed_quantity(db: AsyncSession, planned_item_id: int, exclude_id: int | None = None) -> Decimal:
    query = select(ItemDistribution.quantity).where(ItemDistribution.planned_item_id == planned_item_id)
    if exclude_id is not None:
        query = query.where(ItemDistribution.id != exclude_id)
    result = await db.execute(query)
    return metrics.dsum(result.scalars().all())


async def _check_ceiling(
    db: AsyncSession, planned_item: PlannedItem, quantity: Decimal, exclude_id: int | None, enforce: bool | None
) -> None:
    if enforce is None:
        enforce = settings.enforce_distribution_ceiling
    already = await distributed_quantity(db, planned_item.id, exclude_id=exclude_id)
    new_total = already + quantity
    planned = metrics.as_decimal(planned_item.planned_quantity)
    if new_total <= planned:
        return
    if enforce:
        raise ValidationError(
            f"La quantite repartie ({new_total}) depasserait la quantite planifiee ({planned})"
        )
    logger.info(
        "planned item id=%s over-distributed: %s > %s (ceiling not enforced)", planned_item.id, new_total, planned
    )


# --- writes ---------------------------------------------------------------


async def allocate(
    db: AsyncSession, payload: ItemDistributionCreate, *, enforce_ceiling: bool | None = None
) -> ItemDistribution:
    quantity = _checked_quantity(payload.quantity)
    planned_item = await resolve_reference(db, PlannedItem, payload.planned_item_id, "Ligne de planification")
    await resolve_reference(db, Structure, payload.structure_id, "Structure")
    await _check_ceiling(db, planned_item, quantity, None, enforce_ceiling)

    distribution = ItemDistribution(
        planned_item_id=payload.planned_item_id,
        structure_id=payload.structure_id,
        quantity=quantity,
    )
    db.add(distribution)
    await commit_or_translate(db)
    await db.refresh(distribution)
    logger.info(
        "distribution created id=%s planned_item_id=%s structure_id=%s quantity=%s",
        distribution.id,
        distribution.planned_item_id,
        distribution.structure_id,
        quantity,
    )
    return distribution


async def update_distribution(
    db: AsyncSession,
    distribution_id: int,
    payload: ItemDistributionUpdate,
    *,
    enforce_ceiling: bool | None = None,
) -> ItemDistribution:
    distribution = await get_or_not_found(db, ItemDistribution, distribution_id, "Repartition")
    fields = payload.model_dump(exclude_unset=True)
    changes: dict = {}
    if "structure_id" in fields:
        await resolve_reference(db, Structure, fields["structure_id"], "Structure")
        changes["structure_id"] = fields["structure_id"]
    if "quantity" in fields:
        quantity = _checked_quantity(fields["quantity"])
        planned_item = await get_or_not_found(db, PlannedItem, distribution.planned_item_id, "Ligne de planification")
        await _check_ceiling(db, planned_item, quantity, distribution.id, enforce_ceiling)
        changes["quantity"] = quantity
    for name, value in changes.items():
        setattr(distribution, name, value)
    await commit_or_translate(db)
    await db.refresh(distribution)
    return distribution


async def delete_distribution(db: AsyncSession, distribution_id: int) -> None:
    distribution = await get_or_not_found(db, ItemDistribution, distribution_id, "Repartition")
    await db.delete(distribution)
    await db.commit()
    logger.info("distribution deleted id=%s", distribution_id)


# --- reads ----------------------------------------------------------------


async def get_distribution(db: AsyncSession, distribution_id: int) -> ItemDistribution:
    return await get_or_not_found(db, ItemDistribution, distribution_id, "Repartition")


async def distribution_exists(db: AsyncSession, distribution_id: int) -> bool:
    return await row_exists(db, ItemDistribution, distribution_id)


def _coordinated_planned_items():
    return (
        select(ItemDistribution.planned_item_id)
        .group_by(ItemDistribution.planned_item_id)
        .having(func.count(ItemDistribution.id) > 1)
    )


def _filtered_query(filters: ItemDistributionFilters | None):
    query = select(ItemDistribution).join(PlannedItem, PlannedItem.id == ItemDistribution.planned_item_id)
    if filters is None:
        return query
    f = filters

    if f.planned_item_id is not None:
        query = query.where(ItemDistribution.planned_item_id == f.planned_item_id)
    if f.structure_id is not None:
        query = query.where(ItemDistribution.structure_id == f.structure_id)
    if f.ancestor_structure_id is not None:
        query = query.where(ItemDistribution.structure_id.in_(subtree_ids_query(f.ancestor_structure_id)))
    if f.item_id is not None:
        query = query.where(PlannedItem.item_id == f.item_id)
    if f.item_status_id is not None:
        query = query.where(PlannedItem.item_status_id == f.item_status_id)
    if f.financial_operation_id is not None:
        query = query.where(PlannedItem.financial_operation_id == f.financial_operation_id)
    if f.rubric_id is not None or f.domain_id is not None:
        query = query.join(Item, Item.id == PlannedItem.item_id)
        if f.rubric_id is not None:
            query = query.where(Item.rubric_id == f.rubric_id)
        if f.domain_id is not None:
            query = query.join(Rubric, Rubric.id == Item.rubric_id).where(Rubric.domain_id == f.domain_id)
    if f.budget_type_id is not None:
        query = query.join(FinancialOperation, FinancialOperation.id == PlannedItem.financial_operation_id).where(
            FinancialOperation.budget_type_id == f.budget_type_id
        )
    if f.has_budget_modification is not None:
        column = PlannedItem.budget_modification_id
        query = query.where(column.is_not(None) if f.has_budget_modification else column.is_(None))
    if f.min_quantity is not None:
        query = query.where(ItemDistribution.quantity >= f.min_quantity)
    if f.max_quantity is not None:
        query = query.where(ItemDistribution.quantity <= f.max_quantity)
    if f.min_total_cost is not None or f.max_total_cost is not None:
        cost = ItemDistribution.quantity * PlannedItem.unit_cost
        if f.min_total_cost is not None:
            query = query.where(cost >= f.min_total_cost)
        if f.max_total_cost is not None:
            query = query.where(cost <= f.max_total_cost)
    if f.allocation_status:
        try:
            status = metrics.AllocationStatus(f.allocation_status.upper())
        except ValueError as exc:
            raise ValidationError(f"Statut de repartition inconnu : {f.allocation_status}") from exc
        if status is metrics.AllocationStatus.COMPLETE:
            query = query.where(ItemDistribution.quantity == PlannedItem.planned_quantity)
        elif status is metrics.AllocationStatus.PARTIAL:
            query = query.where(ItemDistribution.quantity < PlannedItem.planned_quantity)
        else:
            query = query.where(ItemDistribution.quantity > PlannedItem.planned_quantity)
    if f.requires_coordination is not None:
        coordinated = ItemDistribution.planned_item_id.in_(_coordinated_planned_items())
        query = query.where(coordinated if f.requires_coordination else ~coordinated)
    return query


async def list_distributions(
    db: AsyncSession,
    filters: ItemDistributionFilters | None = None,
    *,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[ItemDistribution], int]:
    query = _filtered_query(filters)
    total = await count_of(db, query)
    order_clause = parse_order(
        order,
        {
            "id": ItemDistribution.id,
            "quantity": ItemDistribution.quantity,
            "planned_item_id": ItemDistribution.planned_item_id,
            "structure_id": ItemDistribution.structure_id,
            "total_cost": ItemDistribution.quantity * PlannedItem.unit_cost,
            "created_at": ItemDistribution.created_at,
        },
        ItemDistribution.id.asc(),
    )
    result = await db.execute(query.order_by(order_clause).offset(max(offset, 0)).limit(clamp_limit(limit)))
    return result.scalars().all(), total


async def count_distributions(db: AsyncSession, filters: ItemDistributionFilters | None = None) -> int:
    return await count_of(db, _filtered_query(filters))


async def list_by_planned_item(db: AsyncSession, planned_item_id: int, **paging) -> tuple[Sequence[ItemDistribution], int]:
    return await list_distributions(db, ItemDistributionFilters(planned_item_id=planned_item_id), **paging)


async def list_by_structure(db: AsyncSession, structure_id: int, **paging) -> tuple[Sequence[ItemDistribution], int]:
    return await list_distributions(db, ItemDistributionFilters(structure_id=structure_id), **paging)


async def list_by_organizational_ancestor(
    db: AsyncSession, structure_id: int, **paging
) -> tuple[Sequence[ItemDistribution], int]:
    """Distributions of ``structure_id`` and of every structure below it."""
    await get_or_not_found(db, Structure, structure_id, "Structure")
    return await list_distributions(db, ItemDistributionFilters(ancestor_structure_id=structure_id), **paging)


# --- derived views --------------------------------------------------------


async def _planned_items_by_id(db: AsyncSession, ids) -> dict[int, PlannedItem]:
    if not ids:
        return {}
    result = await db.execute(select(PlannedItem).where(PlannedItem.id.in_(list(ids))))
    return {p.id: p for p in result.scalars().all()}


async def _distribution_counts(db: AsyncSession, planned_item_ids) -> dict[int, int]:
    if not planned_item_ids:
        return {}
    result = await db.execute(
        select(ItemDistribution.planned_item_id, func.count(ItemDistribution.id))
        .where(ItemDistribution.planned_item_id.in_(list(planned_item_ids)))
        .group_by(ItemDistribution.planned_item_id)
    )
    return {planned_item_id: int(count) for planned_item_id, count in result.all()}


def describe_distribution(distribution: ItemDistribution, planned_item: PlannedItem, sibling_count: int) -> ItemDistributionOut:
    return ItemDistributionOut(
        id=distribution.id,
        planned_item_id=distribution.planned_item_id,
        structure_id=distribution.structure_id,
        quantity=distribution.quantity,
        planned_quantity=planned_item.planned_quantity,
        unit_cost=planned_item.unit_cost,
        total_cost=metrics.distribution_cost(distribution.quantity, planned_item.unit_cost),
        percentage_of_plan=metrics.percentage_of_plan(distribution.quantity, planned_item.planned_quantity),
        allocation_status=metrics.allocation_status(distribution.quantity, planned_item.planned_quantity).value,
        size_category=metrics.distribution_size(distribution.quantity).value,
        requires_coordination=sibling_count > 1,
    )


async def describe_many(db: AsyncSession, distributions: Sequence[ItemDistribution]) -> list[ItemDistributionOut]:
    planned_ids = {d.planned_item_id for d in distributions}
    planned_items = await _planned_items_by_id(db, planned_ids)
    counts = await _distribution_counts(db, planned_ids)
    return [
        describe_distribution(d, planned_items[d.planned_item_id], counts.get(d.planned_item_id, 0))
        for d in distributions
    ]


async def get_distribution_view(db: AsyncSession, distribution_id: int) -> ItemDistributionOut:
    distribution = await get_distribution(db, distribution_id)
    return (await describe_many(db, [distribution]))[0]


# --- reports --------------------------------------------------------------


async def _joined_rows(db: AsyncSession, filters: ItemDistributionFilters | None = None):
    query = _filtered_query(filters).with_only_columns(
        ItemDistribution.id,
        ItemDistribution.planned_item_id,
        ItemDistribution.structure_id,
        ItemDistribution.quantity,
        PlannedItem.designation,
        PlannedItem.unit_cost,
        PlannedItem.planned_quantity,
    )
    return (await db.execute(query.order_by(ItemDistribution.id))).all()


async def coordination_report(db: AsyncSession, filters: ItemDistributionFilters | None = None) -> list[CoordinationEntry]:
    """One entry per planned item having distributions; more than one means several structures share it."""
    grouped: dict[int, list] = defaultdict(list)
    for row in await _joined_rows(db, filters):
        grouped[row.planned_item_id].append(row)
    report = []
    for planned_item_id, rows in sorted(grouped.items()):
        report.append(
            CoordinationEntry(
                planned_item_id=planned_item_id,
                designation=rows[0].designation,
                distribution_count=len(rows),
                structure_ids=sorted({row.structure_id for row in rows}),
                requires_coordination=len(rows) > 1,
            )
        )
    return report


async def over_distribution_report(db: AsyncSession) -> list[OverDistributionEntry]:
    grouped: dict[int, list] = defaultdict(list)
    for row in await _joined_rows(db):
        grouped[row.planned_item_id].append(row)
    report = []
    for planned_item_id, rows in sorted(grouped.items()):
        planned = metrics.as_decimal(rows[0].planned_quantity)
        distributed = metrics.dsum(row.quantity for row in rows)
        if distributed > planned:
            report.append(
                OverDistributionEntry(
                    planned_item_id=planned_item_id,
                    designation=rows[0].designation,
                    planned_quantity=planned,
                    distributed_quantity=distributed,
                    excess_quantity=distributed - planned,
                    distribution_count=len(rows),
                )
            )
    return report


async def structure_report(
    db: AsyncSession, filters: ItemDistributionFilters | None = None
) -> list[StructureDistributionSummary]:
    grouped: dict[int, list] = defaultdict(list)
    for row in await _joined_rows(db, filters):
        grouped[row.structure_id].append(row)
    return [
        StructureDistributionSummary(
            structure_id=structure_id,
            distribution_count=len(rows),
            total_quantity=metrics.dsum(row.quantity for row in rows),
            total_cost=metrics.dsum(metrics.distribution_cost(row.quantity, row.unit_cost) for row in rows),
        )
        for structure_id, rows in sorted(grouped.items())
    ]


async def planned_item_summary(db: AsyncSession, planned_item_id: int) -> PlannedItemDistributionSummary:
    planned_item = await get_or_not_found(db, PlannedItem, planned_item_id, "Ligne de planification")
    result = await db.execute(
        select(ItemDistribution.quantity).where(ItemDistribution.planned_item_id == planned_item_id)
    )
    quantities = result.scalars().all()
    distributed = metrics.dsum(quantities)
    planned = metrics.as_decimal(planned_item.planned_quantity)
    return PlannedItemDistributionSummary(
        planned_item_id=planned_item_id,
        planned_quantity=planned,
        distributed_quantity=distributed,
        remaining_quantity=planned - distributed,
        distribution_count=len(quantities),
        percentage_distributed=metrics.percentage_of_plan(distributed, planned),
        status=metrics.distribution_progress(distributed, planned).value,
    )


async def distribution_statistics(
    db: AsyncSession, filters: ItemDistributionFilters | None = None
) -> DistributionStatistics:
    rows = await _joined_rows(db, filters)
    if not rows:
        return DistributionStatistics()
    quantities = [row.quantity for row in rows]
    per_item: dict[int, list] = defaultdict(list)
    for row in rows:
        per_item[row.planned_item_id].append(row)
    over = sum(
        1
        for item_rows in per_item.values()
        if metrics.dsum(r.quantity for r in item_rows) > metrics.as_decimal(item_rows[0].planned_quantity)
    )
    return DistributionStatistics(
        count=len(rows),
        total_quantity=metrics.dsum(quantities),
        average_quantity=metrics.daverage(quantities),
        max_quantity=metrics.dmax(quantities),
        min_quantity=metrics.dmin(quantities),
        total_cost=metrics.dsum(metrics.distribution_cost(row.quantity, row.unit_cost) for row in rows),
        requiring_coordination_count=sum(len(item_rows) for item_rows in per_item.values() if len(item_rows) > 1),
        over_distributed_items_count=over,
    )
