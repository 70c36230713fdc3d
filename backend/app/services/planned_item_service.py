"""Planned item ledger.

A planned item stores three numbers (unit cost, planned quantity, allocated amount);
everything else shown for it (total cost, variance, utilization, categories,
distribution progress) is derived on read by ``app.services.budget_metrics``.
Ledger statistics are reductions over the current rows, recomputed on each call.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import Sequence

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, ValidationError
from app.models.budget_modification import BudgetModification
from app.models.catalog import Item, ItemStatus, Rubric
from app.models.financial_operation import FinancialOperation
from app.models.item_distribution import ItemDistribution
from app.models.planned_item import PlannedItem
from app.schemas.planned_item import (
    PlannedItemCreate,
    PlannedItemFilters,
    PlannedItemOut,
    PlannedItemStatistics,
    PlannedItemUpdate,
)
from app.services import budget_metrics as metrics
from app.services.persistence import (
    MONEY_PRECISION,
    QUANTITY_PRECISION,
    check_fits_column,
    clamp_limit,
    clean_text,
    commit_or_translate,
    count_of,
    delete_or_conflict,
    get_or_not_found,
    parse_order,
    resolve_reference,
    row_exists,
)

logger = logging.getLogger("budget_plan_api.planned_items")

DESIGNATION_MAX_LENGTH = 200
# taille des listes IN, sous la limite de parametres de sqlite et asyncpg
_ID_CHUNK = 500
_NUMERIC_FIELDS = ("unit_cost", "planned_quantity", "allocated_amount")
_PRECISIONS = {
    "unit_cost": MONEY_PRECISION,
    "planned_quantity": QUANTITY_PRECISION,
    "allocated_amount": MONEY_PRECISION,
}


def _non_negative(name: str, value) -> Decimal:
    if value is None:
        raise ValidationError(f"{name} obligatoire")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError(f"{name} invalide") from exc
    if not amount.is_finite():
        raise ValidationError(f"{name} invalide")
    if amount < 0:
        raise ValidationError(f"{name} ne peut pas etre negatif")
    return check_fits_column(name, amount, _PRECISIONS[name])


def _checked_designation(value: str | None) -> str:
    designation = clean_text(value)
    if not designation:
        raise ValidationError("La designation est obligatoire")
    if len(designation) > DESIGNATION_MAX_LENGTH:
        raise ValidationError(f"La designation depasse {DESIGNATION_MAX_LENGTH} caracteres")
    return designation


def _warn_on_variance(planned_item: PlannedItem) -> None:
    if metrics.variance_exceeds_warning(
        planned_item.unit_cost, planned_item.planned_quantity, planned_item.allocated_amount
    ):
        logger.warning(
            "planned item id=%s variance=%s exceeds 50%% of allocated=%s",
            planned_item.id,
            metrics.variance(planned_item.unit_cost, planned_item.planned_quantity, planned_item.allocated_amount),
            planned_item.allocated_amount,
        )


# --- writes ---------------------------------------------------------------


async def create_planned_item(db: AsyncSession, payload: PlannedItemCreate) -> PlannedItem:
    designation = _checked_designation(payload.designation)
    amounts = {name: _non_negative(name, getattr(payload, name)) for name in _NUMERIC_FIELDS}

    await resolve_reference(db, Item, payload.item_id, "Article")
    await resolve_reference(db, FinancialOperation, payload.financial_operation_id, "Operation financiere")
    await resolve_reference(db, ItemStatus, payload.item_status_id, "Statut")
    if payload.budget_modification_id is not None:
        await resolve_reference(db, BudgetModification, payload.budget_modification_id, "Modification budgetaire")

    planned_item = PlannedItem(
        designation=designation,
        item_id=payload.item_id,
        item_status_id=payload.item_status_id,
        financial_operation_id=payload.financial_operation_id,
        budget_modification_id=payload.budget_modification_id,
        **amounts,
    )
    db.add(planned_item)
    await commit_or_translate(db)
    await db.refresh(planned_item)
    logger.info("planned item created id=%s item_id=%s", planned_item.id, planned_item.item_id)
    _warn_on_variance(planned_item)
    return planned_item


async def update_planned_item(db: AsyncSession, planned_item_id: int, payload: PlannedItemUpdate) -> PlannedItem:
    planned_item = await get_or_not_found(db, PlannedItem, planned_item_id, "Ligne de planification")
    fields = payload.model_dump(exclude_unset=True)

    # Tout est valide avant la premiere affectation : un autoflush ne doit pas ecrire un etat partiel.
    changes: dict = {}
    if "designation" in fields:
        changes["designation"] = _checked_designation(fields["designation"])
    for name in _NUMERIC_FIELDS:
        if name in fields:
            changes[name] = _non_negative(name, fields[name])
    if "item_id" in fields:
        await resolve_reference(db, Item, fields["item_id"], "Article")
        changes["item_id"] = fields["item_id"]
    if "financial_operation_id" in fields:
        await resolve_reference(db, FinancialOperation, fields["financial_operation_id"], "Operation financiere")
        changes["financial_operation_id"] = fields["financial_operation_id"]
    if "item_status_id" in fields:
        await resolve_reference(db, ItemStatus, fields["item_status_id"], "Statut")
        changes["item_status_id"] = fields["item_status_id"]
    if "budget_modification_id" in fields:
        modification_id = fields["budget_modification_id"]
        if modification_id is not None:
            await resolve_reference(db, BudgetModification, modification_id, "Modification budgetaire")
        changes["budget_modification_id"] = modification_id

    for name, value in changes.items():
        setattr(planned_item, name, value)
    await commit_or_translate(db)
    await db.refresh(planned_item)
    _warn_on_variance(planned_item)
    return planned_item


async def link_budget_modification(db: AsyncSession, planned_item_id: int, modification_id: int) -> PlannedItem:
    return await update_planned_item(
        db, planned_item_id, PlannedItemUpdate(budget_modification_id=modification_id)
    )


async def unlink_budget_modification(db: AsyncSession, planned_item_id: int) -> PlannedItem:
    return await update_planned_item(db, planned_item_id, PlannedItemUpdate(budget_modification_id=None))


async def delete_planned_item(db: AsyncSession, planned_item_id: int) -> None:
    planned_item = await get_or_not_found(db, PlannedItem, planned_item_id, "Ligne de planification")
    result = await db.execute(
        select(func.count(ItemDistribution.id)).where(ItemDistribution.planned_item_id == planned_item_id)
    )
    distributions = int(result.scalar_one())
    if distributions:
        raise Conflict(
            f"Impossible de supprimer la ligne de planification : {distributions} repartition(s) a retirer d'abord"
        )
    await delete_or_conflict(
        db,
        planned_item,
        foreign_key_message="Impossible de supprimer la ligne de planification : des repartitions existent",
    )
    logger.info("planned item deleted id=%s", planned_item_id)


# --- reads ----------------------------------------------------------------


async def get_planned_item(db: AsyncSession, planned_item_id: int) -> PlannedItem:
    return await get_or_not_found(db, PlannedItem, planned_item_id, "Ligne de planification")


async def planned_item_exists(db: AsyncSession, planned_item_id: int) -> bool:
    return await row_exists(db, PlannedItem, planned_item_id)


def _total_cost_expr():
    return PlannedItem.unit_cost * PlannedItem.planned_quantity


def _filtered_query(filters: PlannedItemFilters | None):
    query = select(PlannedItem)
    if filters is None:
        return query
    f = filters

    if f.search:
        query = query.where(PlannedItem.designation.ilike(f"%{f.search.strip()}%"))
    if f.item_id is not None:
        query = query.where(PlannedItem.item_id == f.item_id)
    if f.item_status_id is not None:
        query = query.where(PlannedItem.item_status_id == f.item_status_id)
    if f.financial_operation_id is not None:
        query = query.where(PlannedItem.financial_operation_id == f.financial_operation_id)
    if f.budget_modification_id is not None:
        query = query.where(PlannedItem.budget_modification_id == f.budget_modification_id)
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
    if f.has_distributions is not None:
        has_child = exists().where(ItemDistribution.planned_item_id == PlannedItem.id)
        query = query.where(has_child if f.has_distributions else ~has_child)
    if f.has_budget_modification is not None:
        column = PlannedItem.budget_modification_id
        query = query.where(column.is_not(None) if f.has_budget_modification else column.is_(None))

    if f.min_unit_cost is not None:
        query = query.where(PlannedItem.unit_cost >= f.min_unit_cost)
    if f.max_unit_cost is not None:
        query = query.where(PlannedItem.unit_cost <= f.max_unit_cost)
    if f.min_quantity is not None:
        query = query.where(PlannedItem.planned_quantity >= f.min_quantity)
    if f.max_quantity is not None:
        query = query.where(PlannedItem.planned_quantity <= f.max_quantity)
    if f.min_allocated is not None:
        query = query.where(PlannedItem.allocated_amount >= f.min_allocated)
    if f.max_allocated is not None:
        query = query.where(PlannedItem.allocated_amount <= f.max_allocated)

    if f.budget_category:
        query = query.where(_budget_category_clause(f.budget_category))
    if f.cost_category:
        query = query.where(_cost_category_clause(f.cost_category))
    return query


def _budget_category_clause(raw: str):
    try:
        category = metrics.BudgetCategory(raw.upper())
    except ValueError as exc:
        raise ValidationError(f"Categorie budgetaire inconnue : {raw}") from exc
    # |ecart| <= 10 % de l'alloue, ecrit sans 0.1 pour rester exact en SQL.
    diff = _total_cost_expr() - PlannedItem.allocated_amount
    if category is metrics.BudgetCategory.WELL_BUDGETED:
        return func.abs(diff) * 10 <= PlannedItem.allocated_amount
    if category is metrics.BudgetCategory.OVER_BUDGET:
        return diff * 10 > PlannedItem.allocated_amount
    return diff * -10 > PlannedItem.allocated_amount


def _cost_category_clause(raw: str):
    try:
        category = metrics.CostCategory(raw.upper())
    except ValueError as exc:
        raise ValidationError(f"Categorie de cout inconnue : {raw}") from exc
    cost = PlannedItem.unit_cost
    if category is metrics.CostCategory.LOW:
        return cost <= 100
    if category is metrics.CostCategory.MEDIUM:
        return (cost > 100) & (cost <= 1000)
    if category is metrics.CostCategory.HIGH:
        return (cost > 1000) & (cost <= 10000)
    return cost > 10000


async def list_planned_items(
    db: AsyncSession,
    filters: PlannedItemFilters | None = None,
    *,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[PlannedItem], int]:
    query = _filtered_query(filters)
    total = await count_of(db, query)
    order_clause = parse_order(
        order,
        {
            "id": PlannedItem.id,
            "designation": PlannedItem.designation,
            "unit_cost": PlannedItem.unit_cost,
            "planned_quantity": PlannedItem.planned_quantity,
            "allocated_amount": PlannedItem.allocated_amount,
            "total_cost": _total_cost_expr(),
            "created_at": PlannedItem.created_at,
        },
        PlannedItem.id.asc(),
    )
    result = await db.execute(query.order_by(order_clause).offset(max(offset, 0)).limit(clamp_limit(limit)))
    return result.scalars().all(), total


async def count_planned_items(db: AsyncSession, filters: PlannedItemFilters | None = None) -> int:
    return await count_of(db, _filtered_query(filters))


# --- derived views --------------------------------------------------------


async def distribution_totals(db: AsyncSession, planned_item_ids: Sequence[int]) -> dict[int, tuple[int, Decimal]]:
    """Map planned item id -> (distribution count, distributed quantity)."""
    ids = list(planned_item_ids)
    quantities: dict[int, list] = defaultdict(list)
    for start in range(0, len(ids), _ID_CHUNK):
        result = await db.execute(
            select(ItemDistribution.planned_item_id, ItemDistribution.quantity).where(
                ItemDistribution.planned_item_id.in_(ids[start:start + _ID_CHUNK])
            )
        )
        for planned_item_id, quantity in result.all():
            quantities[planned_item_id].append(quantity)
    return {key: (len(values), metrics.dsum(values)) for key, values in quantities.items()}



def describe_planned_item(
    planned_item: PlannedItem, distribution_count: int = 0, distributed_quantity: Decimal = metrics.ZERO
) -> PlannedItemOut:
    unit_cost = planned_item.unit_cost
    quantity = planned_item.planned_quantity
    allocated = planned_item.allocated_amount
    return PlannedItemOut(
        id=planned_item.id,
        designation=planned_item.designation,
        unit_cost=unit_cost,
        planned_quantity=quantity,
        allocated_amount=allocated,
        item_id=planned_item.item_id,
        item_status_id=planned_item.item_status_id,
        financial_operation_id=planned_item.financial_operation_id,
        budget_modification_id=planned_item.budget_modification_id,
        total_cost=metrics.total_cost(unit_cost, quantity),
        variance=metrics.variance(unit_cost, quantity, allocated),
        utilization=metrics.utilization(unit_cost, quantity, allocated),
        utilization_percentage=metrics.utilization_percentage(unit_cost, quantity, allocated),
        budget_category=metrics.budget_category(unit_cost, quantity, allocated).value,
        cost_category=metrics.cost_category(unit_cost).value,
        quantity_scale=metrics.quantity_scale(quantity).value,
        planning_status=metrics.planning_status(unit_cost, quantity, allocated).value,
        distribution_count=distribution_count,
        distributed_quantity=distributed_quantity,
        remaining_quantity=metrics.as_decimal(quantity) - distributed_quantity,
        distribution_complexity=metrics.distribution_complexity(distribution_count).value,
    )


async def describe_many(db: AsyncSession, planned_items: Sequence[PlannedItem]) -> list[PlannedItemOut]:
    totals = await distribution_totals(db, [p.id for p in planned_items])
    views = []
    for planned_item in planned_items:
        count, distributed = totals.get(planned_item.id, (0, metrics.ZERO))
        views.append(describe_planned_item(planned_item, count, distributed))
    return views


async def get_planned_item_view(db: AsyncSession, planned_item_id: int) -> PlannedItemOut:
    planned_item = await get_planned_item(db, planned_item_id)
    return (await describe_many(db, [planned_item]))[0]


# --- statistics -----------------------------------------------------------


async def ledger_statistics(db: AsyncSession, filters: PlannedItemFilters | None = None) -> PlannedItemStatistics:
    distribution_count = (
        select(func.count(ItemDistribution.id))
        .where(ItemDistribution.planned_item_id == PlannedItem.id)
        .correlate(PlannedItem)
        .scalar_subquery()
        .label("distribution_count")
    )
    query = _filtered_query(filters).with_only_columns(
        PlannedItem.unit_cost, PlannedItem.planned_quantity, PlannedItem.allocated_amount, distribution_count
    )
    rows = (await db.execute(query)).all()
    if not rows:
        return PlannedItemStatistics()

    unit_costs = [row.unit_cost for row in rows]
    quantities = [row.planned_quantity for row in rows]
    allocations = [row.allocated_amount for row in rows]
    categories = [metrics.budget_category(row.unit_cost, row.planned_quantity, row.allocated_amount) for row in rows]
    distribution_counts = [int(row.distribution_count or 0) for row in rows]

    total_cost = metrics.dsum(metrics.total_cost(row.unit_cost, row.planned_quantity) for row in rows)
    total_allocated = metrics.dsum(allocations)

    return PlannedItemStatistics(
        count=len(rows),
        total_allocated=total_allocated,
        total_cost=total_cost,
        total_variance=total_cost - total_allocated,
        average_unit_cost=metrics.daverage(unit_costs),
        max_unit_cost=metrics.dmax(unit_costs),
        average_planned_quantity=metrics.daverage(quantities),
        max_planned_quantity=metrics.dmax(quantities),
        average_allocated_amount=metrics.daverage(allocations),
        max_allocated_amount=metrics.dmax(allocations),
        over_budget_count=categories.count(metrics.BudgetCategory.OVER_BUDGET),
        under_budget_count=categories.count(metrics.BudgetCategory.UNDER_BUDGET),
        well_budgeted_count=categories.count(metrics.BudgetCategory.WELL_BUDGETED),
        with_distributions_count=sum(1 for count in distribution_counts if count),
        without_distributions_count=sum(1 for count in distribution_counts if not count),
        average_distributions_per_item=metrics.daverage(distribution_counts),
        max_distributions_per_item=max(distribution_counts),
    )
