from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, UniquenessViolation, ValidationError
from app.models.financial_operation import BudgetType, FinancialOperation
from app.models.planned_item import PlannedItem
from app.schemas.financial_operation import (
    BudgetTypeCreate,
    BudgetTypeUpdate,
    FinancialOperationCreate,
    FinancialOperationUpdate,
)
from app.services.persistence import (
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

logger = logging.getLogger("budget_plan_api.financial_operations")

MIN_BUDGET_YEAR = 1900
MAX_BUDGET_YEAR = 2200


# --- BudgetType -----------------------------------------------------------


async def _budget_type_clash(
    db: AsyncSession, designation_fr: str | None, acronym_fr: str | None, exclude_id: int | None = None
) -> str | None:
    if designation_fr:
        query = select(BudgetType.id).where(BudgetType.designation_fr == designation_fr)
        if exclude_id is not None:
            query = query.where(BudgetType.id != exclude_id)
        if (await db.execute(query.limit(1))).scalar_one_or_none() is not None:
            return f"Le type de budget '{designation_fr}' existe deja"
    if acronym_fr:
        query = select(BudgetType.id).where(BudgetType.acronym_fr == acronym_fr)
        if exclude_id is not None:
            query = query.where(BudgetType.id != exclude_id)
        if (await db.execute(query.limit(1))).scalar_one_or_none() is not None:
            return f"Le sigle '{acronym_fr}' existe deja"
    return None


async def create_budget_type(db: AsyncSession, payload: BudgetTypeCreate) -> BudgetType:
    designation = clean_text(payload.designation_fr)
    acronym = clean_text(payload.acronym_fr)
    if not designation or not acronym:
        raise ValidationError("designation_fr et acronym_fr sont obligatoires")
    clash = await _budget_type_clash(db, designation, acronym)
    if clash:
        raise UniquenessViolation(clash)

    budget_type = BudgetType(
        designation_ar=clean_text(payload.designation_ar),
        designation_en=clean_text(payload.designation_en),
        designation_fr=designation,
        acronym_ar=clean_text(payload.acronym_ar),
        acronym_en=clean_text(payload.acronym_en),
        acronym_fr=acronym,
    )
    db.add(budget_type)
    await commit_or_translate(db, unique_message="Type de budget deja existant")
    await db.refresh(budget_type)
    return budget_type


async def update_budget_type(db: AsyncSession, budget_type_id: int, payload: BudgetTypeUpdate) -> BudgetType:
    budget_type = await get_or_not_found(db, BudgetType, budget_type_id, "Type de budget")
    fields = {k: clean_text(v) for k, v in payload.model_dump(exclude_unset=True).items()}
    for required in ("designation_fr", "acronym_fr"):
        if required in fields and not fields[required]:
            raise ValidationError(f"{required} obligatoire")
    clash = await _budget_type_clash(
        db, fields.get("designation_fr"), fields.get("acronym_fr"), exclude_id=budget_type_id
    )
    if clash:
        raise UniquenessViolation(clash)
    for name, value in fields.items():
        setattr(budget_type, name, value)
    await commit_or_translate(db, unique_message="Type de budget deja existant")
    await db.refresh(budget_type)
    return budget_type


async def delete_budget_type(db: AsyncSession, budget_type_id: int) -> None:
    budget_type = await get_or_not_found(db, BudgetType, budget_type_id, "Type de budget")
    result = await db.execute(
        select(func.count(FinancialOperation.id)).where(FinancialOperation.budget_type_id == budget_type_id)
    )
    if int(result.scalar_one()):
        raise Conflict("Impossible de supprimer le type de budget : des operations financieres l'utilisent")
    await delete_or_conflict(
        db, budget_type, foreign_key_message="Impossible de supprimer le type de budget : il est utilise"
    )


async def get_budget_type(db: AsyncSession, budget_type_id: int) -> BudgetType:
    return await get_or_not_found(db, BudgetType, budget_type_id, "Type de budget")


async def list_budget_types(db: AsyncSession) -> Sequence[BudgetType]:
    result = await db.execute(select(BudgetType).order_by(BudgetType.acronym_fr))
    return result.scalars().all()


# --- FinancialOperation ---------------------------------------------------


def _checked_year(value: int | None) -> int:
    if value is None:
        raise ValidationError("budget_year obligatoire")
    if not MIN_BUDGET_YEAR <= value <= MAX_BUDGET_YEAR:
        raise ValidationError(f"budget_year doit etre compris entre {MIN_BUDGET_YEAR} et {MAX_BUDGET_YEAR}")
    return value


async def _operation_taken(db: AsyncSession, operation: str, exclude_id: int | None = None) -> bool:
    query = select(FinancialOperation.id).where(FinancialOperation.operation == operation)
    if exclude_id is not None:
        query = query.where(FinancialOperation.id != exclude_id)
    return (await db.execute(query.limit(1))).scalar_one_or_none() is not None


async def create_financial_operation(db: AsyncSession, payload: FinancialOperationCreate) -> FinancialOperation:
    operation = clean_text(payload.operation)
    if not operation:
        raise ValidationError("Le libelle de l'operation est obligatoire")
    year = _checked_year(payload.budget_year)
    await resolve_reference(db, BudgetType, payload.budget_type_id, "Type de budget")
    if await _operation_taken(db, operation):
        raise UniquenessViolation(f"L'operation '{operation}' existe deja")

    financial_operation = FinancialOperation(
        operation=operation,
        budget_year=year,
        budget_type_id=payload.budget_type_id,
    )
    db.add(financial_operation)
    await commit_or_translate(db, unique_message=f"L'operation '{operation}' existe deja")
    await db.refresh(financial_operation)
    logger.info("financial operation created id=%s year=%s", financial_operation.id, year)
    return financial_operation


async def update_financial_operation(
    db: AsyncSession, operation_id: int, payload: FinancialOperationUpdate
) -> FinancialOperation:
    financial_operation = await get_or_not_found(db, FinancialOperation, operation_id, "Operation financiere")
    fields = payload.model_dump(exclude_unset=True)
    changes: dict = {}
    if "operation" in fields:
        operation = clean_text(fields["operation"])
        if not operation:
            raise ValidationError("Le libelle de l'operation est obligatoire")
        if await _operation_taken(db, operation, exclude_id=operation_id):
            raise UniquenessViolation(f"L'operation '{operation}' existe deja")
        changes["operation"] = operation
    if "budget_year" in fields:
        changes["budget_year"] = _checked_year(fields["budget_year"])
    if "budget_type_id" in fields:
        await resolve_reference(db, BudgetType, fields["budget_type_id"], "Type de budget")
        changes["budget_type_id"] = fields["budget_type_id"]
    for name, value in changes.items():
        setattr(financial_operation, name, value)
    await commit_or_translate(db, unique_message="Libelle d'operation deja utilise")
    await db.refresh(financial_operation)
    return financial_operation


async def delete_financial_operation(db: AsyncSession, operation_id: int) -> None:
    financial_operation = await get_or_not_found(db, FinancialOperation, operation_id, "Operation financiere")
    result = await db.execute(
        select(func.count(PlannedItem.id)).where(PlannedItem.financial_operation_id == operation_id)
    )
    if int(result.scalar_one()):
        raise Conflict("Impossible de supprimer l'operation : des lignes de planification y sont rattachees")
    await delete_or_conflict(
        db, financial_operation, foreign_key_message="Impossible de supprimer l'operation : elle est utilisee"
    )


async def get_financial_operation(db: AsyncSession, operation_id: int) -> FinancialOperation:
    return await get_or_not_found(db, FinancialOperation, operation_id, "Operation financiere")


def _operations_query(search: str | None, budget_year: int | None, budget_type_id: int | None):
    query = select(FinancialOperation)
    if search:
        query = query.where(FinancialOperation.operation.ilike(f"%{search.strip()}%"))
    if budget_year is not None:
        query = query.where(FinancialOperation.budget_year == budget_year)
    if budget_type_id is not None:
        query = query.where(FinancialOperation.budget_type_id == budget_type_id)
    return query


async def list_financial_operations(
    db: AsyncSession,
    *,
    search: str | None = None,
    budget_year: int | None = None,
    budget_type_id: int | None = None,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[FinancialOperation], int]:
    query = _operations_query(search, budget_year, budget_type_id)
    total = await count_of(db, query)
    order_clause = parse_order(
        order,
        {
            "id": FinancialOperation.id,
            "operation": FinancialOperation.operation,
            "budget_year": FinancialOperation.budget_year,
        },
        FinancialOperation.budget_year.desc(),
    )
    result = await db.execute(query.order_by(order_clause).offset(max(offset, 0)).limit(clamp_limit(limit)))
    return result.scalars().all(), total


async def financial_operation_exists(db: AsyncSession, operation_id: int) -> bool:
    return await row_exists(db, FinancialOperation, operation_id)


async def count_financial_operations(db: AsyncSession, budget_year: int | None = None) -> int:
    return await count_of(db, _operations_query(None, budget_year, None))


async def list_budget_years(db: AsyncSession) -> list[int]:
    result = await db.execute(
        select(FinancialOperation.budget_year).distinct().order_by(FinancialOperation.budget_year.desc())
    )
    return [row[0] for row in result.all()]
