"""Helpers shared by the services: lookups, ordering, counting and commit translation.

The unique indexes and foreign keys are the authority. Service-level pre-checks only
give a friendlier message; when a concurrent writer slips past them, the
``IntegrityError`` raised at commit is translated here into the same error class.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.core.config import settings
from app.core.errors import Conflict, NotFound, ReferenceNotFound, UniquenessViolation, ValidationError

logger = logging.getLogger("budget_plan_api.persistence")

ModelT = TypeVar("ModelT")

# (chiffres, decimales) des colonnes Numeric
MONEY_PRECISION = (15, 2)
QUANTITY_PRECISION = (15, 3)


def is_unique_violation(exc: IntegrityError) -> bool:
    # postgres: "duplicate key value violates unique constraint", sqlite: "UNIQUE constraint failed"
    return "unique" in str(exc.orig).lower()


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    return "foreign key" in str(exc.orig).lower()


def is_check_violation(exc: IntegrityError) -> bool:
    return "check constraint" in str(exc.orig).lower()


async def commit_or_translate(
    db: AsyncSession,
    *,
    unique_message: str | None = None,
    foreign_key_message: str | None = None,
) -> None:
    """Commit, or roll back and raise the taxonomy error matching the constraint fault."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.info("integrity error on commit: %s", exc.orig)
        if unique_message is not None and is_unique_violation(exc):
            raise UniquenessViolation(unique_message) from exc
        if foreign_key_message is not None and is_foreign_key_violation(exc):
            raise Conflict(foreign_key_message) from exc
        if is_check_violation(exc):
            raise ValidationError("Valeur hors limites (quantites et montants doivent etre positifs)") from exc
        raise


async def delete_or_conflict(db: AsyncSession, obj, *, foreign_key_message: str) -> None:
    """Delete and commit; a foreign-key fault (child inserted concurrently) becomes ``Conflict``."""
    try:
        await db.delete(obj)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if is_foreign_key_violation(exc):
            raise Conflict(foreign_key_message) from exc
        raise


async def get_or_not_found(db: AsyncSession, model: type[ModelT], entity_id: Any, label: str) -> ModelT:
    obj = await db.get(model, entity_id)
    if obj is None:
        raise NotFound(label, entity_id)
    return obj


async def resolve_reference(db: AsyncSession, model: type[ModelT], entity_id: Any, label: str) -> ModelT:
    if entity_id is None:
        raise ValidationError(f"{label} obligatoire")
    obj = await db.get(model, entity_id)
    if obj is None:
        raise ReferenceNotFound(label, entity_id)
    return obj


async def row_exists(db: AsyncSession, model, entity_id: Any) -> bool:
    result = await db.execute(select(model.id).where(model.id == entity_id))
    return result.scalar_one_or_none() is not None


async def count_of(db: AsyncSession, query: Select) -> int:
    result = await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))
    return int(result.scalar_one())


def parse_order(order: str | None, column_map: Mapping[str, Any], default):
    """Parse ``"field"`` / ``"field.desc"`` into an ORDER BY clause, falling back to ``default``."""
    if not order:
        return default
    parts = order.split(".")
    field = parts[0]
    direction = parts[1] if len(parts) > 1 else "asc"
    col = column_map.get(field)
    if col is None:
        return default
    return col.desc() if direction.lower() == "desc" else col.asc()


def clamp_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return settings.default_page_size
    return min(limit, settings.max_page_size)


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def check_fits_column(name: str, amount: Decimal, precision: tuple[int, int]) -> Decimal:
    """Reject a value the Numeric column would round or overflow."""
    digits, scale = precision
    if not amount:
        return amount
    if amount.adjusted() >= digits - scale:
        raise ValidationError(f"{name} depasse {digits - scale} chiffres avant la virgule")
    if amount.quantize(Decimal(1).scaleb(-scale)) != amount:
        raise ValidationError(f"{name} : {scale} decimales au plus")
    return amount
