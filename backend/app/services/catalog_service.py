"""Catalog hierarchy: Domain > Rubric > Item, plus the ItemStatus lookup.

Designation uniqueness and "no delete while children exist" are both enforced by the
database (unique index, RESTRICT foreign keys). The checks below run first in the
same transaction and only exist to return a readable error.
"""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict, UniquenessViolation, ValidationError
from app.models.catalog import Domain, Item, ItemStatus, Rubric
from app.models.planned_item import PlannedItem
from app.schemas.catalog import (
    DomainCreate,
    DomainUpdate,
    ItemCreate,
    ItemStatusCreate,
    ItemStatusUpdate,
    ItemUpdate,
    RubricCreate,
    RubricUpdate,
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

logger = logging.getLogger("budget_plan_api.catalog")

_DESIGNATION_FIELDS = ("designation_ar", "designation_en", "designation_fr")


def _required_designation(value: str | None, label: str) -> str:
    value = clean_text(value)
    if not value:
        raise ValidationError(f"designation_fr obligatoire pour {label}")
    return value


async def _designation_taken(db: AsyncSession, model, designation_fr: str, exclude_id: int | None = None) -> bool:
    query = select(model.id).where(model.designation_fr == designation_fr)
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


def _apply_designations(obj, fields: dict) -> None:
    for name in _DESIGNATION_FIELDS:
        if name in fields:
            setattr(obj, name, clean_text(fields[name]))


async def _paged(db: AsyncSession, query, order_clause, limit: int | None, offset: int) -> tuple[Sequence, int]:
    total = await count_of(db, query)
    result = await db.execute(query.order_by(order_clause).offset(max(offset, 0)).limit(clamp_limit(limit)))
    return result.scalars().all(), total


# --- Domain ---------------------------------------------------------------


async def create_domain(db: AsyncSession, payload: DomainCreate) -> Domain:
    designation = _required_designation(payload.designation_fr, "le domaine")
    if await _designation_taken(db, Domain, designation):
        raise UniquenessViolation(f"Le domaine '{designation}' existe deja")

    domain = Domain(
        designation_ar=clean_text(payload.designation_ar),
        designation_en=clean_text(payload.designation_en),
        designation_fr=designation,
    )
    db.add(domain)
    await commit_or_translate(db, unique_message=f"Le domaine '{designation}' existe deja")
    await db.refresh(domain)
    logger.info("domain created id=%s", domain.id)
    return domain


async def update_domain(db: AsyncSession, domain_id: int, payload: DomainUpdate) -> Domain:
    domain = await get_or_not_found(db, Domain, domain_id, "Domaine")
    fields = payload.model_dump(exclude_unset=True)
    if "designation_fr" in fields:
        designation = _required_designation(fields["designation_fr"], "le domaine")
        if await _designation_taken(db, Domain, designation, exclude_id=domain_id):
            raise UniquenessViolation(f"Le domaine '{designation}' existe deja")
        fields["designation_fr"] = designation
    _apply_designations(domain, fields)
    await commit_or_translate(db, unique_message="Designation de domaine deja utilisee")
    await db.refresh(domain)
    return domain


async def _rubric_count(db: AsyncSession, domain_id: int) -> int:
    result = await db.execute(select(func.count(Rubric.id)).where(Rubric.domain_id == domain_id))
    return int(result.scalar_one())


async def delete_domain(db: AsyncSession, domain_id: int) -> None:
    obj = await get_or_not_found(db, Domain, domain_id, "Domaine")
    children = await _rubric_count(db, domain_id)
    if children:
        raise Conflict(f"Impossible de supprimer le domaine : {children} rubrique(s) rattachee(s)")
    await delete_or_conflict(
        db,
        obj,
        foreign_key_message="Impossible de supprimer le domaine : des rubriques y sont rattachees",
    )
    logger.info("domain deleted id=%s", domain_id)


async def get_domain(db: AsyncSession, domain_id: int) -> Domain:
    return await get_or_not_found(db, Domain, domain_id, "Domaine")


async def list_domains(
    db: AsyncSession,
    *,
    search: str | None = None,
    has_rubrics: bool | None = None,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[Domain], int]:
    query = select(Domain)
    if search:
        query = query.where(Domain.designation_fr.ilike(f"%{search.strip()}%"))
    if has_rubrics is not None:
        has_child = exists().where(Rubric.domain_id == Domain.id)
        query = query.where(has_child if has_rubrics else ~has_child)
    order_clause = parse_order(
        order,
        {"id": Domain.id, "designation_fr": Domain.designation_fr, "created_at": Domain.created_at},
        Domain.designation_fr.asc(),
    )
    return await _paged(db, query, order_clause, limit, offset)


async def domain_exists(db: AsyncSession, domain_id: int) -> bool:
    return await row_exists(db, Domain, domain_id)


async def count_domains(db: AsyncSession) -> int:
    return await count_of(db, select(Domain.id))


# --- Rubric ---------------------------------------------------------------


async def create_rubric(db: AsyncSession, payload: RubricCreate) -> Rubric:
    designation = _required_designation(payload.designation_fr, "la rubrique")
    await resolve_reference(db, Domain, payload.domain_id, "Domaine")
    if await _designation_taken(db, Rubric, designation):
        raise UniquenessViolation(f"La rubrique '{designation}' existe deja")

    rubric = Rubric(
        designation_ar=clean_text(payload.designation_ar),
        designation_en=clean_text(payload.designation_en),
        designation_fr=designation,
        domain_id=payload.domain_id,
    )
    db.add(rubric)
    await commit_or_translate(db, unique_message=f"La rubrique '{designation}' existe deja")
    await db.refresh(rubric)
    logger.info("rubric created id=%s domain_id=%s", rubric.id, rubric.domain_id)
    return rubric


async def update_rubric(db: AsyncSession, rubric_id: int, payload: RubricUpdate) -> Rubric:
    rubric = await get_or_not_found(db, Rubric, rubric_id, "Rubrique")
    fields = payload.model_dump(exclude_unset=True)
    if "designation_fr" in fields:
        designation = _required_designation(fields["designation_fr"], "la rubrique")
        if await _designation_taken(db, Rubric, designation, exclude_id=rubric_id):
            raise UniquenessViolation(f"La rubrique '{designation}' existe deja")
        fields["designation_fr"] = designation
    if "domain_id" in fields:
        await resolve_reference(db, Domain, fields["domain_id"], "Domaine")
        rubric.domain_id = fields["domain_id"]
    _apply_designations(rubric, fields)
    await commit_or_translate(db, unique_message="Designation de rubrique deja utilisee")
    await db.refresh(rubric)
    return rubric


async def _item_count(db: AsyncSession, rubric_id: int) -> int:
    result = await db.execute(select(func.count(Item.id)).where(Item.rubric_id == rubric_id))
    return int(result.scalar_one())


async def delete_rubric(db: AsyncSession, rubric_id: int) -> None:
    obj = await get_or_not_found(db, Rubric, rubric_id, "Rubrique")
    children = await _item_count(db, rubric_id)
    if children:
        raise Conflict(f"Impossible de supprimer la rubrique : {children} article(s) rattache(s)")
    await delete_or_conflict(
        db,
        obj,
        foreign_key_message="Impossible de supprimer la rubrique : des articles y sont rattaches",
    )
    logger.info("rubric deleted id=%s", rubric_id)


async def get_rubric(db: AsyncSession, rubric_id: int) -> Rubric:
    return await get_or_not_found(db, Rubric, rubric_id, "Rubrique")


async def list_rubrics(
    db: AsyncSession,
    *,
    search: str | None = None,
    domain_id: int | None = None,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[Rubric], int]:
    query = select(Rubric)
    if search:
        query = query.where(Rubric.designation_fr.ilike(f"%{search.strip()}%"))
    if domain_id is not None:
        query = query.where(Rubric.domain_id == domain_id)
    order_clause = parse_order(
        order,
        {"id": Rubric.id, "designation_fr": Rubric.designation_fr, "domain_id": Rubric.domain_id},
        Rubric.designation_fr.asc(),
    )
    return await _paged(db, query, order_clause, limit, offset)


async def rubric_exists(db: AsyncSession, rubric_id: int) -> bool:
    return await row_exists(db, Rubric, rubric_id)


async def count_rubrics(db: AsyncSession, domain_id: int | None = None) -> int:
    query = select(Rubric.id)
    if domain_id is not None:
        query = query.where(Rubric.domain_id == domain_id)
    return await count_of(db, query)


# --- Item -----------------------------------------------------------------


async def create_item(db: AsyncSession, payload: ItemCreate) -> Item:
    designation = _required_designation(payload.designation_fr, "l'article")
    await resolve_reference(db, Rubric, payload.rubric_id, "Rubrique")
    item = Item(
        designation_ar=clean_text(payload.designation_ar),
        designation_en=clean_text(payload.designation_en),
        designation_fr=designation,
        rubric_id=payload.rubric_id,
    )
    db.add(item)
    await commit_or_translate(db)
    await db.refresh(item)
    return item


async def update_item(db: AsyncSession, item_id: int, payload: ItemUpdate) -> Item:
    item = await get_or_not_found(db, Item, item_id, "Article")
    fields = payload.model_dump(exclude_unset=True)
    if "designation_fr" in fields:
        fields["designation_fr"] = _required_designation(fields["designation_fr"], "l'article")
    if "rubric_id" in fields:
        await resolve_reference(db, Rubric, fields["rubric_id"], "Rubrique")
        item.rubric_id = fields["rubric_id"]
    _apply_designations(item, fields)
    await commit_or_translate(db)
    await db.refresh(item)
    return item


async def delete_item(db: AsyncSession, item_id: int) -> None:
    obj = await get_or_not_found(db, Item, item_id, "Article")
    result = await db.execute(select(func.count(PlannedItem.id)).where(PlannedItem.item_id == item_id))
    planned = int(result.scalar_one())
    if planned:
        raise Conflict(f"Impossible de supprimer l'article : {planned} ligne(s) de planification")
    await delete_or_conflict(
        db,
        obj,
        foreign_key_message="Impossible de supprimer l'article : il est planifie",
    )


async def get_item(db: AsyncSession, item_id: int) -> Item:
    return await get_or_not_found(db, Item, item_id, "Article")


async def list_items(
    db: AsyncSession,
    *,
    search: str | None = None,
    rubric_id: int | None = None,
    domain_id: int | None = None,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[Item], int]:
    query = select(Item)
    if search:
        query = query.where(Item.designation_fr.ilike(f"%{search.strip()}%"))
    if rubric_id is not None:
        query = query.where(Item.rubric_id == rubric_id)
    if domain_id is not None:
        query = query.join(Rubric, Rubric.id == Item.rubric_id).where(Rubric.domain_id == domain_id)
    order_clause = parse_order(
        order,
        {"id": Item.id, "designation_fr": Item.designation_fr, "rubric_id": Item.rubric_id},
        Item.designation_fr.asc(),
    )
    return await _paged(db, query, order_clause, limit, offset)


async def item_exists(db: AsyncSession, item_id: int) -> bool:
    return await row_exists(db, Item, item_id)


async def count_items(db: AsyncSession, rubric_id: int | None = None) -> int:
    query = select(Item.id)
    if rubric_id is not None:
        query = query.where(Item.rubric_id == rubric_id)
    return await count_of(db, query)


# --- ItemStatus -----------------------------------------------------------


async def create_item_status(db: AsyncSession, payload: ItemStatusCreate) -> ItemStatus:
    designation = _required_designation(payload.designation_fr, "le statut")
    if await _designation_taken(db, ItemStatus, designation):
        raise UniquenessViolation(f"Le statut '{designation}' existe deja")
    status = ItemStatus(
        designation_ar=clean_text(payload.designation_ar),
        designation_en=clean_text(payload.designation_en),
        designation_fr=designation,
    )
    db.add(status)
    await commit_or_translate(db, unique_message=f"Le statut '{designation}' existe deja")
    await db.refresh(status)
    return status


async def update_item_status(db: AsyncSession, status_id: int, payload: ItemStatusUpdate) -> ItemStatus:
    status = await get_or_not_found(db, ItemStatus, status_id, "Statut")
    fields = payload.model_dump(exclude_unset=True)
    if "designation_fr" in fields:
        designation = _required_designation(fields["designation_fr"], "le statut")
        if await _designation_taken(db, ItemStatus, designation, exclude_id=status_id):
            raise UniquenessViolation(f"Le statut '{designation}' existe deja")
        fields["designation_fr"] = designation
    _apply_designations(status, fields)
    await commit_or_translate(db, unique_message="Designation de statut deja utilisee")
    await db.refresh(status)
    return status


async def delete_item_status(db: AsyncSession, status_id: int) -> None:
    obj = await get_or_not_found(db, ItemStatus, status_id, "Statut")
    result = await db.execute(
        select(func.count(PlannedItem.id)).where(PlannedItem.item_status_id == status_id)
    )
    if int(result.scalar_one()):
        raise Conflict("Impossible de supprimer le statut : il est utilise par des lignes de planification")
    await delete_or_conflict(
        db,
        obj,
        foreign_key_message="Impossible de supprimer le statut : il est utilise",
    )


async def get_item_status(db: AsyncSession, status_id: int) -> ItemStatus:
    return await get_or_not_found(db, ItemStatus, status_id, "Statut")


async def list_item_statuses(
    db: AsyncSession,
    *,
    search: str | None = None,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[ItemStatus], int]:
    query = select(ItemStatus)
    if search:
        query = query.where(ItemStatus.designation_fr.ilike(f"%{search.strip()}%"))
    order_clause = parse_order(
        order,
        {"id": ItemStatus.id, "designation_fr": ItemStatus.designation_fr},
        ItemStatus.designation_fr.asc(),
    )
    return await _paged(db, query, order_clause, limit, offset)


async def item_status_exists(db: AsyncSession, status_id: int) -> bool:
    return await row_exists(db, ItemStatus, status_id)


async def count_item_statuses(db: AsyncSession) -> int:
    return await count_of(db, select(ItemStatus.id))
