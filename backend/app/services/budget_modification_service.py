"""Budget modification approval tracking.

There is no status column. A modification is PENDING while ``approval_date`` is
empty, SCHEDULED while the date is in the future and APPROVED once the date is
reached, so a scheduled modification becomes approved without any write. Every
function that needs "today" takes a ``Clock``.

The pair (approval_date, demande_id) is unique through
``uq_budget_modifications_approval_demande``. The lookup done before the insert
only gives an early error; the index decides when two requests race, and its
fault is reported with the same ``UniquenessViolation``.
"""

from __future__ import annotations

import calendar
import enum
import logging
from collections import Counter
from datetime import date, timedelta
from typing import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.errors import Conflict, UniquenessViolation, ValidationError
from app.models.budget_modification import BudgetModification
from app.models.document import Document
from app.models.planned_item import PlannedItem
from app.schemas.budget_modification import (
    BudgetModificationCounts,
    BudgetModificationCreate,
    BudgetModificationFilters,
    BudgetModificationOut,
    BudgetModificationUpdate,
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

logger = logging.getLogger("budget_plan_api.budget_modifications")

OBJECT_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500
FAR_FUTURE_WARNING_DAYS = 730


class ApprovalState(enum.Enum):
    PENDING = "PENDING"
    SCHEDULED = "SCHEDULED"
    APPROVED = "APPROVED"


def approval_state(approval_date: date | None, today: date) -> ApprovalState:
    if approval_date is None:
        return ApprovalState.PENDING
    if approval_date > today:
        return ApprovalState.SCHEDULED
    return ApprovalState.APPROVED


def is_pending(modification: BudgetModification, clock: Clock = system_clock) -> bool:
    return approval_state(modification.approval_date, clock.today()) is ApprovalState.PENDING


def is_scheduled(modification: BudgetModification, clock: Clock = system_clock) -> bool:
    return approval_state(modification.approval_date, clock.today()) is ApprovalState.SCHEDULED


def is_approved(modification: BudgetModification, clock: Clock = system_clock) -> bool:
    return approval_state(modification.approval_date, clock.today()) is ApprovalState.APPROVED


def days_to_approval(approval_date: date | None, today: date) -> int | None:
    """Days from ``today`` to the approval date; negative once it has passed, None while pending."""
    if approval_date is None:
        return None
    return (approval_date - today).days


def describe_modification(modification: BudgetModification, clock: Clock = system_clock) -> BudgetModificationOut:
    today = clock.today()
    state = approval_state(modification.approval_date, today)
    return BudgetModificationOut(
        id=modification.id,
        object=modification.object,
        description=modification.description,
        approval_date=modification.approval_date,
        demande_id=modification.demande_id,
        response_id=modification.response_id,
        state=state.value,
        is_pending=state is ApprovalState.PENDING,
        is_scheduled=state is ApprovalState.SCHEDULED,
        is_approved=state is ApprovalState.APPROVED,
        days_to_approval=days_to_approval(modification.approval_date, today),
    )


# --- validation -----------------------------------------------------------


def _checked_text(value: str | None, name: str, max_length: int) -> str | None:
    value = clean_text(value)
    if value is not None and len(value) > max_length:
        raise ValidationError(f"{name} depasse {max_length} caracteres")
    return value


def _duplicate_message(approval_date: date, demande_id: int) -> str:
    return (
        f"Une modification budgetaire approuvee le {approval_date.isoformat()} "
        f"existe deja pour la demande {demande_id}"
    )


async def _pair_exists(
    db: AsyncSession, approval_date: date, demande_id: int, exclude_id: int | None = None
) -> bool:
    query = select(BudgetModification.id).where(
        BudgetModification.approval_date == approval_date,
        BudgetModification.demande_id == demande_id,
    )
    if exclude_id is not None:
        query = query.where(BudgetModification.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


def _warn_on_content(object_: str | None, description: str | None, approval_date: date | None, today: date) -> None:
    if not object_ and not description:
        logger.warning("budget modification without object nor description")
    if approval_date is not None and approval_date > today + timedelta(days=FAR_FUTURE_WARNING_DAYS):
        logger.warning("budget modification approval_date=%s is more than two years ahead", approval_date)


# --- writes ---------------------------------------------------------------


async def create_budget_modification(
    db: AsyncSession, payload: BudgetModificationCreate, *, clock: Clock = system_clock
) -> BudgetModification:
    if payload.demande_id is None:
        raise ValidationError("La demande est obligatoire")
    object_ = _checked_text(payload.object, "L'objet", OBJECT_MAX_LENGTH)
    description = _checked_text(payload.description, "La description", DESCRIPTION_MAX_LENGTH)
    await resolve_reference(db, Document, payload.demande_id, "Document (demande)")
    if payload.response_id is not None:
        await resolve_reference(db, Document, payload.response_id, "Document (reponse)")

    approval_date = payload.approval_date
    if approval_date is not None and await _pair_exists(db, approval_date, payload.demande_id):
        raise UniquenessViolation(_duplicate_message(approval_date, payload.demande_id))
    _warn_on_content(object_, description, approval_date, clock.today())

    modification = BudgetModification(
        object=object_,
        description=description,
        approval_date=approval_date,
        demande_id=payload.demande_id,
        response_id=payload.response_id,
    )
    db.add(modification)
    await commit_or_translate(
        db,
        unique_message=_duplicate_message(approval_date, payload.demande_id) if approval_date else None,
    )
    await db.refresh(modification)
    logger.info(
        "budget modification created id=%s demande_id=%s approval_date=%s",
        modification.id,
        modification.demande_id,
        modification.approval_date,
    )
    return modification


async def update_budget_modification(
    db: AsyncSession,
    modification_id: int,
    payload: BudgetModificationUpdate,
    *,
    clock: Clock = system_clock,
) -> BudgetModification:
    modification = await get_or_not_found(db, BudgetModification, modification_id, "Modification budgetaire")
    fields = payload.model_dump(exclude_unset=True)

    changes: dict = {}
    if "object" in fields:
        changes["object"] = _checked_text(fields["object"], "L'objet", OBJECT_MAX_LENGTH)
    if "description" in fields:
        changes["description"] = _checked_text(fields["description"], "La description", DESCRIPTION_MAX_LENGTH)
    if "demande_id" in fields:
        if fields["demande_id"] is None:
            raise ValidationError("La demande est obligatoire")
        await resolve_reference(db, Document, fields["demande_id"], "Document (demande)")
        changes["demande_id"] = fields["demande_id"]
    if "response_id" in fields:
        if fields["response_id"] is not None:
            await resolve_reference(db, Document, fields["response_id"], "Document (reponse)")
        changes["response_id"] = fields["response_id"]
    if "approval_date" in fields:
        changes["approval_date"] = fields["approval_date"]

    approval_date = changes.get("approval_date", modification.approval_date)
    demande_id = changes.get("demande_id", modification.demande_id)
    if approval_date is not None and await _pair_exists(db, approval_date, demande_id, exclude_id=modification_id):
        raise UniquenessViolation(_duplicate_message(approval_date, demande_id))
    _warn_on_content(
        changes.get("object", modification.object),
        changes.get("description", modification.description),
        approval_date if "approval_date" in changes else None,
        clock.today(),
    )

    for name, value in changes.items():
        setattr(modification, name, value)
    await commit_or_translate(
        db,
        unique_message=_duplicate_message(approval_date, demande_id) if approval_date else None,
    )
    await db.refresh(modification)
    return modification


async def approve(
    db: AsyncSession, modification_id: int, approval_date: date, *, clock: Clock = system_clock
) -> BudgetModification:
    """Set the approval date; the modification is APPROVED or SCHEDULED depending on the clock."""
    return await update_budget_modification(
        db, modification_id, BudgetModificationUpdate(approval_date=approval_date), clock=clock
    )


async def delete_budget_modification(db: AsyncSession, modification_id: int) -> None:
    modification = await get_or_not_found(db, BudgetModification, modification_id, "Modification budgetaire")
    result = await db.execute(
        select(func.count(PlannedItem.id)).where(PlannedItem.budget_modification_id == modification_id)
    )
    linked = int(result.scalar_one())
    if linked:
        raise Conflict(f"Impossible de supprimer la modification : {linked} ligne(s) de planification liee(s)")
    await delete_or_conflict(
        db,
        modification,
        foreign_key_message="Impossible de supprimer la modification : des lignes de planification y sont liees",
    )


# --- reads ----------------------------------------------------------------


async def get_budget_modification(db: AsyncSession, modification_id: int) -> BudgetModification:
    return await get_or_not_found(db, BudgetModification, modification_id, "Modification budgetaire")


async def budget_modification_exists(db: AsyncSession, modification_id: int) -> bool:
    return await row_exists(db, BudgetModification, modification_id)


def _year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def _filtered_query(filters: BudgetModificationFilters | None, today: date):
    query = select(BudgetModification)
    if filters is None:
        return query
    f = filters
    approval = BudgetModification.approval_date

    if f.search:
        pattern = f"%{f.search.strip()}%"
        query = query.where(or_(BudgetModification.object.ilike(pattern), BudgetModification.description.ilike(pattern)))
    if f.demande_id is not None:
        query = query.where(BudgetModification.demande_id == f.demande_id)
    if f.response_id is not None:
        query = query.where(BudgetModification.response_id == f.response_id)
    if f.state:
        try:
            state = ApprovalState(f.state.upper())
        except ValueError as exc:
            raise ValidationError(f"Etat inconnu : {f.state}") from exc
        if state is ApprovalState.PENDING:
            query = query.where(approval.is_(None))
        elif state is ApprovalState.SCHEDULED:
            query = query.where(approval > today)
        else:
            query = query.where(approval <= today)
    if f.approved_from is not None:
        query = query.where(approval >= f.approved_from)
    if f.approved_to is not None:
        query = query.where(approval <= f.approved_to)
    if f.year is not None:
        start, end = _year_bounds(f.year)
        query = query.where(approval.between(start, end))
    if f.current_year:
        start, end = _year_bounds(today.year)
        query = query.where(approval.between(start, end))
    if f.current_month:
        last_day = calendar.monthrange(today.year, today.month)[1]
        query = query.where(
            approval.between(date(today.year, today.month, 1), date(today.year, today.month, last_day))
        )
    if f.recent:
        query = query.where(approval.between(today - timedelta(days=settings.recent_approval_days), today))
    if f.approved_before is not None:
        query = query.where(approval < f.approved_before)
    if f.approved_after is not None:
        query = query.where(approval > f.approved_after)
    if f.missing_information:
        query = query.where(
            or_(BudgetModification.object.is_(None), BudgetModification.object == ""),
            or_(BudgetModification.description.is_(None), BudgetModification.description == ""),
        )
    return query


async def list_budget_modifications(
    db: AsyncSession,
    filters: BudgetModificationFilters | None = None,
    *,
    clock: Clock = system_clock,
    order: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[BudgetModification], int]:
    query = _filtered_query(filters, clock.today())
    total = await count_of(db, query)
    order_clause = parse_order(
        order,
        {
            "id": BudgetModification.id,
            "approval_date": BudgetModification.approval_date,
            "object": BudgetModification.object,
            "created_at": BudgetModification.created_at,
        },
        BudgetModification.id.desc(),
    )
    result = await db.execute(query.order_by(order_clause).offset(max(offset, 0)).limit(clamp_limit(limit)))
    return result.scalars().all(), total


async def count_budget_modifications(
    db: AsyncSession, filters: BudgetModificationFilters | None = None, *, clock: Clock = system_clock
) -> int:
    return await count_of(db, _filtered_query(filters, clock.today()))


async def modification_counts(db: AsyncSession, *, clock: Clock = system_clock) -> BudgetModificationCounts:
    today = clock.today()
    result = await db.execute(select(BudgetModification.approval_date))
    dates = result.scalars().all()
    states = Counter(approval_state(value, today) for value in dates)
    years = Counter(value.year for value in dates if value is not None)
    return BudgetModificationCounts(
        total=len(dates),
        pending=states[ApprovalState.PENDING],
        scheduled=states[ApprovalState.SCHEDULED],
        approved=states[ApprovalState.APPROVED],
        by_year=dict(sorted(years.items())),
    )
