from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog
from app.services.persistence import clamp_limit, count_of


def _audit_query(
    *,
    entity_type: str | None,
    entity_id: str | None,
    field_name: str | None,
    actor: str | None,
    date_from: datetime | None,
    date_to: datetime | None,
):
    query = select(AuditLog)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)
    if field_name:
        query = query.where(AuditLog.field_name == field_name)
    if actor:
        query = query.where(AuditLog.actor == actor)
    if date_from:
        query = query.where(AuditLog.created_at >= date_from)
    if date_to:
        query = query.where(AuditLog.created_at <= date_to)
    return query


async def list_audit_logs(
    db: AsyncSession,
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    field_name: str | None = None,
    actor: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[Sequence[AuditLog], int]:
    query = _audit_query(
        entity_type=entity_type,
        entity_id=entity_id,
        field_name=field_name,
        actor=actor,
        date_from=date_from,
        date_to=date_to,
    )
    total = await count_of(db, query)
    result = await db.execute(
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(max(offset, 0)).limit(clamp_limit(limit))
    )
    return result.scalars().all(), total


async def planned_item_history(db: AsyncSession, planned_item_id: int) -> Sequence[AuditLog]:
    result = await db.execute(
        select(AuditLog)
        .where(AuditLog.entity_type == "planned_item", AuditLog.entity_id == str(planned_item_id))
        .order_by(AuditLog.id)
    )
    return result.scalars().all()
