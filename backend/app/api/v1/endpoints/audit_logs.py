from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Paging, get_db
from app.schemas.audit import AuditLogOut
from app.schemas.common import Page
from app.services import audit_service, planned_item_service

router = APIRouter()


@router.get("", response_model=Page[AuditLogOut])
async def list_audit_logs(
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    field_name: str | None = Query(default=None),
    actor: str | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[AuditLogOut]:
    rows, total = await audit_service.list_audit_logs(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        field_name=field_name,
        actor=actor,
        date_from=date_from,
        date_to=date_to,
        limit=paging.limit,
        offset=paging.offset,
    )
    return Page[AuditLogOut](
        items=[AuditLogOut.model_validate(r) for r in rows], total=total, limit=paging.limit, offset=paging.offset
    )


@router.get("/planned-items/{planned_item_id}", response_model=list[AuditLogOut])
async def planned_item_history(planned_item_id: int, db: AsyncSession = Depends(get_db)) -> list[AuditLogOut]:
    await planned_item_service.get_planned_item(db, planned_item_id)
    return [AuditLogOut.model_validate(r) for r in await audit_service.planned_item_history(db, planned_item_id)]
