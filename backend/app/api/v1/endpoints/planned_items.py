from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Paging, get_actor, get_db
from app.schemas.common import CountResponse, ExistsResponse, Page
from app.schemas.item_distribution import PlannedItemDistributionSummary
from app.schemas.planned_item import (
    PlannedItemCreate,
    PlannedItemFilters,
    PlannedItemOut,
    PlannedItemStatistics,
    PlannedItemUpdate,
)
from app.services import item_distribution_service, planned_item_service

router = APIRouter(dependencies=[Depends(get_actor)])
logger = logging.getLogger("budget_plan_api.planned_items")


@router.get("", response_model=Page[PlannedItemOut])
async def list_planned_items(
    filters: PlannedItemFilters = Depends(),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[PlannedItemOut]:
    rows, total = await planned_item_service.list_planned_items(
        db, filters, order=paging.order, limit=paging.limit, offset=paging.offset
    )
    logger.info("planned items list result count=%s total=%s", len(rows), total)
    return Page[PlannedItemOut](
        items=await planned_item_service.describe_many(db, rows),
        total=total,
        limit=paging.limit,
        offset=paging.offset,
    )


@router.get("/count", response_model=CountResponse)
async def count_planned_items(
    filters: PlannedItemFilters = Depends(), db: AsyncSession = Depends(get_db)
) -> CountResponse:
    return CountResponse(count=await planned_item_service.count_planned_items(db, filters))


@router.get("/statistics", response_model=PlannedItemStatistics)
async def planned_item_statistics(
    filters: PlannedItemFilters = Depends(), db: AsyncSession = Depends(get_db)
) -> PlannedItemStatistics:
    return await planned_item_service.ledger_statistics(db, filters)


@router.get("/{planned_item_id}", response_model=PlannedItemOut)
async def get_planned_item(planned_item_id: int, db: AsyncSession = Depends(get_db)) -> PlannedItemOut:
    return await planned_item_service.get_planned_item_view(db, planned_item_id)


@router.get("/{planned_item_id}/exists", response_model=ExistsResponse)
async def planned_item_exists(planned_item_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await planned_item_service.planned_item_exists(db, planned_item_id))


@router.get("/{planned_item_id}/distribution-summary", response_model=PlannedItemDistributionSummary)
async def planned_item_distribution_summary(
    planned_item_id: int, db: AsyncSession = Depends(get_db)
) -> PlannedItemDistributionSummary:
    return await item_distribution_service.planned_item_summary(db, planned_item_id)


@router.post("", response_model=PlannedItemOut, status_code=status.HTTP_201_CREATED)
async def create_planned_item(payload: PlannedItemCreate, db: AsyncSession = Depends(get_db)) -> PlannedItemOut:
    planned_item = await planned_item_service.create_planned_item(db, payload)
    return planned_item_service.describe_planned_item(planned_item)


@router.put("/{planned_item_id}", response_model=PlannedItemOut)
async def update_planned_item(
    planned_item_id: int, payload: PlannedItemUpdate, db: AsyncSession = Depends(get_db)
) -> PlannedItemOut:
    await planned_item_service.update_planned_item(db, planned_item_id, payload)
    return await planned_item_service.get_planned_item_view(db, planned_item_id)


@router.put("/{planned_item_id}/budget-modification/{modification_id}", response_model=PlannedItemOut)
async def link_budget_modification(
    planned_item_id: int, modification_id: int, db: AsyncSession = Depends(get_db)
) -> PlannedItemOut:
    await planned_item_service.link_budget_modification(db, planned_item_id, modification_id)
    return await planned_item_service.get_planned_item_view(db, planned_item_id)


@router.delete("/{planned_item_id}/budget-modification", response_model=PlannedItemOut)
async def unlink_budget_modification(planned_item_id: int, db: AsyncSession = Depends(get_db)) -> PlannedItemOut:
    await planned_item_service.unlink_budget_modification(db, planned_item_id)
    return await planned_item_service.get_planned_item_view(db, planned_item_id)


@router.delete("/{planned_item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_planned_item(planned_item_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await planned_item_service.delete_planned_item(db, planned_item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
