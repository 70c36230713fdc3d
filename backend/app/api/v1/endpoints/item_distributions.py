from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Paging, get_actor, get_db
from app.schemas.common import CountResponse, ExistsResponse, Page
from app.schemas.item_distribution import (
    CoordinationEntry,
    DistributionStatistics,
    ItemDistributionCreate,
    ItemDistributionFilters,
    ItemDistributionOut,
    ItemDistributionUpdate,
    OverDistributionEntry,
    StructureDistributionSummary,
)
from app.services import item_distribution_service as service

router = APIRouter(dependencies=[Depends(get_actor)])


@router.get("", response_model=Page[ItemDistributionOut])
async def list_distributions(
    filters: ItemDistributionFilters = Depends(),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[ItemDistributionOut]:
    rows, total = await service.list_distributions(
        db, filters, order=paging.order, limit=paging.limit, offset=paging.offset
    )
    return Page[ItemDistributionOut](
        items=await service.describe_many(db, rows), total=total, limit=paging.limit, offset=paging.offset
    )


@router.get("/count", response_model=CountResponse)
async def count_distributions(
    filters: ItemDistributionFilters = Depends(), db: AsyncSession = Depends(get_db)
) -> CountResponse:
    return CountResponse(count=await service.count_distributions(db, filters))


@router.get("/by-ancestor/{structure_id}", response_model=Page[ItemDistributionOut])
async def list_by_organizational_ancestor(
    structure_id: int, paging: Paging = Depends(), db: AsyncSession = Depends(get_db)
) -> Page[ItemDistributionOut]:
    rows, total = await service.list_by_organizational_ancestor(
        db, structure_id, order=paging.order, limit=paging.limit, offset=paging.offset
    )
    return Page[ItemDistributionOut](
        items=await service.describe_many(db, rows), total=total, limit=paging.limit, offset=paging.offset
    )


@router.get("/reports/coordination", response_model=list[CoordinationEntry])
async def coordination_report(
    filters: ItemDistributionFilters = Depends(), db: AsyncSession = Depends(get_db)
) -> list[CoordinationEntry]:
    return await service.coordination_report(db, filters)


@router.get("/reports/over-distribution", response_model=list[OverDistributionEntry])
async def over_distribution_report(db: AsyncSession = Depends(get_db)) -> list[OverDistributionEntry]:
    return await service.over_distribution_report(db)


@router.get("/reports/by-structure", response_model=list[StructureDistributionSummary])
async def structure_report(
    filters: ItemDistributionFilters = Depends(), db: AsyncSession = Depends(get_db)
) -> list[StructureDistributionSummary]:
    return await service.structure_report(db, filters)


@router.get("/statistics", response_model=DistributionStatistics)
async def distribution_statistics(
    filters: ItemDistributionFilters = Depends(), db: AsyncSession = Depends(get_db)
) -> DistributionStatistics:
    return await service.distribution_statistics(db, filters)


@router.get("/{distribution_id}", response_model=ItemDistributionOut)
async def get_distribution(distribution_id: int, db: AsyncSession = Depends(get_db)) -> ItemDistributionOut:
    return await service.get_distribution_view(db, distribution_id)


@router.get("/{distribution_id}/exists", response_model=ExistsResponse)
async def distribution_exists(distribution_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await service.distribution_exists(db, distribution_id))


@router.post("", response_model=ItemDistributionOut, status_code=status.HTTP_201_CREATED)
async def allocate(payload: ItemDistributionCreate, db: AsyncSession = Depends(get_db)) -> ItemDistributionOut:
    distribution = await service.allocate(db, payload)
    return await service.get_distribution_view(db, distribution.id)


@router.put("/{distribution_id}", response_model=ItemDistributionOut)
async def update_distribution(
    distribution_id: int, payload: ItemDistributionUpdate, db: AsyncSession = Depends(get_db)
) -> ItemDistributionOut:
    await service.update_distribution(db, distribution_id, payload)
    return await service.get_distribution_view(db, distribution_id)


@router.delete("/{distribution_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_distribution(distribution_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await service.delete_distribution(db, distribution_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
