from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Paging, get_actor, get_clock, get_db
from app.core.clock import Clock
from app.schemas.budget_modification import (
    BudgetModificationCounts,
    BudgetModificationCreate,
    BudgetModificationFilters,
    BudgetModificationOut,
    BudgetModificationUpdate,
)
from app.schemas.common import CountResponse, ExistsResponse, Page
from app.services import budget_modification_service as service

router = APIRouter(dependencies=[Depends(get_actor)])


@router.get("", response_model=Page[BudgetModificationOut])
async def list_budget_modifications(
    filters: BudgetModificationFilters = Depends(),
    paging: Paging = Depends(),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> Page[BudgetModificationOut]:
    rows, total = await service.list_budget_modifications(
        db, filters, clock=clock, order=paging.order, limit=paging.limit, offset=paging.offset
    )
    return Page[BudgetModificationOut](
        items=[service.describe_modification(r, clock) for r in rows],
        total=total,
        limit=paging.limit,
        offset=paging.offset,
    )


@router.get("/count", response_model=CountResponse)
async def count_budget_modifications(
    filters: BudgetModificationFilters = Depends(),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> CountResponse:
    return CountResponse(count=await service.count_budget_modifications(db, filters, clock=clock))


@router.get("/counts", response_model=BudgetModificationCounts)
async def modification_counts(
    clock: Clock = Depends(get_clock), db: AsyncSession = Depends(get_db)
) -> BudgetModificationCounts:
    return await service.modification_counts(db, clock=clock)


@router.get("/{modification_id}", response_model=BudgetModificationOut)
async def get_budget_modification(
    modification_id: int, clock: Clock = Depends(get_clock), db: AsyncSession = Depends(get_db)
) -> BudgetModificationOut:
    return service.describe_modification(await service.get_budget_modification(db, modification_id), clock)


@router.get("/{modification_id}/exists", response_model=ExistsResponse)
async def budget_modification_exists(modification_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await service.budget_modification_exists(db, modification_id))


@router.post("", response_model=BudgetModificationOut, status_code=status.HTTP_201_CREATED)
async def create_budget_modification(
    payload: BudgetModificationCreate, clock: Clock = Depends(get_clock), db: AsyncSession = Depends(get_db)
) -> BudgetModificationOut:
    modification = await service.create_budget_modification(db, payload, clock=clock)
    return service.describe_modification(modification, clock)


@router.put("/{modification_id}", response_model=BudgetModificationOut)
async def update_budget_modification(
    modification_id: int,
    payload: BudgetModificationUpdate,
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> BudgetModificationOut:
    modification = await service.update_budget_modification(db, modification_id, payload, clock=clock)
    return service.describe_modification(modification, clock)


@router.post("/{modification_id}/approve", response_model=BudgetModificationOut)
async def approve_budget_modification(
    modification_id: int,
    approval_date: date = Body(embed=True),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
) -> BudgetModificationOut:
    modification = await service.approve(db, modification_id, approval_date, clock=clock)
    return service.describe_modification(modification, clock)


@router.delete("/{modification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget_modification(modification_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await service.delete_budget_modification(db, modification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
