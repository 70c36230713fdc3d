from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Paging, get_actor, get_db
from app.schemas.common import CountResponse, ExistsResponse, Page
from app.schemas.financial_operation import (
    BudgetTypeCreate,
    BudgetTypeOut,
    BudgetTypeUpdate,
    FinancialOperationCreate,
    FinancialOperationOut,
    FinancialOperationUpdate,
)
from app.services import financial_operation_service as service

router = APIRouter(dependencies=[Depends(get_actor)])


@router.get("/budget-types", response_model=list[BudgetTypeOut])
async def list_budget_types(db: AsyncSession = Depends(get_db)) -> list[BudgetTypeOut]:
    return [BudgetTypeOut.model_validate(t) for t in await service.list_budget_types(db)]


@router.get("/budget-types/{budget_type_id}", response_model=BudgetTypeOut)
async def get_budget_type(budget_type_id: int, db: AsyncSession = Depends(get_db)) -> BudgetTypeOut:
    return BudgetTypeOut.model_validate(await service.get_budget_type(db, budget_type_id))


@router.post("/budget-types", response_model=BudgetTypeOut, status_code=status.HTTP_201_CREATED)
async def create_budget_type(payload: BudgetTypeCreate, db: AsyncSession = Depends(get_db)) -> BudgetTypeOut:
    return BudgetTypeOut.model_validate(await service.create_budget_type(db, payload))


@router.put("/budget-types/{budget_type_id}", response_model=BudgetTypeOut)
async def update_budget_type(
    budget_type_id: int, payload: BudgetTypeUpdate, db: AsyncSession = Depends(get_db)
) -> BudgetTypeOut:
    return BudgetTypeOut.model_validate(await service.update_budget_type(db, budget_type_id, payload))


@router.delete("/budget-types/{budget_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget_type(budget_type_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await service.delete_budget_type(db, budget_type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/financial-operations", response_model=Page[FinancialOperationOut])
async def list_financial_operations(
    search: str | None = Query(default=None),
    budget_year: int | None = Query(default=None),
    budget_type_id: int | None = Query(default=None),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[FinancialOperationOut]:
    rows, total = await service.list_financial_operations(
        db,
        search=search,
        budget_year=budget_year,
        budget_type_id=budget_type_id,
        order=paging.order,
        limit=paging.limit,
        offset=paging.offset,
    )
    return Page[FinancialOperationOut](
        items=[FinancialOperationOut.model_validate(r) for r in rows],
        total=total,
        limit=paging.limit,
        offset=paging.offset,
    )


@router.get("/financial-operations/years", response_model=list[int])
async def list_budget_years(db: AsyncSession = Depends(get_db)) -> list[int]:
    return await service.list_budget_years(db)


@router.get("/financial-operations/count", response_model=CountResponse)
async def count_financial_operations(
    budget_year: int | None = Query(default=None), db: AsyncSession = Depends(get_db)
) -> CountResponse:
    return CountResponse(count=await service.count_financial_operations(db, budget_year))


@router.get("/financial-operations/{operation_id}", response_model=FinancialOperationOut)
async def get_financial_operation(operation_id: int, db: AsyncSession = Depends(get_db)) -> FinancialOperationOut:
    return FinancialOperationOut.model_validate(await service.get_financial_operation(db, operation_id))


@router.get("/financial-operations/{operation_id}/exists", response_model=ExistsResponse)
async def financial_operation_exists(operation_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await service.financial_operation_exists(db, operation_id))


@router.post("/financial-operations", response_model=FinancialOperationOut, status_code=status.HTTP_201_CREATED)
async def create_financial_operation(
    payload: FinancialOperationCreate, db: AsyncSession = Depends(get_db)
) -> FinancialOperationOut:
    return FinancialOperationOut.model_validate(await service.create_financial_operation(db, payload))


@router.put("/financial-operations/{operation_id}", response_model=FinancialOperationOut)
async def update_financial_operation(
    operation_id: int, payload: FinancialOperationUpdate, db: AsyncSession = Depends(get_db)
) -> FinancialOperationOut:
    return FinancialOperationOut.model_validate(await service.update_financial_operation(db, operation_id, payload))


@router.delete("/financial-operations/{operation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_financial_operation(operation_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await service.delete_financial_operation(db, operation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
