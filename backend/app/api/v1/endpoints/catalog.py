from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Paging, get_actor, get_db
from app.schemas.catalog import (
    DomainCreate,
    DomainOut,
    DomainUpdate,
    ItemCreate,
    ItemOut,
    ItemStatusCreate,
    ItemStatusOut,
    ItemStatusUpdate,
    ItemUpdate,
    RubricCreate,
    RubricOut,
    RubricUpdate,
)
from app.schemas.common import CountResponse, ExistsResponse, Page
from app.services import catalog_service

router = APIRouter(dependencies=[Depends(get_actor)])


# Domaines

@router.get("/domains", response_model=Page[DomainOut])
async def list_domains(
    search: str | None = Query(default=None),
    has_rubrics: bool | None = Query(default=None),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[DomainOut]:
    rows, total = await catalog_service.list_domains(
        db, search=search, has_rubrics=has_rubrics, order=paging.order, limit=paging.limit, offset=paging.offset
    )
    return Page[DomainOut](
        items=[DomainOut.model_validate(r) for r in rows], total=total, limit=paging.limit, offset=paging.offset
    )


@router.get("/domains/count", response_model=CountResponse)
async def count_domains(db: AsyncSession = Depends(get_db)) -> CountResponse:
    return CountResponse(count=await catalog_service.count_domains(db))


@router.get("/domains/{domain_id}", response_model=DomainOut)
async def get_domain(domain_id: int, db: AsyncSession = Depends(get_db)) -> DomainOut:
    return DomainOut.model_validate(await catalog_service.get_domain(db, domain_id))


@router.get("/domains/{domain_id}/exists", response_model=ExistsResponse)
async def domain_exists(domain_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await catalog_service.domain_exists(db, domain_id))


@router.post("/domains", response_model=DomainOut, status_code=status.HTTP_201_CREATED)
async def create_domain(payload: DomainCreate, db: AsyncSession = Depends(get_db)) -> DomainOut:
    return DomainOut.model_validate(await catalog_service.create_domain(db, payload))


@router.put("/domains/{domain_id}", response_model=DomainOut)
async def update_domain(domain_id: int, payload: DomainUpdate, db: AsyncSession = Depends(get_db)) -> DomainOut:
    return DomainOut.model_validate(await catalog_service.update_domain(db, domain_id, payload))


@router.delete("/domains/{domain_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_domain(domain_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await catalog_service.delete_domain(db, domain_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Rubriques

@router.get("/rubrics", response_model=Page[RubricOut])
async def list_rubrics(
    search: str | None = Query(default=None),
    domain_id: int | None = Query(default=None),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[RubricOut]:
    rows, total = await catalog_service.list_rubrics(
        db, search=search, domain_id=domain_id, order=paging.order, limit=paging.limit, offset=paging.offset
    )
    return Page[RubricOut](
        items=[RubricOut.model_validate(r) for r in rows], total=total, limit=paging.limit, offset=paging.offset
    )


@router.get("/rubrics/count", response_model=CountResponse)
async def count_rubrics(domain_id: int | None = Query(default=None), db: AsyncSession = Depends(get_db)) -> CountResponse:
    return CountResponse(count=await catalog_service.count_rubrics(db, domain_id))


@router.get("/rubrics/{rubric_id}", response_model=RubricOut)
async def get_rubric(rubric_id: int, db: AsyncSession = Depends(get_db)) -> RubricOut:
    return RubricOut.model_validate(await catalog_service.get_rubric(db, rubric_id))


@router.get("/rubrics/{rubric_id}/exists", response_model=ExistsResponse)
async def rubric_exists(rubric_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await catalog_service.rubric_exists(db, rubric_id))


@router.post("/rubrics", response_model=RubricOut, status_code=status.HTTP_201_CREATED)
async def create_rubric(payload: RubricCreate, db: AsyncSession = Depends(get_db)) -> RubricOut:
    return RubricOut.model_validate(await catalog_service.create_rubric(db, payload))


@router.put("/rubrics/{rubric_id}", response_model=RubricOut)
async def update_rubric(rubric_id: int, payload: RubricUpdate, db: AsyncSession = Depends(get_db)) -> RubricOut:
    return RubricOut.model_validate(await catalog_service.update_rubric(db, rubric_id, payload))


@router.delete("/rubrics/{rubric_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rubric(rubric_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await catalog_service.delete_rubric(db, rubric_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Articles

@router.get("/items", response_model=Page[ItemOut])
async def list_items(
    search: str | None = Query(default=None),
    rubric_id: int | None = Query(default=None),
    domain_id: int | None = Query(default=None),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[ItemOut]:
    rows, total = await catalog_service.list_items(
        db,
        search=search,
        rubric_id=rubric_id,
        domain_id=domain_id,
        order=paging.order,
        limit=paging.limit,
        offset=paging.offset,
    )
    return Page[ItemOut](items=[ItemOut.model_validate(r) for r in rows], total=total, limit=paging.limit, offset=paging.offset)


@router.get("/items/count", response_model=CountResponse)
async def count_items(rubric_id: int | None = Query(default=None), db: AsyncSession = Depends(get_db)) -> CountResponse:
    return CountResponse(count=await catalog_service.count_items(db, rubric_id))


@router.get("/items/{item_id}", response_model=ItemOut)
async def get_item(item_id: int, db: AsyncSession = Depends(get_db)) -> ItemOut:
    return ItemOut.model_validate(await catalog_service.get_item(db, item_id))


@router.get("/items/{item_id}/exists", response_model=ExistsResponse)
async def item_exists(item_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await catalog_service.item_exists(db, item_id))


@router.post("/items", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
async def create_item(payload: ItemCreate, db: AsyncSession = Depends(get_db)) -> ItemOut:
    return ItemOut.model_validate(await catalog_service.create_item(db, payload))


@router.put("/items/{item_id}", response_model=ItemOut)
async def update_item(item_id: int, payload: ItemUpdate, db: AsyncSession = Depends(get_db)) -> ItemOut:
    return ItemOut.model_validate(await catalog_service.update_item(db, item_id, payload))


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await catalog_service.delete_item(db, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Statuts d'article

@router.get("/item-statuses", response_model=Page[ItemStatusOut])
async def list_item_statuses(
    search: str | None = Query(default=None),
    paging: Paging = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Page[ItemStatusOut]:
    rows, total = await catalog_service.list_item_statuses(
        db, search=search, order=paging.order, limit=paging.limit, offset=paging.offset
    )
    return Page[ItemStatusOut](
        items=[ItemStatusOut.model_validate(r) for r in rows], total=total, limit=paging.limit, offset=paging.offset
    )


@router.get("/item-statuses/count", response_model=CountResponse)
async def count_item_statuses(db: AsyncSession = Depends(get_db)) -> CountResponse:
    return CountResponse(count=await catalog_service.count_item_statuses(db))


@router.get("/item-statuses/{status_id}", response_model=ItemStatusOut)
async def get_item_status(status_id: int, db: AsyncSession = Depends(get_db)) -> ItemStatusOut:
    return ItemStatusOut.model_validate(await catalog_service.get_item_status(db, status_id))


@router.get("/item-statuses/{status_id}/exists", response_model=ExistsResponse)
async def item_status_exists(status_id: int, db: AsyncSession = Depends(get_db)) -> ExistsResponse:
    return ExistsResponse(exists=await catalog_service.item_status_exists(db, status_id))


@router.post("/item-statuses", response_model=ItemStatusOut, status_code=status.HTTP_201_CREATED)
async def create_item_status(payload: ItemStatusCreate, db: AsyncSession = Depends(get_db)) -> ItemStatusOut:
    return ItemStatusOut.model_validate(await catalog_service.create_item_status(db, payload))


@router.put("/item-statuses/{status_id}", response_model=ItemStatusOut)
async def update_item_status(
    status_id: int, payload: ItemStatusUpdate, db: AsyncSession = Depends(get_db)
) -> ItemStatusOut:
    return ItemStatusOut.model_validate(await catalog_service.update_item_status(db, status_id, payload))


@router.delete("/item-statuses/{status_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item_status(status_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await catalog_service.delete_item_status(db, status_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
