from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.schemas.reference import DocumentCreate, DocumentOut, StructureCreate, StructureOut
from app.services import reference_service

router = APIRouter()


@router.post("/structures", response_model=StructureOut, status_code=status.HTTP_201_CREATED)
async def create_structure(payload: StructureCreate, db: AsyncSession = Depends(get_db)) -> StructureOut:
    return StructureOut.model_validate(await reference_service.create_structure(db, payload))


@router.get("/structures/{structure_id}", response_model=StructureOut)
async def get_structure(structure_id: int, db: AsyncSession = Depends(get_db)) -> StructureOut:
    return StructureOut.model_validate(await reference_service.get_structure(db, structure_id))


@router.get("/structures/{structure_id}/children", response_model=list[StructureOut])
async def list_child_structures(structure_id: int, db: AsyncSession = Depends(get_db)) -> list[StructureOut]:
    await reference_service.get_structure(db, structure_id)
    return [StructureOut.model_validate(s) for s in await reference_service.list_child_structures(db, structure_id)]


@router.post("/documents", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
async def create_document(payload: DocumentCreate, db: AsyncSession = Depends(get_db)) -> DocumentOut:
    return DocumentOut.model_validate(await reference_service.create_document(db, payload))


@router.get("/documents/{document_id}", response_model=DocumentOut)
async def get_document(document_id: int, db: AsyncSession = Depends(get_db)) -> DocumentOut:
    return DocumentOut.model_validate(await reference_service.get_document(db, document_id))
