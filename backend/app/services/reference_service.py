"""Structures and documents.

Both are owned by other modules of the platform; planning only needs lookups, the
structure subtree (for listing distributions under an ancestor) and enough create
operations to seed them.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import UniquenessViolation
from app.models.document import Document
from app.models.structure import Structure
from app.schemas.reference import DocumentCreate, StructureCreate
from app.services.persistence import commit_or_translate, get_or_not_found, resolve_reference, row_exists


async def create_structure(db: AsyncSession, payload: StructureCreate) -> Structure:
    if payload.parent_id is not None:
        await resolve_reference(db, Structure, payload.parent_id, "Structure parente")
    structure = Structure(code=payload.code.strip(), designation_fr=payload.designation_fr.strip(), parent_id=payload.parent_id)
    db.add(structure)
    await commit_or_translate(db, unique_message=f"Le code structure '{payload.code}' existe deja")
    await db.refresh(structure)
    return structure


async def get_structure(db: AsyncSession, structure_id: int) -> Structure:
    return await get_or_not_found(db, Structure, structure_id, "Structure")


async def list_child_structures(db: AsyncSession, parent_id: int) -> Sequence[Structure]:
    result = await db.execute(select(Structure).where(Structure.parent_id == parent_id).order_by(Structure.code))
    return result.scalars().all()


def subtree_ids_query(root_id: int):
    """Recursive CTE selecting ``root_id`` and the ids of every structure below it."""
    tree = select(Structure.id).where(Structure.id == root_id).cte(name="structure_tree", recursive=True)
    tree = tree.union_all(select(Structure.id).where(Structure.parent_id == tree.c.id))
    return select(tree.c.id)


async def subtree_ids(db: AsyncSession, root_id: int) -> list[int]:
    result = await db.execute(subtree_ids_query(root_id))
    return [row[0] for row in result.all()]


async def create_document(db: AsyncSession, payload: DocumentCreate) -> Document:
    reference = payload.reference.strip()
    existing = await db.execute(select(Document.id).where(Document.reference == reference))
    if existing.scalar_one_or_none() is not None:
        raise UniquenessViolation(f"Le document '{reference}' existe deja")
    document = Document(reference=reference, title=payload.title)
    db.add(document)
    await commit_or_translate(db, unique_message=f"Le document '{reference}' existe deja")
    await db.refresh(document)
    return document


async def get_document(db: AsyncSession, document_id: int) -> Document:
    return await get_or_not_found(db, Document, document_id, "Document")


async def document_exists(db: AsyncSession, document_id: int) -> bool:
    return await row_exists(db, Document, document_id)
