from __future__ import annotations

from pydantic import Field

from app.schemas.base import DecimalBaseModel, OrmModel


class StructureCreate(DecimalBaseModel):
    code: str = Field(max_length=50)
    designation_fr: str = Field(max_length=200)
    parent_id: int | None = None


class StructureOut(OrmModel):
    id: int
    code: str
    designation_fr: str
    parent_id: int | None = None


class DocumentCreate(DecimalBaseModel):
    reference: str = Field(max_length=100)
    title: str | None = Field(default=None, max_length=255)


class DocumentOut(OrmModel):
    id: int
    reference: str
    title: str | None = None
