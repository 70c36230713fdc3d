from __future__ import annotations

from pydantic import Field

from app.schemas.base import DecimalBaseModel, OrmModel


class DesignationFields(DecimalBaseModel):
    designation_ar: str | None = Field(default=None, max_length=200)
    designation_en: str | None = Field(default=None, max_length=200)
    designation_fr: str | None = Field(default=None, max_length=200)


class DomainCreate(DesignationFields):
    pass


class DomainUpdate(DesignationFields):
    pass


class DomainOut(OrmModel):
    id: int
    designation_ar: str | None = None
    designation_en: str | None = None
    designation_fr: str


class RubricCreate(DesignationFields):
    domain_id: int | None = None


class RubricUpdate(DesignationFields):
    domain_id: int | None = None


class RubricOut(OrmModel):
    id: int
    designation_ar: str | None = None
    designation_en: str | None = None
    designation_fr: str
    domain_id: int


class ItemCreate(DesignationFields):
    rubric_id: int | None = None


class ItemUpdate(DesignationFields):
    rubric_id: int | None = None


class ItemOut(OrmModel):
    id: int
    designation_ar: str | None = None
    designation_en: str | None = None
    designation_fr: str
    rubric_id: int


class ItemStatusCreate(DesignationFields):
    pass


class ItemStatusUpdate(DesignationFields):
    pass


class ItemStatusOut(OrmModel):
    id: int
    designation_ar: str | None = None
    designation_en: str | None = None
    designation_fr: str
