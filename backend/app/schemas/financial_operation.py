from __future__ import annotations

from pydantic import Field

from app.schemas.base import DecimalBaseModel, OrmModel
from app.schemas.catalog import DesignationFields


class BudgetTypeCreate(DesignationFields):
    acronym_ar: str | None = Field(default=None, max_length=20)
    acronym_en: str | None = Field(default=None, max_length=20)
    acronym_fr: str | None = Field(default=None, max_length=20)


class BudgetTypeUpdate(BudgetTypeCreate):
    pass


class BudgetTypeOut(OrmModel):
    id: int
    designation_ar: str | None = None
    designation_en: str | None = None
    designation_fr: str
    acronym_ar: str | None = None
    acronym_en: str | None = None
    acronym_fr: str


class FinancialOperationCreate(DecimalBaseModel):
    operation: str | None = Field(default=None, max_length=200)
    budget_year: int | None = None
    budget_type_id: int | None = None


class FinancialOperationUpdate(FinancialOperationCreate):
    pass


class FinancialOperationOut(OrmModel):
    id: int
    operation: str
    budget_year: int
    budget_type_id: int
