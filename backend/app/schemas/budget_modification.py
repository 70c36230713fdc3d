from __future__ import annotations

from datetime import date

from pydantic import Field

from app.schemas.base import DecimalBaseModel


class BudgetModificationCreate(DecimalBaseModel):
    object: str | None = None
    description: str | None = None
    approval_date: date | None = None
    demande_id: int | None = None
    response_id: int | None = None


class BudgetModificationUpdate(BudgetModificationCreate):
    pass


class BudgetModificationFilters(DecimalBaseModel):
    search: str | None = None
    demande_id: int | None = None
    response_id: int | None = None
    state: str | None = None
    approved_from: date | None = None
    approved_to: date | None = None
    year: int | None = None
    current_year: bool = False
    current_month: bool = False
    recent: bool = False
    approved_before: date | None = None
    approved_after: date | None = None
    missing_information: bool = False


class BudgetModificationOut(DecimalBaseModel):
    id: int
    object: str | None = None
    description: str | None = None
    approval_date: date | None = None
    demande_id: int
    response_id: int | None = None
    state: str
    is_pending: bool
    is_scheduled: bool
    is_approved: bool
    days_to_approval: int | None = None


class BudgetModificationCounts(DecimalBaseModel):
    total: int = 0
    pending: int = 0
    scheduled: int = 0
    approved: int = 0
    by_year: dict[int, int] = Field(default_factory=dict)
