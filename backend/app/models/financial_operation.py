from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BudgetType(Base):
    __tablename__ = "budget_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    designation_ar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_en: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_fr: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    acronym_ar: Mapped[str | None] = mapped_column(String(20), nullable=True)
    acronym_en: Mapped[str | None] = mapped_column(String(20), nullable=True)
    acronym_fr: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)


class FinancialOperation(Base):
    __tablename__ = "financial_operations"
    __table_args__ = (
        CheckConstraint("budget_year BETWEEN 1900 AND 2200", name="budget_year_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    operation: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    budget_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    budget_type_id: Mapped[int] = mapped_column(
        ForeignKey("budget_types.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
