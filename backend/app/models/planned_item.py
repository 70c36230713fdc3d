from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlannedItem(Base):
    """Ligne de planification. Cout total, ecart et categories sont recalcules a la lecture."""

    __tablename__ = "planned_items"
    __table_args__ = (
        CheckConstraint("unit_cost >= 0", name="unit_cost_nonneg"),
        CheckConstraint("planned_quantity >= 0", name="planned_quantity_nonneg"),
        CheckConstraint("allocated_amount >= 0", name="allocated_amount_nonneg"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    designation: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    unit_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)
    planned_quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False, default=0)
    allocated_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)

    item_status_id: Mapped[int] = mapped_column(
        ForeignKey("item_statuses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    financial_operation_id: Mapped[int] = mapped_column(
        ForeignKey("financial_operations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    budget_modification_id: Mapped[int | None] = mapped_column(
        ForeignKey("budget_modifications.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
