from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ItemDistribution(Base):
    # Pas d'unicite sur (planned_item_id, structure_id) : plusieurs repartitions par couple sont admises.
    __tablename__ = "item_distributions"
    __table_args__ = (CheckConstraint("quantity >= 0", name="quantity_nonneg"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False, default=0)
    planned_item_id: Mapped[int] = mapped_column(
        ForeignKey("planned_items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    structure_id: Mapped[int] = mapped_column(
        ForeignKey("structures.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
