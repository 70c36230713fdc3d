from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BudgetModification(Base):
    __tablename__ = "budget_modifications"
    # Index unique : c'est lui qui tranche quand deux creations concurrentes passent le pre-controle.
    # Les NULL etant distincts, plusieurs modifications en attente par demande restent possibles.
    __table_args__ = (
        UniqueConstraint("approval_date", "demande_id", name="uq_budget_modifications_approval_demande"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    object: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    approval_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    demande_id: Mapped[int] = mapped_column(
        ForeignKey("documents.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    response_id: Mapped[int | None] = mapped_column(
        ForeignKey("documents.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
