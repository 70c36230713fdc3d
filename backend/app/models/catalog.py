from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Domain(Base):
    __tablename__ = "domains"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    designation_ar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_en: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_fr: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Rubric(Base):
    __tablename__ = "rubrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    designation_ar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_en: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_fr: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    # Pas de cascade : un domaine ne se supprime pas tant qu'il a des rubriques.
    domain_id: Mapped[int] = mapped_column(
        ForeignKey("domains.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Item(Base):
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    designation_ar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_en: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation_fr: Mapped[str] = mapped_column(String(200), nullable=False)
    rubric_id: Mapped[int] = mapped_column(
        ForeignKey("rubrics.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ItemStatus(Base):
    __tablename__ = "item_statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    designation_ar: Mapped[str | None] = mapped_column(String(100), nullable=True)
    designation_en: Mapped[str | None] = mapped_column(String(100), nullable=True)
    designation_fr: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
