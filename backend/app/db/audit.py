from __future__ import annotations

from decimal import Decimal

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from app.core.audit_context import get_audit_actor
from app.models.audit_log import AuditLog
from app.models.planned_item import PlannedItem

# Champs de PlannedItem dont chaque modification est tracee.
PLANNED_ITEM_AUDITED_FIELDS = ("unit_cost", "planned_quantity", "allocated_amount", "budget_modification_id")


def _to_jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def _add_log(session: Session, *, entity_type: str, entity_id: str, action: str, field_name: str | None, old, new) -> None:
    session.add(
        AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            field_name=field_name,
            old_value=_to_jsonable(old),
            new_value=_to_jsonable(new),
            actor=get_audit_actor(),
        )
    )


def _same_number(old, new) -> bool:
    # Numeric renvoie Decimal("10.00") quand on a ecrit 10 : pas un changement.
    if old is None or new is None:
        return old is new
    try:
        return Decimal(str(old)) == Decimal(str(new))
    except ArithmeticError:
        return False


@event.listens_for(Session, "after_flush")
def audit_after_flush(session: Session, _flush_context) -> None:
    for obj in session.new:
        if isinstance(obj, PlannedItem):
            _add_log(
                session,
                entity_type="planned_item",
                entity_id=str(obj.id),
                action="create",
                field_name=None,
                old=None,
                new={field: getattr(obj, field) for field in PLANNED_ITEM_AUDITED_FIELDS},
            )

    for obj in session.dirty:
        if not isinstance(obj, PlannedItem):
            continue
        insp = inspect(obj)
        for field in PLANNED_ITEM_AUDITED_FIELDS:
            hist = getattr(insp.attrs, field).history
            if not hist.has_changes():
                continue
            old = hist.deleted[0] if hist.deleted else None
            new = hist.added[0] if hist.added else None
            if _same_number(old, new):
                continue
            _add_log(
                session,
                entity_type="planned_item",
                entity_id=str(obj.id),
                action="update",
                field_name=field,
                old=old,
                new=new,
            )
