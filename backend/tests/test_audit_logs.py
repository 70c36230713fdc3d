from decimal import Decimal

import pytest

from app.core.audit_context import set_audit_actor
from app.schemas.planned_item import PlannedItemUpdate
from app.services import audit_service, planned_item_service


@pytest.mark.asyncio
async def test_audit_logs_filter_by_field_and_actor(db_session, make_planned_item):
    first = await make_planned_item(designation="Imprimantes")
    second = await make_planned_item(designation="Scanners")

    set_audit_actor("auditeur")
    try:
        await planned_item_service.update_planned_item(
            db_session, first.id, PlannedItemUpdate(planned_quantity=Decimal("15"))
        )
    finally:
        set_audit_actor(None)
    await planned_item_service.update_planned_item(
        db_session, second.id, PlannedItemUpdate(allocated_amount=Decimal("9000"))
    )

    rows, total = await audit_service.list_audit_logs(db_session, field_name="planned_quantity")
    assert total == 1
    assert rows[0].entity_id == str(first.id)
    assert rows[0].actor == "auditeur"

    rows, total = await audit_service.list_audit_logs(db_session, actor="auditeur")
    assert total == 1

    rows, total = await audit_service.list_audit_logs(db_session, entity_type="planned_item", limit=2)
    assert total == 4
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_planned_item_history_is_oldest_first(db_session, make_planned_item):
    planned_item = await make_planned_item()
    await planned_item_service.update_planned_item(
        db_session, planned_item.id, PlannedItemUpdate(unit_cost=Decimal("1100"))
    )

    history = await audit_service.planned_item_history(db_session, planned_item.id)
    assert [log.action for log in history] == ["create", "update"]
    assert history[1].field_name == "unit_cost"
