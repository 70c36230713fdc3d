from decimal import Decimal

import pytest

from app.core.errors import NotFound, ReferenceNotFound, ValidationError
from app.schemas.item_distribution import ItemDistributionCreate, ItemDistributionFilters, ItemDistributionUpdate
from app.services import item_distribution_service as service


def _payload(planned_item, structure, quantity) -> ItemDistributionCreate:
    return ItemDistributionCreate(
        planned_item_id=planned_item.id, structure_id=structure.id, quantity=Decimal(str(quantity))
    )


@pytest.mark.asyncio
async def test_same_pair_can_be_allocated_twice(db_session, make_planned_item, structures):
    planned_item = await make_planned_item()

    first = await service.allocate(db_session, _payload(planned_item, structures["service_a"], 3))
    second = await service.allocate(db_session, _payload(planned_item, structures["service_a"], 2))

    assert first.id != second.id
    rows, total = await service.list_by_planned_item(db_session, planned_item.id)
    assert total == 2
    assert await service.distributed_quantity(db_session, planned_item.id) == Decimal("5")


@pytest.mark.asyncio
async def test_over_distribution_is_accepted_and_reported(db_session, make_planned_item, structures):
    planned_item = await make_planned_item(planned_quantity="10", allocated_amount="10000")

    await service.allocate(db_session, _payload(planned_item, structures["service_a"], 7))
    await service.allocate(db_session, _payload(planned_item, structures["service_b"], 5))

    assert await service.count_distributions(db_session, ItemDistributionFilters(planned_item_id=planned_item.id)) == 2
    report = await service.over_distribution_report(db_session)
    assert len(report) == 1
    assert report[0].planned_item_id == planned_item.id
    assert report[0].distributed_quantity == Decimal("12")
    assert report[0].excess_quantity == Decimal("2")

    summary = await service.planned_item_summary(db_session, planned_item.id)
    assert summary.status == "OVER_DISTRIBUTED"
    assert summary.remaining_quantity == Decimal("-2")


@pytest.mark.asyncio
async def test_ceiling_can_be_enforced(db_session, make_planned_item, structures):
    planned_item = await make_planned_item(planned_quantity="10", allocated_amount="10000")
    kept = await service.allocate(
        db_session, _payload(planned_item, structures["service_a"], 7), enforce_ceiling=True
    )

    with pytest.raises(ValidationError):
        await service.allocate(db_session, _payload(planned_item, structures["service_b"], 5), enforce_ceiling=True)
    with pytest.raises(ValidationError):
        await service.update_distribution(
            db_session, kept.id, ItemDistributionUpdate(quantity=Decimal("11")), enforce_ceiling=True
        )

    # la ligne elle-meme est exclue du cumul
    updated = await service.update_distribution(
        db_session, kept.id, ItemDistributionUpdate(quantity=Decimal("10")), enforce_ceiling=True
    )
    assert updated.quantity == Decimal("10")
    assert await service.count_distributions(db_session) == 1


@pytest.mark.asyncio
async def test_ceiling_setting_drives_default(db_session, make_planned_item, structures, monkeypatch):
    from app.core.config import settings

    planned_item = await make_planned_item(planned_quantity="1", allocated_amount="1000")
    monkeypatch.setattr(settings, "enforce_distribution_ceiling", True)

    with pytest.raises(ValidationError):
        await service.allocate(db_session, _payload(planned_item, structures["service_a"], 2))


@pytest.mark.asyncio
async def test_allocate_validates_input(db_session, make_planned_item, structures):
    planned_item = await make_planned_item()

    with pytest.raises(ValidationError):
        await service.allocate(db_session, _payload(planned_item, structures["service_a"], -1))
    with pytest.raises(ReferenceNotFound):
        await service.allocate(
            db_session, ItemDistributionCreate(planned_item_id=999, structure_id=structures["service_a"].id, quantity=1)
        )
    with pytest.raises(ReferenceNotFound):
        await service.allocate(
            db_session, ItemDistributionCreate(planned_item_id=planned_item.id, structure_id=999, quantity=1)
        )
    with pytest.raises(ValidationError):
        await service.allocate(db_session, ItemDistributionCreate(structure_id=structures["service_a"].id, quantity=1))
    with pytest.raises(NotFound):
        await service.update_distribution(db_session, 999, ItemDistributionUpdate(quantity=Decimal("1")))


@pytest.mark.asyncio
async def test_ancestor_listing_includes_descendants(db_session, make_planned_item, structures):
    planned_item = await make_planned_item()
    at_office = await service.allocate(db_session, _payload(planned_item, structures["office"], 1))
    at_service_a = await service.allocate(db_session, _payload(planned_item, structures["service_a"], 1))
    at_service_b = await service.allocate(db_session, _payload(planned_item, structures["service_b"], 1))
    outside = await service.allocate(db_session, _payload(planned_item, structures["other"], 1))

    rows, total = await service.list_by_organizational_ancestor(db_session, structures["service_a"].id)
    assert sorted(r.id for r in rows) == sorted([at_office.id, at_service_a.id])
    assert total == 2

    rows, total = await service.list_by_organizational_ancestor(db_session, structures["root"].id)
    assert sorted(r.id for r in rows) == sorted([at_office.id, at_service_a.id, at_service_b.id])
    assert outside.id not in {r.id for r in rows}

    with pytest.raises(NotFound):
        await service.list_by_organizational_ancestor(db_session, 999)


@pytest.mark.asyncio
async def test_distribution_view_follows_unit_cost(db_session, make_planned_item, structures):
    planned_item = await make_planned_item()
    distribution = await service.allocate(db_session, _payload(planned_item, structures["service_a"], 4))

    view = await service.get_distribution_view(db_session, distribution.id)
    assert view.total_cost == Decimal("4000")
    assert view.allocation_status == "PARTIAL"
    assert view.size_category == "SMALL"
    assert view.requires_coordination is False
    assert view.model_dump(mode="json")["percentage_of_plan"] == "33.33"


@pytest.mark.asyncio
async def test_percentage_is_none_when_nothing_planned(db_session, make_planned_item, structures):
    planned_item = await make_planned_item(planned_quantity="0", allocated_amount="0")
    distribution = await service.allocate(db_session, _payload(planned_item, structures["service_a"], 0))

    view = await service.get_distribution_view(db_session, distribution.id)
    assert view.percentage_of_plan is None
    assert view.allocation_status == "COMPLETE"

    summary = await service.planned_item_summary(db_session, planned_item.id)
    assert summary.status == "COMPLETE"
    assert summary.percentage_distributed is None


@pytest.mark.asyncio
async def test_coordination_and_structure_reports(db_session, make_planned_item, structures):
    shared = await make_planned_item()
    single = await make_planned_item(designation="Imprimante", unit_cost="300", planned_quantity="2", allocated_amount="600")
    await service.allocate(db_session, _payload(shared, structures["service_a"], 5))
    await service.allocate(db_session, _payload(shared, structures["service_b"], 7))
    await service.allocate(db_session, _payload(single, structures["service_a"], 2))

    coordination = await service.coordination_report(db_session)
    by_item = {entry.planned_item_id: entry for entry in coordination}
    assert by_item[shared.id].requires_coordination is True
    assert by_item[shared.id].structure_ids == sorted([structures["service_a"].id, structures["service_b"].id])
    assert by_item[single.id].requires_coordination is False

    rows, total = await service.list_distributions(db_session, ItemDistributionFilters(requires_coordination=True))
    assert total == 2
    assert {r.planned_item_id for r in rows} == {shared.id}

    report = {entry.structure_id: entry for entry in await service.structure_report(db_session)}
    assert report[structures["service_a"].id].distribution_count == 2
    assert report[structures["service_a"].id].total_quantity == Decimal("7")
    assert report[structures["service_a"].id].total_cost == Decimal("5600")
    assert report[structures["service_b"].id].total_cost == Decimal("7000")

    stats = await service.distribution_statistics(db_session)
    assert stats.count == 3
    assert stats.total_quantity == Decimal("14")
    assert stats.requiring_coordination_count == 2
    assert stats.over_distributed_items_count == 0
    assert stats.min_quantity == Decimal("2")


@pytest.mark.asyncio
async def test_allocation_status_filter(db_session, make_planned_item, structures):
    planned_item = await make_planned_item(planned_quantity="10", allocated_amount="10000")
    complete = await service.allocate(db_session, _payload(planned_item, structures["service_a"], 10))
    partial = await service.allocate(db_session, _payload(planned_item, structures["service_b"], 4))

    rows, _ = await service.list_distributions(db_session, ItemDistributionFilters(allocation_status="COMPLETE"))
    assert [r.id for r in rows] == [complete.id]
    rows, _ = await service.list_distributions(db_session, ItemDistributionFilters(allocation_status="partial"))
    assert [r.id for r in rows] == [partial.id]


@pytest.mark.asyncio
async def test_statistics_when_empty(db_session):
    stats = await service.distribution_statistics(db_session)
    assert stats.count == 0
    assert stats.total_cost == Decimal("0")


@pytest.mark.asyncio
async def test_total_cost_range_filter(db_session, make_planned_item, structures):
    planned_item = await make_planned_item(unit_cost="250")
    small = await service.allocate(db_session, _payload(planned_item, structures["service_a"], 2))
    large = await service.allocate(db_session, _payload(planned_item, structures["service_b"], 8))

    rows, total = await service.list_distributions(db_session, ItemDistributionFilters(min_total_cost=Decimal("1000")))
    assert [row.id for row in rows] == [large.id]
    rows, total = await service.list_distributions(db_session, ItemDistributionFilters(max_total_cost=Decimal("500")))
    assert [row.id for row in rows] == [small.id]


@pytest.mark.asyncio
async def test_quantity_must_fit_the_column(db_session, make_planned_item, structures):
    planned_item = await make_planned_item()

    with pytest.raises(ValidationError):
        await service.allocate(db_session, _payload(planned_item, structures["service_a"], "0.0005"))
    with pytest.raises(ValidationError):
        await service.allocate(db_session, _payload(planned_item, structures["service_a"], "1E+12"))
    kept = await service.allocate(db_session, _payload(planned_item, structures["service_a"], "2.125"))
    assert kept.quantity == Decimal("2.125")
