import asyncio
from datetime import date

import pytest

from app.core.errors import Conflict, NotFound, ReferenceNotFound, UniquenessViolation, ValidationError
from app.schemas.budget_modification import (
    BudgetModificationCreate,
    BudgetModificationFilters,
    BudgetModificationUpdate,
)
from app.services import budget_modification_service as service
from app.services import planned_item_service


async def _create(db, clock, demande, approval_date=None, **extra):
    return await service.create_budget_modification(
        db,
        BudgetModificationCreate(approval_date=approval_date, demande_id=demande.id, **extra),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_state_is_derived_from_approval_date_and_clock(db_session, documents, clock):
    demande = documents["demande"]
    pending = await _create(db_session, clock, demande, object="En attente")
    scheduled = await _create(db_session, clock, demande, date(2024, 7, 1), object="Programmee")
    approved = await _create(db_session, clock, demande, date(2024, 6, 1), object="Approuvee")
    today = await _create(db_session, clock, demande, date(2024, 6, 15), object="Aujourd'hui")

    assert service.is_pending(pending, clock)
    assert service.is_scheduled(scheduled, clock)
    assert service.is_approved(approved, clock)
    assert service.is_approved(today, clock)

    view = service.describe_modification(scheduled, clock)
    assert view.state == "SCHEDULED"
    assert view.days_to_approval == 16
    assert service.describe_modification(approved, clock).days_to_approval == -14
    assert service.describe_modification(pending, clock).days_to_approval is None

    clock.advance(days=20)
    assert service.is_approved(scheduled, clock)
    assert service.describe_modification(scheduled, clock).state == "APPROVED"


@pytest.mark.asyncio
async def test_demande_is_required_and_documents_must_exist(db_session, documents, clock):
    with pytest.raises(ValidationError):
        await service.create_budget_modification(
            db_session, BudgetModificationCreate(object="Sans demande"), clock=clock
        )
    with pytest.raises(ReferenceNotFound):
        await service.create_budget_modification(
            db_session, BudgetModificationCreate(object="Demande absente", demande_id=999), clock=clock
        )
    with pytest.raises(ReferenceNotFound):
        await _create(db_session, clock, documents["demande"], response_id=999)
    with pytest.raises(ValidationError):
        await _create(db_session, clock, documents["demande"], object="o" * 201)
    with pytest.raises(ValidationError):
        await _create(db_session, clock, documents["demande"], description="d" * 501)


@pytest.mark.asyncio
async def test_approval_date_and_demande_pair_is_unique(db_session, documents, clock):
    demande = documents["demande"]
    await _create(db_session, clock, demande, date(2024, 3, 1))

    with pytest.raises(UniquenessViolation):
        await _create(db_session, clock, demande, date(2024, 3, 1))

    # meme date, autre demande : accepte
    await _create(db_session, clock, documents["other"], date(2024, 3, 1))
    # plusieurs modifications en attente pour une meme demande : acceptees
    await _create(db_session, clock, demande)
    await _create(db_session, clock, demande)

    counts = await service.modification_counts(db_session, clock=clock)
    assert counts.total == 4
    assert counts.pending == 2


@pytest.mark.asyncio
async def test_update_excludes_itself_from_pair_check(db_session, documents, clock):
    demande = documents["demande"]
    first = await _create(db_session, clock, demande, date(2024, 3, 1), object="Premiere")
    second = await _create(db_session, clock, demande, date(2024, 4, 1), object="Seconde")

    updated = await service.update_budget_modification(
        db_session, first.id, BudgetModificationUpdate(object="Premiere revue"), clock=clock
    )
    assert updated.object == "Premiere revue"
    assert updated.approval_date == date(2024, 3, 1)

    with pytest.raises(UniquenessViolation):
        await service.update_budget_modification(
            db_session, second.id, BudgetModificationUpdate(approval_date=date(2024, 3, 1)), clock=clock
        )
    with pytest.raises(NotFound):
        await service.update_budget_modification(
            db_session, 999, BudgetModificationUpdate(object="Absente"), clock=clock
        )


@pytest.mark.asyncio
async def test_unique_index_decides_when_precheck_misses(db_session, documents, clock, monkeypatch):
    demande = documents["demande"]
    await _create(db_session, clock, demande, date(2024, 5, 2))

    async def _never(*args, **kwargs):
        return False

    monkeypatch.setattr(service, "_pair_exists", _never)

    with pytest.raises(UniquenessViolation):
        await _create(db_session, clock, demande, date(2024, 5, 2))
    assert (await service.modification_counts(db_session, clock=clock)).total == 1


@pytest.mark.asyncio
async def test_concurrent_creations_keep_a_single_row(async_session, db_session, documents, clock):
    demande_id = documents["demande"].id

    async def _attempt():
        async with async_session() as session:
            return await service.create_budget_modification(
                session,
                BudgetModificationCreate(object="Concurrente", approval_date=date(2024, 5, 10), demande_id=demande_id),
                clock=clock,
            )

    results = await asyncio.gather(_attempt(), _attempt(), return_exceptions=True)

    created = [r for r in results if not isinstance(r, BaseException)]
    rejected = [r for r in results if isinstance(r, UniquenessViolation)]
    assert len(created) == 1
    assert len(rejected) == 1
    rows, total = await service.list_budget_modifications(
        db_session, BudgetModificationFilters(demande_id=demande_id), clock=clock
    )
    assert total == 1


@pytest.mark.asyncio
async def test_approve_sets_the_date(db_session, documents, clock):
    pending = await _create(db_session, clock, documents["demande"], object="A approuver")

    approved = await service.approve(db_session, pending.id, date(2024, 6, 10), clock=clock)
    assert service.is_approved(approved, clock)

    later = await _create(db_session, clock, documents["demande"], object="Plus tard")
    scheduled = await service.approve(db_session, later.id, date(2024, 12, 1), clock=clock)
    assert service.is_scheduled(scheduled, clock)


@pytest.mark.asyncio
async def test_filters_by_state_and_period(db_session, documents, clock):
    demande = documents["demande"]
    pending = await _create(db_session, clock, demande, object="Reliquat informatique")
    recent = await _create(db_session, clock, demande, date(2024, 6, 1), object="Recente")
    older = await _create(db_session, clock, demande, date(2024, 2, 1), object="Ancienne")
    last_year = await _create(db_session, clock, demande, date(2023, 11, 20), object="Exercice precedent")
    scheduled = await _create(db_session, clock, demande, date(2024, 9, 1), object="Programmee")

    async def ids(**filters):
        rows, _ = await service.list_budget_modifications(
            db_session, BudgetModificationFilters(**filters), clock=clock, order="id"
        )
        return [row.id for row in rows]

    assert await ids(state="PENDING") == [pending.id]
    assert await ids(state="scheduled") == [scheduled.id]
    assert await ids(state="APPROVED") == [recent.id, older.id, last_year.id]
    assert await ids(year=2023) == [last_year.id]
    assert await ids(current_year=True) == [recent.id, older.id, scheduled.id]
    assert await ids(current_month=True) == [recent.id]
    assert await ids(recent=True) == [recent.id]
    assert await ids(approved_before=date(2024, 1, 1)) == [last_year.id]
    assert await ids(approved_after=date(2024, 6, 1)) == [scheduled.id]
    assert await ids(search="informatique") == [pending.id]

    assert await service.count_budget_modifications(
        db_session, BudgetModificationFilters(state="APPROVED"), clock=clock
    ) == 3

    with pytest.raises(ValidationError):
        await ids(state="REJECTED")


@pytest.mark.asyncio
async def test_counts_by_state_and_year(db_session, documents, clock):
    demande = documents["demande"]
    await _create(db_session, clock, demande)
    await _create(db_session, clock, demande, date(2024, 1, 10))
    await _create(db_session, clock, demande, date(2023, 1, 10))
    await _create(db_session, clock, demande, date(2024, 10, 10))

    counts = await service.modification_counts(db_session, clock=clock)
    assert (counts.total, counts.pending, counts.scheduled, counts.approved) == (4, 1, 1, 2)
    assert counts.by_year == {2023: 1, 2024: 2}


@pytest.mark.asyncio
async def test_delete_blocked_while_planned_items_are_linked(db_session, documents, clock, make_planned_item):
    modification = await _create(db_session, clock, documents["demande"], object="Liee")
    planned_item = await make_planned_item(budget_modification_id=modification.id)

    with pytest.raises(Conflict):
        await service.delete_budget_modification(db_session, modification.id)

    await planned_item_service.unlink_budget_modification(db_session, planned_item.id)
    await service.delete_budget_modification(db_session, modification.id)
    assert not await service.budget_modification_exists(db_session, modification.id)


@pytest.mark.asyncio
async def test_filter_missing_information(db_session, documents, clock):
    demande = documents["demande"]
    bare = await _create(db_session, clock, demande)
    await _create(db_session, clock, demande, object="Virement de credits")
    await _create(db_session, clock, demande, description="Ajustement en cours d'exercice")

    rows, total = await service.list_budget_modifications(
        db_session, BudgetModificationFilters(missing_information=True), clock=clock
    )
    assert total == 1
    assert rows[0].id == bare.id
