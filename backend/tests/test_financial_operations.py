import pytest
import pytest_asyncio

from app.core.errors import Conflict, ReferenceNotFound, UniquenessViolation, ValidationError
from app.schemas.financial_operation import (
    BudgetTypeCreate,
    BudgetTypeUpdate,
    FinancialOperationCreate,
    FinancialOperationUpdate,
)
from app.services import financial_operation_service as service


@pytest_asyncio.fixture
async def budget_type(db_session):
    return await service.create_budget_type(
        db_session, BudgetTypeCreate(designation_fr="Budget d'investissement", acronym_fr="BI")
    )


@pytest.mark.asyncio
async def test_budget_type_designation_and_acronym_are_unique(db_session, budget_type):
    with pytest.raises(UniquenessViolation):
        await service.create_budget_type(
            db_session, BudgetTypeCreate(designation_fr="Budget d'investissement", acronym_fr="XX")
        )
    with pytest.raises(UniquenessViolation):
        await service.create_budget_type(db_session, BudgetTypeCreate(designation_fr="Autre", acronym_fr="BI"))
    with pytest.raises(ValidationError):
        await service.create_budget_type(db_session, BudgetTypeCreate(designation_fr="Sans sigle"))

    updated = await service.update_budget_type(db_session, budget_type.id, BudgetTypeUpdate(acronym_en="IB"))
    assert updated.acronym_en == "IB"
    assert updated.acronym_fr == "BI"


@pytest.mark.asyncio
async def test_operation_name_is_unique_and_year_bounded(db_session, budget_type):
    await service.create_financial_operation(
        db_session, FinancialOperationCreate(operation="Travaux 2025", budget_year=2025, budget_type_id=budget_type.id)
    )

    with pytest.raises(UniquenessViolation):
        await service.create_financial_operation(
            db_session,
            FinancialOperationCreate(operation="Travaux 2025", budget_year=2026, budget_type_id=budget_type.id),
        )
    with pytest.raises(ValidationError):
        await service.create_financial_operation(
            db_session,
            FinancialOperationCreate(operation="Hors bornes", budget_year=1899, budget_type_id=budget_type.id),
        )
    with pytest.raises(ValidationError):
        await service.create_financial_operation(
            db_session, FinancialOperationCreate(operation="Sans annee", budget_type_id=budget_type.id)
        )
    with pytest.raises(ReferenceNotFound):
        await service.create_financial_operation(
            db_session, FinancialOperationCreate(operation="Type absent", budget_year=2025, budget_type_id=404)
        )


@pytest.mark.asyncio
async def test_update_operation_excludes_itself_from_uniqueness(db_session, budget_type):
    operation = await service.create_financial_operation(
        db_session, FinancialOperationCreate(operation="Achats", budget_year=2024, budget_type_id=budget_type.id)
    )
    updated = await service.update_financial_operation(
        db_session, operation.id, FinancialOperationUpdate(operation="Achats", budget_year=2025)
    )
    assert updated.budget_year == 2025

    with pytest.raises(ValidationError):
        await service.update_financial_operation(db_session, operation.id, FinancialOperationUpdate(budget_year=2201))
    assert (await service.get_financial_operation(db_session, operation.id)).budget_year == 2025


@pytest.mark.asyncio
async def test_years_and_filters(db_session, budget_type):
    for name, year in (("A", 2023), ("B", 2024), ("C", 2024)):
        await service.create_financial_operation(
            db_session, FinancialOperationCreate(operation=name, budget_year=year, budget_type_id=budget_type.id)
        )

    assert await service.list_budget_years(db_session) == [2024, 2023]
    assert await service.count_financial_operations(db_session, budget_year=2024) == 2

    rows, total = await service.list_financial_operations(db_session, budget_year=2024, order="operation")
    assert total == 2
    assert [r.operation for r in rows] == ["B", "C"]


@pytest.mark.asyncio
async def test_delete_blocked_by_dependents(db_session, operation, make_planned_item):
    await make_planned_item()

    with pytest.raises(Conflict):
        await service.delete_financial_operation(db_session, operation.id)
    with pytest.raises(Conflict):
        await service.delete_budget_type(db_session, operation.budget_type_id)
    assert await service.financial_operation_exists(db_session, operation.id)
