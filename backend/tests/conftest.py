import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# app.core.config exige DATABASE_URL a l'import ; les tests creent leur propre moteur.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from app.core.clock import FixedClock  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import make_engine  # noqa: E402
import app.models  # noqa: F401,E402
from app.schemas.catalog import DomainCreate, ItemCreate, ItemStatusCreate, RubricCreate  # noqa: E402
from app.schemas.financial_operation import BudgetTypeCreate, FinancialOperationCreate  # noqa: E402
from app.schemas.planned_item import PlannedItemCreate  # noqa: E402
from app.schemas.reference import DocumentCreate, StructureCreate  # noqa: E402
from app.services import (  # noqa: E402
    catalog_service,
    financial_operation_service,
    planned_item_service,
    reference_service,
)


@pytest.fixture
def test_database_url(tmp_path) -> str:
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        return url
    return f"sqlite+aiosqlite:///{tmp_path / 'planning.db'}"


@pytest_asyncio.fixture
async def async_engine(test_database_url: str) -> AsyncEngine:
    engine = make_engine(test_database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine: AsyncEngine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(async_session):
    session: AsyncSession = async_session()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(date(2024, 6, 15))


@pytest_asyncio.fixture
async def catalog(db_session):
    """Domaine > rubrique > article, plus un statut."""
    domain = await catalog_service.create_domain(db_session, DomainCreate(designation_fr="Informatique"))
    rubric = await catalog_service.create_rubric(
        db_session, RubricCreate(designation_fr="Materiel", domain_id=domain.id)
    )
    item = await catalog_service.create_item(db_session, ItemCreate(designation_fr="Ordinateur", rubric_id=rubric.id))
    status = await catalog_service.create_item_status(db_session, ItemStatusCreate(designation_fr="Prevu"))
    return {"domain": domain, "rubric": rubric, "item": item, "status": status}


@pytest_asyncio.fixture
async def operation(db_session):
    budget_type = await financial_operation_service.create_budget_type(
        db_session, BudgetTypeCreate(designation_fr="Budget de fonctionnement", acronym_fr="BF")
    )
    return await financial_operation_service.create_financial_operation(
        db_session,
        FinancialOperationCreate(operation="Equipement 2024", budget_year=2024, budget_type_id=budget_type.id),
    )


@pytest_asyncio.fixture
async def structures(db_session):
    """Direction > (Service A > Bureau A1), Service B ; plus une structure hors arbre."""
    root = await reference_service.create_structure(db_session, StructureCreate(code="DG", designation_fr="Direction"))
    service_a = await reference_service.create_structure(
        db_session, StructureCreate(code="SA", designation_fr="Service A", parent_id=root.id)
    )
    office = await reference_service.create_structure(
        db_session, StructureCreate(code="A1", designation_fr="Bureau A1", parent_id=service_a.id)
    )
    service_b = await reference_service.create_structure(
        db_session, StructureCreate(code="SB", designation_fr="Service B", parent_id=root.id)
    )
    other = await reference_service.create_structure(db_session, StructureCreate(code="EXT", designation_fr="Externe"))
    return {"root": root, "service_a": service_a, "office": office, "service_b": service_b, "other": other}


@pytest_asyncio.fixture
async def documents(db_session):
    demande = await reference_service.create_document(db_session, DocumentCreate(reference="DEM-001", title="Demande"))
    response = await reference_service.create_document(
        db_session, DocumentCreate(reference="REP-001", title="Reponse")
    )
    other = await reference_service.create_document(db_session, DocumentCreate(reference="DEM-002"))
    return {"demande": demande, "response": response, "other": other}


@pytest.fixture
def make_planned_item(db_session, catalog, operation):
    async def _make(
        designation: str = "Ordinateurs portables",
        unit_cost: str = "1000",
        planned_quantity: str = "12",
        allocated_amount: str = "11000",
        **extra,
    ):
        payload = PlannedItemCreate(
            designation=designation,
            unit_cost=Decimal(unit_cost),
            planned_quantity=Decimal(planned_quantity),
            allocated_amount=Decimal(allocated_amount),
            item_id=extra.pop("item_id", catalog["item"].id),
            item_status_id=extra.pop("item_status_id", catalog["status"].id),
            financial_operation_id=extra.pop("financial_operation_id", operation.id),
            **extra,
        )
        return await planned_item_service.create_planned_item(db_session, payload)

    return _make
