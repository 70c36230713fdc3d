import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_db
from app.main import app


@pytest_asyncio.fixture
async def client(async_session):
    async def _get_db():
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def _seed(client: AsyncClient) -> dict:
    domain = (await client.post("/api/v1/domains", json={"designation_fr": "Informatique"})).json()
    rubric = (
        await client.post("/api/v1/rubrics", json={"designation_fr": "Materiel", "domain_id": domain["id"]})
    ).json()
    item = (await client.post("/api/v1/items", json={"designation_fr": "Ordinateur", "rubric_id": rubric["id"]})).json()
    status = (await client.post("/api/v1/item-statuses", json={"designation_fr": "Prevu"})).json()
    budget_type = (
        await client.post("/api/v1/budget-types", json={"designation_fr": "Fonctionnement", "acronym_fr": "BF"})
    ).json()
    operation = (
        await client.post(
            "/api/v1/financial-operations",
            json={"operation": "Equipement 2024", "budget_year": 2024, "budget_type_id": budget_type["id"]},
        )
    ).json()
    return {"domain": domain, "rubric": rubric, "item": item, "status": status, "operation": operation}


def _planned_item_body(seed: dict, **overrides) -> dict:
    body = {
        "designation": "Ordinateurs portables",
        "unit_cost": "1000",
        "planned_quantity": "12",
        "allocated_amount": "11000",
        "item_id": seed["item"]["id"],
        "item_status_id": seed["status"]["id"],
        "financial_operation_id": seed["operation"]["id"],
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_error_taxonomy_maps_to_http_status(client):
    seed = await _seed(client)

    duplicate = await client.post("/api/v1/domains", json={"designation_fr": "Informatique"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "UNIQUENESS_VIOLATION"

    missing_parent = await client.post("/api/v1/rubrics", json={"designation_fr": "Orpheline", "domain_id": 999})
    assert missing_parent.status_code == 422
    assert missing_parent.json()["code"] == "REFERENCE_NOT_FOUND"

    not_found = await client.get("/api/v1/domains/999")
    assert not_found.status_code == 404
    assert not_found.json()["code"] == "NOT_FOUND"

    blocked = await client.delete(f"/api/v1/domains/{seed['domain']['id']}")
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "CONFLICT"

    negative = await client.post("/api/v1/planned-items", json=_planned_item_body(seed, unit_cost="-5"))
    assert negative.status_code == 400
    assert negative.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_planned_item_round_trip_with_derived_fields(client):
    seed = await _seed(client)

    created = await client.post("/api/v1/planned-items", json=_planned_item_body(seed))
    assert created.status_code == 201
    body = created.json()
    assert body["budget_category"] == "WELL_BUDGETED"
    assert body["utilization"] == "1.0909"

    listing = await client.get("/api/v1/planned-items", params={"budget_category": "WELL_BUDGETED"})
    assert listing.status_code == 200
    page = listing.json()
    assert page["total"] == 1
    assert page["items"][0]["id"] == body["id"]

    stats = await client.get("/api/v1/planned-items/statistics")
    assert stats.status_code == 200
    assert stats.json()["count"] == 1


@pytest.mark.asyncio
async def test_actor_header_is_recorded_in_audit_log(client):
    seed = await _seed(client)
    created = (await client.post("/api/v1/planned-items", json=_planned_item_body(seed))).json()

    response = await client.put(
        f"/api/v1/planned-items/{created['id']}",
        json={"allocated_amount": "13000"},
        headers={"X-Actor": "agent.budget"},
    )
    assert response.status_code == 200

    history = await client.get(f"/api/v1/audit-logs/planned-items/{created['id']}")
    assert history.status_code == 200
    updates = [entry for entry in history.json() if entry["action"] == "update"]
    assert len(updates) == 1
    assert updates[0]["field_name"] == "allocated_amount"
    assert updates[0]["actor"] == "agent.budget"


@pytest.mark.asyncio
async def test_distribution_and_modification_routes(client):
    seed = await _seed(client)
    planned_item = (
        await client.post("/api/v1/planned-items", json=_planned_item_body(seed, planned_quantity="10"))
    ).json()
    structure = (await client.post("/api/v1/structures", json={"code": "DG", "designation_fr": "Direction"})).json()

    for quantity in ("7", "5"):
        response = await client.post(
            "/api/v1/item-distributions",
            json={"planned_item_id": planned_item["id"], "structure_id": structure["id"], "quantity": quantity},
        )
        assert response.status_code == 201

    over = await client.get("/api/v1/item-distributions/reports/over-distribution")
    assert over.status_code == 200
    assert over.json()[0]["excess_quantity"] in ("2", "2.000")

    demande = (await client.post("/api/v1/documents", json={"reference": "DEM-9"})).json()
    modification = await client.post(
        "/api/v1/budget-modifications", json={"object": "Rallonge", "demande_id": demande["id"]}
    )
    assert modification.status_code == 201
    assert modification.json()["state"] == "PENDING"

    approved = await client.post(
        f"/api/v1/budget-modifications/{modification.json()['id']}/approve", json={"approval_date": "2020-01-01"}
    )
    assert approved.status_code == 200
    assert approved.json()["state"] == "APPROVED"

    duplicate = await client.post(
        "/api/v1/budget-modifications",
        json={"object": "Doublon", "demande_id": demande["id"], "approval_date": "2020-01-01"},
    )
    assert duplicate.status_code == 409
