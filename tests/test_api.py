from datetime import datetime, timedelta

import httpx
import pytest

from api.dependencies import get_settings
from api.main import app
from constituant.config import settings
from constituant.db.session import get_session
from constituant.services.bill_upsert_service import BillUpsertService, ReviewQueueStrategy

from helpers import add_bill, make_classifier, make_draft

ADMIN_PASSWORD = "s3cret"
VOTER = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
ADMIN = {"X-Admin-Password": ADMIN_PASSWORD}


@pytest.fixture
async def client(database):
    async def override_session():
        async with database.session() as session:
            yield session

    test_settings = settings.model_copy(update={
        "app": settings.app.model_copy(update={"admin_password": ADMIN_PASSWORD}),
    })

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
async def bill(database):
    async with database.session() as session:
        await add_bill(session)
    return "fr-loi-test-2025"


async def test_health(client) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_vote_flow(client, bill) -> None:
    first = await client.post("/api/v1/votes", json={"bill_id": bill, "vote_type": "for"}, headers=VOTER)
    assert first.status_code == 201
    assert first.json()["action"] == "created"

    changed = await client.post("/api/v1/votes", json={"bill_id": bill, "vote_type": "against"}, headers=VOTER)
    assert changed.status_code == 200
    assert changed.json()["vote"]["previous_vote_type"] == "for"

    repeated = await client.post("/api/v1/votes", json={"bill_id": bill, "vote_type": "against"}, headers=VOTER)
    assert repeated.status_code == 409
    assert repeated.json() == {
        "success": False,
        "error": "already_voted",
        "message": repeated.json()["message"],
    }

    results = await client.get("/api/v1/results", params={"bill_id": bill})
    body = results.json()
    assert results.status_code == 200
    assert body["results"] == {"for": 0, "against": 1, "abstain": 0, "total": 1}
    assert body["percentages"]["against"] == 100
    assert len(body["timeline"]) == 24


async def test_vote_errors(client, bill) -> None:
    missing = await client.post("/api/v1/votes", json={"vote_type": "for"}, headers=VOTER)
    assert missing.status_code == 400
    assert missing.json()["error"] == "invalid_request"

    unknown = await client.post("/api/v1/votes", json={"bill_id": "fr-x-2025", "vote_type": "for"}, headers=VOTER)
    assert unknown.status_code == 404
    assert unknown.json()["error"] == "bill_not_found"

    malformed = await client.post("/api/v1/votes", content=b"not json", headers={**VOTER, "Content-Type": "application/json"})
    assert malformed.status_code == 400
    assert malformed.json()["success"] is False

    no_bill = await client.get("/api/v1/results")
    assert no_bill.status_code == 400


async def test_list_bills_includes_user_vote(client, database, bill) -> None:
    async with database.session() as session:
        await add_bill(session, "eu-directive-sols-2025", level="eu", chamber="European Parliament",
                       vote_datetime=datetime.utcnow() + timedelta(days=40))
    await client.post("/api/v1/votes", json={"bill_id": bill, "vote_type": "abstain"}, headers=VOTER)

    response = await client.get("/api/v1/bills", headers=VOTER)
    body = response.json()

    assert response.status_code == 200
    assert body["count"] == 2
    first = body["bills"][0]
    assert first["id"] == bill
    assert first["user_voted"] == "abstain"
    assert first["votes"]["abstain"] == 1
    assert first["urgency"]["label"] == "Vote prévu"
    assert body["bills"][1]["user_voted"] is None

    eu = await client.get("/api/v1/bills", params={"level": "eu"})
    assert [item["id"] for item in eu.json()["bills"]] == ["eu-directive-sols-2025"]

    invalid = await client.get("/api/v1/bills", params={"level": "region"})
    assert invalid.status_code == 400


async def test_admin_bill_crud(client) -> None:
    create = await client.post("/api/v1/admin/bills", json={
        "action": "create",
        "admin_password": ADMIN_PASSWORD,
        "bill": {
            "id": "fr-loi-admin-2025",
            "title": "Loi admin",
            "summary": "Résumé",
            "level": "france",
            "chamber": "Sénat",
            "vote_datetime": "2099-01-01 10:00:00",
        },
    })
    assert create.status_code == 200
    assert create.json()["bill"]["status"] == "upcoming"

    update = await client.post("/api/v1/admin/bills", json={
        "action": "update",
        "admin_password": ADMIN_PASSWORD,
        "bill": {"id": "fr-loi-admin-2025", "theme": "Justice"},
    })
    assert update.json()["bill"]["theme"] == "Justice"

    delete = await client.post("/api/v1/admin/bills", json={
        "action": "delete",
        "admin_password": ADMIN_PASSWORD,
        "bill": {"id": "fr-loi-admin-2025"},
    })
    assert delete.status_code == 200
    assert delete.json()["bill"] is None

    listing = await client.get("/api/v1/bills")
    assert listing.json()["count"] == 0


async def test_admin_rejects_bad_password(client) -> None:
    response = await client.post("/api/v1/admin/bills", json={
        "action": "delete",
        "admin_password": "wrong",
        "bill": {"id": "fr-loi-test-2025"},
    })
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"

    pending = await client.get("/api/v1/admin/pending")
    assert pending.status_code == 401


async def test_review_queue_endpoints(client, database) -> None:
    upsert = BillUpsertService(database, make_classifier(), ReviewQueueStrategy())
    first = (await upsert.upsert(make_draft())).record_id
    second = (await upsert.upsert(make_draft(external_id="43", title="Autre loi"))).record_id

    listing = await client.get("/api/v1/admin/pending", headers=ADMIN)
    assert listing.json()["count"] == 2

    approved = await client.post(f"/api/v1/admin/pending/{first}/approve", headers=ADMIN)
    assert approved.status_code == 200
    assert approved.json()["bill"]["status"] == "upcoming"

    again = await client.post(f"/api/v1/admin/pending/{first}/approve", headers=ADMIN)
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_state"

    incomplete = await client.post(f"/api/v1/admin/pending/{second}/edit-approve", json={"title": "Loi"}, headers=ADMIN)
    assert incomplete.status_code == 400

    rejected = await client.post(f"/api/v1/admin/pending/{second}/reject", json={"notes": "Doublon"}, headers=ADMIN)
    assert rejected.json()["pending"]["status"] == "rejected"

    missing = await client.post("/api/v1/admin/pending/999/reject", headers=ADMIN)
    assert missing.status_code == 404

    bills = await client.get("/api/v1/bills")
    assert bills.json()["count"] == 1
