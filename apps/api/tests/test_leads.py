"""Tests for the lead lifecycle (/leads)."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from eventcraft.db.enums import UserType
from eventcraft.db.models import Event, Lead, Task
from eventcraft.services import lead_service


@pytest.fixture
def user_event(db, test_user):
    event = Event(
        id=uuid.uuid4(),
        user_id=test_user.id,
        event_type="wedding",
        prompt="Wedding in Toronto",
        checklist_json=[],
    )
    step = Task(
        id=uuid.uuid4(),
        event_id=event.id,
        step_title="Hire a caterer",
        order_number=1,
        tags=["catering"],
        matching_provider_ids=[],
    )
    db.add_all([event, step])
    db.commit()
    return event, step


def _lead_count(db) -> int:
    return db.execute(select(func.count()).select_from(Lead)).scalar_one()


def _payload(provider, event, step=None, message="Are you free on June 6?"):
    body = {"provider_id": str(provider.id), "event_id": str(event.id), "message": message}
    if step is not None:
        body["step_id"] = str(step.id)
    return body


@pytest.mark.asyncio
async def test_create_lead(authed_client: AsyncClient, db, user_event, test_provider):
    event, step = user_event

    response = await authed_client.post("/leads", json=_payload(test_provider, event, step))

    assert response.status_code == 201
    lead = response.json()["lead"]
    assert lead["status"] == "new"
    assert lead["provider"]["business_name"] == test_provider.business_name
    assert lead["step"]["step_title"] == "Hire a caterer"
    assert lead["event"]["event_type"] == "wedding"
    assert _lead_count(db) == 1


@pytest.mark.asyncio
async def test_duplicate_lead_is_conflict(authed_client: AsyncClient, db, user_event, test_provider):
    event, _ = user_event
    first = await authed_client.post("/leads", json=_payload(test_provider, event))
    assert first.status_code == 201

    second = await authed_client.post("/leads", json=_payload(test_provider, event, message="again"))

    assert second.status_code == 409
    assert second.json()["error"]["category"] == "conflict"
    assert _lead_count(db) == 1


@pytest.mark.asyncio
async def test_concurrent_duplicate_settled_by_unique_constraint(
    authed_client: AsyncClient, db, user_event, test_provider, monkeypatch
):
    event, _ = user_event
    first = await authed_client.post("/leads", json=_payload(test_provider, event))
    assert first.status_code == 201

    # Second request passed its existence check before the first committed
    monkeypatch.setattr(lead_service, "_find_existing_lead", lambda *args: None)
    second = await authed_client.post("/leads", json=_payload(test_provider, event))

    assert second.status_code == 409
    assert _lead_count(db) == 1


@pytest.mark.asyncio
async def test_create_lead_for_unavailable_provider(
    authed_client: AsyncClient, db, user_event, make_provider
):
    event, _ = user_event
    unpaid = make_provider(subscription_status="inactive")
    hidden = make_provider(is_active=False)

    for provider in (unpaid, hidden):
        response = await authed_client.post("/leads", json=_payload(provider, event))
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Provider is not available"
    assert _lead_count(db) == 0


@pytest.mark.asyncio
async def test_create_lead_not_found_cases(
    authed_client: AsyncClient, db, user_event, test_provider, make_user
):
    event, step = user_event

    unknown_provider = _payload(test_provider, event)
    unknown_provider["provider_id"] = str(uuid.uuid4())
    assert (await authed_client.post("/leads", json=unknown_provider)).status_code == 404

    unknown_event = _payload(test_provider, event)
    unknown_event["event_id"] = str(uuid.uuid4())
    assert (await authed_client.post("/leads", json=unknown_event)).status_code == 404

    other_event = Event(
        id=uuid.uuid4(),
        user_id=make_user(UserType.USER).id,
        event_type="party",
        prompt="Party",
        checklist_json=[],
    )
    foreign_step = Task(
        id=uuid.uuid4(),
        event_id=other_event.id,
        step_title="Other",
        order_number=1,
        tags=[],
        matching_provider_ids=[],
    )
    db.add_all([other_event, foreign_step])
    db.commit()

    with_foreign_step = _payload(test_provider, event)
    with_foreign_step["step_id"] = str(foreign_step.id)
    assert (await authed_client.post("/leads", json=with_foreign_step)).status_code == 404

    assert _lead_count(db) == 0


@pytest.mark.asyncio
async def test_provider_cannot_create_lead(provider_client: AsyncClient, user_event, test_provider):
    event, _ = user_event
    response = await provider_client.post("/leads", json=_payload(test_provider, event))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_leads_scoped_by_role(
    authed_client: AsyncClient, provider_client: AsyncClient, user_event, test_provider, make_provider
):
    event, _ = user_event
    other = make_provider(business_name="Other Caterer")
    await authed_client.post("/leads", json=_payload(test_provider, event))
    await authed_client.post("/leads", json=_payload(other, event))

    mine = await authed_client.get("/leads")
    assert mine.status_code == 200
    assert mine.json()["total"] == 2

    received = await provider_client.get("/leads")
    assert received.status_code == 200
    data = received.json()
    assert data["total"] == 1
    assert data["leads"][0]["provider_id"] == str(test_provider.id)
    assert data["leads"][0]["user"]["name"] == "Pat Planner"


@pytest.mark.asyncio
async def test_list_leads_filters_and_paginates(authed_client: AsyncClient, user_event, make_provider):
    event, _ = user_event
    for i in range(3):
        provider = make_provider(business_name=f"Caterer {i}")
        await authed_client.post("/leads", json=_payload(provider, event))

    page = await authed_client.get("/leads", params={"limit": 2, "offset": 0})
    assert page.json()["total"] == 3
    assert len(page.json()["leads"]) == 2

    booked = await authed_client.get("/leads", params={"status": "booked"})
    assert booked.json()["total"] == 0

    invalid = await authed_client.get("/leads", params={"status": "archived"})
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_provider_updates_status(
    authed_client: AsyncClient, provider_client: AsyncClient, user_event, test_provider
):
    event, _ = user_event
    created = await authed_client.post("/leads", json=_payload(test_provider, event))
    lead_id = created.json()["lead"]["id"]

    response = await provider_client.put(f"/leads/{lead_id}", json={"status": "contacted"})
    assert response.status_code == 200
    assert response.json()["lead"]["status"] == "contacted"

    stats = await provider_client.get("/leads/stats")
    assert stats.json() == {"total": 1, "new": 0, "contacted": 1, "booked": 0}


@pytest.mark.asyncio
async def test_update_rejects_unknown_status(
    authed_client: AsyncClient, db, user_event, test_provider
):
    event, _ = user_event
    created = await authed_client.post("/leads", json=_payload(test_provider, event))
    lead_id = created.json()["lead"]["id"]

    response = await authed_client.put(f"/leads/{lead_id}", json={"status": "archived"})

    assert response.status_code == 400
    assert response.json()["error"]["category"] == "validation"
    lead = db.get(Lead, uuid.UUID(lead_id))
    db.refresh(lead)
    assert lead.status == "new"


@pytest.mark.asyncio
async def test_update_requires_a_field(authed_client: AsyncClient, user_event, test_provider):
    event, _ = user_event
    created = await authed_client.post("/leads", json=_payload(test_provider, event))
    lead_id = created.json()["lead"]["id"]

    response = await authed_client.put(f"/leads/{lead_id}", json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_stranger_cannot_update_or_delete(
    authed_client: AsyncClient, client: AsyncClient, user_event, test_provider, make_user, bearer
):
    event, _ = user_event
    created = await authed_client.post("/leads", json=_payload(test_provider, event))
    lead_id = created.json()["lead"]["id"]
    stranger = bearer(make_user(UserType.USER))

    assert (await client.put(f"/leads/{lead_id}", json={"status": "booked"}, headers=stranger)).status_code == 403
    assert (await client.delete(f"/leads/{lead_id}", headers=stranger)).status_code == 403


@pytest.mark.asyncio
async def test_creator_deletes_lead(
    authed_client: AsyncClient, provider_client: AsyncClient, db, user_event, test_provider
):
    event, _ = user_event
    created = await authed_client.post("/leads", json=_payload(test_provider, event))
    lead_id = created.json()["lead"]["id"]

    assert (await provider_client.delete(f"/leads/{lead_id}")).status_code == 403

    response = await authed_client.delete(f"/leads/{lead_id}")
    assert response.status_code == 200
    assert _lead_count(db) == 0

    missing = await authed_client.delete(f"/leads/{lead_id}")
    assert missing.status_code == 404
