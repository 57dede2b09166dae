"""Tests for the provider directory and profile management (/providers)."""

import uuid

import pytest
from httpx import AsyncClient

from eventcraft.db.enums import UserType

DOWNTOWN = (43.65, -79.38)


@pytest.mark.asyncio
async def test_geo_listing_within_radius_sorted_unknown_last(client: AsyncClient, make_provider):
    midtown = make_provider(business_name="Midtown Music", location_lat=43.70, location_lng=-79.40)
    make_provider(business_name="Ottawa Music", location_lat=45.42, location_lng=-75.70)
    nowhere = make_provider(business_name="Somewhere Music")
    downtown = make_provider(business_name="Downtown Music", location_lat=43.651, location_lng=-79.381)

    response = await client.get(
        "/providers", params={"lat": DOWNTOWN[0], "lng": DOWNTOWN[1], "radius": 10}
    )

    assert response.status_code == 200
    data = response.json()
    names = [p["business_name"] for p in data["providers"]]
    assert names == [downtown.business_name, midtown.business_name, nowhere.business_name]
    distances = [p["distance"] for p in data["providers"]]
    assert distances[0] < distances[1] <= 10
    assert distances[2] is None
    assert data["total"] == 3


@pytest.mark.asyncio
async def test_listing_hides_inactive_and_unsubscribed(client: AsyncClient, make_provider):
    visible = make_provider(business_name="Visible")
    make_provider(business_name="Hidden", is_active=False)
    make_provider(business_name="Lapsed", subscription_status="cancelled")

    response = await client.get("/providers")

    assert [p["business_name"] for p in response.json()["providers"]] == [visible.business_name]


@pytest.mark.asyncio
async def test_listing_filters(client: AsyncClient, make_provider):
    make_provider(business_name="Toronto Florals", provider_type="florist", tags=["Wedding"])
    make_provider(business_name="Toronto Catering", provider_type="catering", tags=["corporate"])
    make_provider(business_name="Halifax Florals", provider_type="florist", location_city="Halifax", location_province="NS")

    by_type = await client.get("/providers", params={"type": "florist"})
    assert by_type.json()["total"] == 2

    by_city = await client.get("/providers", params={"type": "florist", "city": "toronto"})
    assert [p["business_name"] for p in by_city.json()["providers"]] == ["Toronto Florals"]

    by_province = await client.get("/providers", params={"province": "NS"})
    assert [p["business_name"] for p in by_province.json()["providers"]] == ["Halifax Florals"]

    by_tag = await client.get("/providers", params={"tags": ["wedding"]})
    assert [p["business_name"] for p in by_tag.json()["providers"]] == ["Toronto Florals"]

    bad_type = await client.get("/providers", params={"type": "astronaut"})
    assert bad_type.status_code == 400


@pytest.mark.asyncio
async def test_search_ranks_by_relevance(client: AsyncClient, make_provider):
    make_provider(business_name="Jazz Trio", provider_type="music", description="Live jazz for weddings")
    make_provider(
        business_name="Wedding Jazz Band",
        provider_type="music",
        tags=["jazz"],
        description="Jazz band for elegant weddings",
    )

    response = await client.get("/providers", params={"search": "jazz"})

    providers = response.json()["providers"]
    assert [p["business_name"] for p in providers] == ["Wedding Jazz Band", "Jazz Trio"]
    assert providers[0]["relevance_score"] > providers[1]["relevance_score"]


@pytest.mark.asyncio
async def test_listing_paginates(client: AsyncClient, make_provider):
    for i in range(5):
        make_provider(business_name=f"Provider {i}")

    response = await client.get("/providers", params={"limit": 2, "offset": 4})

    data = response.json()
    assert data["total"] == 5
    assert len(data["providers"]) == 1
    assert (data["limit"], data["offset"]) == (2, 4)

    too_many = await client.get("/providers", params={"limit": 500})
    assert too_many.status_code == 400


@pytest.mark.asyncio
async def test_get_provider(client: AsyncClient, test_provider):
    response = await client.get(f"/providers/{test_provider.id}")

    assert response.status_code == 200
    provider = response.json()["provider"]
    assert provider["business_name"] == "Golden Fork Catering"
    assert provider["user"]["name"] == "Casey Caterer"

    missing = await client.get(f"/providers/{uuid.uuid4()}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_provider_onboarding(client: AsyncClient, make_user, bearer):
    owner = make_user(UserType.PROVIDER)
    headers = bearer(owner)
    body = {
        "business_name": "Bloom & Co",
        "provider_type": "florist",
        "location_city": "Toronto",
        "tags": [" Wedding ", "wedding", "Garden"],
    }

    response = await client.post("/providers", json=body, headers=headers)

    assert response.status_code == 201
    provider = response.json()["provider"]
    assert provider["tags"] == ["wedding", "garden"]
    assert provider["subscription_status"] == "inactive"
    assert provider["is_active"] is True

    again = await client.post("/providers", json=body, headers=headers)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_users_cannot_onboard_as_provider(authed_client: AsyncClient):
    response = await authed_client.post(
        "/providers", json={"business_name": "Nope", "provider_type": "music"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_owner_updates_profile(provider_client: AsyncClient, db, test_provider):
    response = await provider_client.put(
        f"/providers/{test_provider.id}",
        json={"description": "Now with vegan menus", "business_name": None},
    )

    assert response.status_code == 200
    provider = response.json()["provider"]
    assert provider["description"] == "Now with vegan menus"
    assert provider["business_name"] == "Golden Fork Catering"
    assert provider["subscription_status"] == "active"


@pytest.mark.asyncio
async def test_stranger_cannot_update_or_deactivate(authed_client: AsyncClient, test_provider):
    update = await authed_client.put(f"/providers/{test_provider.id}", json={"description": "x"})
    assert update.status_code == 403

    delete = await authed_client.delete(f"/providers/{test_provider.id}")
    assert delete.status_code == 403


@pytest.mark.asyncio
async def test_deactivate_hides_provider(provider_client: AsyncClient, db, test_provider):
    response = await provider_client.delete(f"/providers/{test_provider.id}")
    assert response.status_code == 200

    db.refresh(test_provider)
    assert test_provider.is_active is False
    assert (await provider_client.get(f"/providers/{test_provider.id}")).status_code == 404
    assert (await provider_client.get("/providers")).json()["total"] == 0
