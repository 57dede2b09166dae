"""Tests for AI checklist generation (POST /ai/generate-plan)."""

import json

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from eventcraft.core.deps import get_ai_provider
from eventcraft.db.enums import ProviderType
from eventcraft.db.models import Event, Task
from eventcraft.main import app
from eventcraft.services import planning_service
from eventcraft.services.ai_provider import AIProvider, ChatMessage, ChatResponse
from eventcraft.services.matching_service import find_matching_providers


class StubProvider(AIProvider):
    """Returns a canned reply, or raises, and records the prompts it saw."""

    def __init__(self, content: str = "", error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[list[ChatMessage]] = []

    async def chat(self, messages, model=None, temperature=0.7, max_tokens=2000):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return ChatResponse(
            content=self.content,
            prompt_tokens=120,
            completion_tokens=480,
            total_tokens=600,
            model="gpt-4o-mini",
        )


WEDDING_STEPS = [
    {"step_title": "Book the venue", "description": "Reserve a hall for 150", "tags": ["venue"]},
    {"step_title": "Hire a caterer", "description": "Plated dinner", "tags": ["catering"]},
    {"step_title": "Book a photographer", "description": "Full day coverage", "tags": ["photographer"]},
    {"step_title": "Order flowers", "description": "Bouquets and centrepieces", "tags": ["Florist"]},
    {"step_title": "Book a DJ", "description": "Reception music", "tags": ["music", "dj"]},
    {"step_title": "Send invitations", "description": "Eight weeks ahead", "tags": ["invitations"]},
]

WEDDING_PROMPT = "Wedding in Toronto, 150 guests, elegant dinner"


def _use_provider(provider: AIProvider) -> None:
    app.dependency_overrides[get_ai_provider] = lambda: provider


def _count(db, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.mark.asyncio
async def test_generate_plan_wedding_scenario(authed_client: AsyncClient, db, make_provider):
    caterer = make_provider(
        business_name="Golden Fork Catering",
        provider_type="catering",
        description="Elegant plated dinner service",
    )
    bakery = make_provider(business_name="Sweet Tiers", provider_type="other", tags=["catering"])
    make_provider(business_name="Lakeside Hall", provider_type="venue")
    make_provider(business_name="Ottawa Caterers", provider_type="catering", location_city="Ottawa")
    stub = StubProvider(json.dumps(WEDDING_STEPS))
    _use_provider(stub)

    response = await authed_client.post(
        "/ai/generate-plan",
        json={"event_type": "wedding", "prompt": WEDDING_PROMPT},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["event"]["event_type"] == "wedding"
    assert data["event"]["prompt"] == WEDDING_PROMPT

    checklist = data["checklist"]
    assert 5 <= len(checklist) <= 8
    assert [step["order_number"] for step in checklist] == list(range(1, len(checklist) + 1))
    vocabulary = set(ProviderType.vocabulary())
    for step in checklist:
        assert step["tags"]
        assert set(step["tags"]) <= vocabulary

    catering_step = next(s for s in checklist if s["tags"] == ["catering"])
    names = [p["business_name"] for p in catering_step["matching_providers"]]
    assert names == [caterer.business_name, bakery.business_name]
    scores = [p["relevance_score"] for p in catering_step["matching_providers"]]
    assert scores == sorted(scores, reverse=True)

    # Persisted with the same matches
    assert _count(db, Event) == 1
    tasks = db.execute(select(Task).order_by(Task.order_number)).scalars().all()
    assert len(tasks) == len(checklist)
    hire = next(t for t in tasks if t.step_title == "Hire a caterer")
    assert hire.matching_provider_ids == [str(caterer.id), str(bakery.id)]

    user_message = stub.calls[0][1].content
    assert "Event Type: wedding" in user_message
    assert WEDDING_PROMPT in user_message


@pytest.mark.asyncio
async def test_generate_plan_accepts_fenced_wrapped_reply(authed_client: AsyncClient, db):
    reply = "```json\n" + json.dumps({"checklist": WEDDING_STEPS[:2]}) + "\n```"
    _use_provider(StubProvider(reply))

    response = await authed_client.post(
        "/ai/generate-plan", json={"event_type": "party", "prompt": "Birthday party"}
    )

    assert response.status_code == 200
    assert [s["step_title"] for s in response.json()["checklist"]] == [
        "Book the venue",
        "Hire a caterer",
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "stub",
    [
        StubProvider("I'm sorry, I can't help with that."),
        StubProvider(""),
        StubProvider(json.dumps([{"description": "no title"}])),
        StubProvider(error=httpx.ReadTimeout("timed out")),
        StubProvider(error=httpx.ConnectError("unreachable")),
    ],
    ids=["prose", "empty", "no-valid-steps", "timeout", "connect-error"],
)
async def test_generate_plan_failure_persists_nothing(authed_client: AsyncClient, db, stub):
    _use_provider(stub)

    response = await authed_client.post(
        "/ai/generate-plan", json={"event_type": "wedding", "prompt": WEDDING_PROMPT}
    )

    assert response.status_code == 502
    assert response.json()["error"]["category"] == "upstream"
    assert _count(db, Event) == 0
    assert _count(db, Task) == 0


@pytest.mark.asyncio
async def test_generate_plan_requires_auth(client: AsyncClient):
    response = await client.post(
        "/ai/generate-plan", json={"event_type": "wedding", "prompt": WEDDING_PROMPT}
    )
    assert response.status_code == 401
    assert response.json()["error"]["category"] == "authentication"


@pytest.mark.asyncio
async def test_generate_plan_rejects_missing_fields(authed_client: AsyncClient):
    _use_provider(StubProvider("[]"))
    response = await authed_client.post("/ai/generate-plan", json={"event_type": "wedding"})
    assert response.status_code == 400
    assert response.json()["error"]["category"] == "validation"


@pytest.mark.asyncio
async def test_generate_plan_without_configured_ai_is_unavailable(authed_client: AsyncClient, monkeypatch):
    from eventcraft.core.config import settings

    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    monkeypatch.setattr(settings, "AZURE_OPENAI_API_KEY", "")

    response = await authed_client.post(
        "/ai/generate-plan", json={"event_type": "wedding", "prompt": WEDDING_PROMPT}
    )

    assert response.status_code == 503
    assert response.json()["error"]["category"] == "unavailable"


@pytest.mark.asyncio
async def test_generate_plan_keeps_at_most_eight_steps(authed_client: AsyncClient, db):
    steps = [
        {"step_title": f"Step {n}", "description": "", "tags": ["other"]} for n in range(1, 13)
    ]
    _use_provider(StubProvider(json.dumps(steps)))

    response = await authed_client.post(
        "/ai/generate-plan", json={"event_type": "wedding", "prompt": WEDDING_PROMPT}
    )

    assert response.status_code == 200
    checklist = response.json()["checklist"]
    assert [s["step_title"] for s in checklist] == [f"Step {n}" for n in range(1, 9)]
    assert _count(db, Task) == planning_service.MAX_CHECKLIST_STEPS


@pytest.mark.asyncio
async def test_generate_plan_database_failure_persists_nothing(
    authed_client: AsyncClient, db, test_auth, monkeypatch
):
    _use_provider(StubProvider(json.dumps(WEDDING_STEPS)))
    calls = []

    def failing_match(*args, **kwargs):
        calls.append(1)
        if len(calls) == 2:
            raise OperationalError("SELECT providers", {}, Exception("connection lost"))
        return find_matching_providers(*args, **kwargs)

    monkeypatch.setattr(planning_service, "find_matching_providers", failing_match)

    # Unhandled errors are re-raised by the server middleware after the 500 is sent
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
        headers=test_auth.headers,
    ) as c:
        response = await c.post(
            "/ai/generate-plan", json={"event_type": "wedding", "prompt": WEDDING_PROMPT}
        )

    assert response.status_code == 500
    assert response.json() == {
        "error": {"category": "internal", "message": "Internal server error"}
    }
    assert len(calls) == 2
    assert _count(db, Event) == 0
    assert _count(db, Task) == 0
