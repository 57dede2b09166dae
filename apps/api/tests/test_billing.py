"""Tests for provider subscription endpoints (/stripe/*) against a stub gateway."""

from types import SimpleNamespace

import pytest
import stripe
from httpx import AsyncClient

from eventcraft.core.deps import get_billing_gateway
from eventcraft.main import app


class StubGateway:
    """Records calls and answers like Stripe's objects would."""

    def __init__(self, subscription_status: str = "incomplete", fail_with: Exception | None = None):
        self.subscription_status = subscription_status
        self.fail_with = fail_with
        self.calls: list[tuple] = []
        self.customer_for_subscription = "cus_stub"

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if self.fail_with:
            raise self.fail_with

    def create_customer(self, email, user_id):
        self._record("create_customer", email, user_id)
        return SimpleNamespace(id="cus_stub")

    def create_checkout_session(self, customer_id, price_id, success_url, cancel_url, user_id):
        self._record("create_checkout_session", customer_id, price_id, success_url, cancel_url)
        return SimpleNamespace(id="cs_stub", url="https://checkout.stripe.test/cs_stub")

    def create_subscription(self, customer_id, price_id):
        self._record("create_subscription", customer_id, price_id)
        return SimpleNamespace(
            id="sub_stub",
            status=self.subscription_status,
            latest_invoice=SimpleNamespace(
                payment_intent=SimpleNamespace(client_secret="pi_secret_stub")
            ),
        )

    def retrieve_subscription(self, subscription_id):
        self._record("retrieve_subscription", subscription_id)
        return SimpleNamespace(id=subscription_id, customer=self.customer_for_subscription)

    def cancel_at_period_end(self, subscription_id):
        self._record("cancel_at_period_end", subscription_id)
        return SimpleNamespace(id=subscription_id, status="active", cancel_at_period_end=True)

    def create_portal_session(self, customer_id, return_url):
        self._record("create_portal_session", customer_id, return_url)
        return SimpleNamespace(url="https://billing.stripe.test/session")

    def find_active_subscription(self, customer_id):
        self._record("find_active_subscription", customer_id)
        return SimpleNamespace(
            id="sub_stub", status="active", current_period_end=1798761600, cancel_at_period_end=False
        )


@pytest.fixture
def gateway() -> StubGateway:
    stub = StubGateway()
    app.dependency_overrides[get_billing_gateway] = lambda: stub
    return stub


@pytest.mark.asyncio
async def test_checkout_creates_customer_once(
    provider_client: AsyncClient, db, gateway, provider_user
):
    first = await provider_client.post("/stripe/create-checkout-session", json={})
    second = await provider_client.post("/stripe/create-checkout-session", json={})

    assert first.status_code == 200
    assert first.json() == {"session_id": "cs_stub", "url": "https://checkout.stripe.test/cs_stub"}
    assert second.status_code == 200
    assert [c[0] for c in gateway.calls].count("create_customer") == 1
    db.refresh(provider_user)
    assert provider_user.stripe_customer_id == "cus_stub"

    checkout = next(c for c in gateway.calls if c[0] == "create_checkout_session")
    assert checkout[2] == "price_test_default"
    assert "provider-dashboard" in checkout[3]


@pytest.mark.asyncio
async def test_create_subscription_mirrors_status(
    provider_client: AsyncClient, db, gateway, test_provider
):
    gateway.subscription_status = "active"
    test_provider.subscription_status = "inactive"
    db.commit()

    response = await provider_client.post("/stripe/create-subscription", json={"price_id": "price_x"})

    assert response.status_code == 200
    assert response.json() == {
        "subscription_id": "sub_stub",
        "status": "active",
        "client_secret": "pi_secret_stub",
    }
    db.refresh(test_provider)
    assert test_provider.subscription_status == "active"


@pytest.mark.asyncio
async def test_cancel_subscription_checks_ownership(
    provider_client: AsyncClient, db, gateway, provider_user
):
    provider_user.stripe_customer_id = "cus_stub"
    db.commit()

    gateway.customer_for_subscription = "cus_someone_else"
    denied = await provider_client.post(
        "/stripe/cancel-subscription", json={"subscription_id": "sub_other"}
    )
    assert denied.status_code == 403

    gateway.customer_for_subscription = "cus_stub"
    allowed = await provider_client.post(
        "/stripe/cancel-subscription", json={"subscription_id": "sub_stub"}
    )
    assert allowed.status_code == 200
    assert allowed.json()["cancel_at_period_end"] is True


@pytest.mark.asyncio
async def test_portal_requires_customer(provider_client: AsyncClient, db, gateway, provider_user):
    missing = await provider_client.post("/stripe/customer-portal", json={})
    assert missing.status_code == 404

    provider_user.stripe_customer_id = "cus_stub"
    db.commit()
    response = await provider_client.post(
        "/stripe/customer-portal", json={"return_url": "https://app.test/back"}
    )
    assert response.status_code == 200
    assert response.json() == {"url": "https://billing.stripe.test/session"}


@pytest.mark.asyncio
async def test_subscription_status(provider_client: AsyncClient, db, gateway, provider_user):
    provider_user.stripe_customer_id = "cus_stub"
    db.commit()

    response = await provider_client.get("/stripe/subscription-status")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "active"
    assert data["subscription"]["id"] == "sub_stub"
    assert data["subscription"]["current_period_end"].startswith("2027-01-01")


@pytest.mark.asyncio
async def test_stripe_rejection_is_validation_error(provider_client: AsyncClient, gateway):
    gateway.fail_with = stripe.InvalidRequestError("No such price: 'price_missing'", "price")

    response = await provider_client.post(
        "/stripe/create-subscription", json={"price_id": "price_missing"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["category"] == "validation"


@pytest.mark.asyncio
async def test_billing_is_provider_only(authed_client: AsyncClient, gateway):
    response = await authed_client.post("/stripe/create-checkout-session", json={})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_billing_unconfigured_is_unavailable(provider_client: AsyncClient, monkeypatch):
    from eventcraft.core.config import settings

    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "")

    response = await provider_client.post("/stripe/create-checkout-session", json={})

    assert response.status_code == 503
